from __future__ import annotations

import hashlib
import json
import logging
import shutil
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from ..errors import StoreUnavailableError

logger = logging.getLogger(__name__)

STORE_VERSION = 1

def _sha1_text(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

@dataclass(frozen=True)
class StoreSnapshot:
    enabled: bool
    path: Path
    exists: bool
    size_bytes: int
    entries: int


class FileStore:
    """
    Файловое хранилище отрендеренных фрагментов: <root>/.pcache/partials/
      • одна запись = один JSON { v, key, value, expires_at, created_at }
      • записи раскладываются по подкаталогам по префиксу sha1(key)
      • запись атомарная (tmp + replace)
    Ошибки ввода-вывода поднимаются как StoreUnavailableError, политику
    деградации выбирает диспетчер рендеринга. Битая запись - промах.
    """

    def __init__(self, root: Path, *, dir_name: str = ".pcache", clock: Optional[Callable[[], float]] = None):
        self.dir = root / dir_name / "partials"
        self._clock = clock or time.time

    # --------------------------- CacheStore --------------------------- #

    def get(self, key: str) -> Optional[str]:
        path = self._entry_path(key)
        data = self._load_json(path)
        if data is None or data.get("key") != key:
            return None
        expires_at = data.get("expires_at")
        if expires_at and expires_at <= self._clock():
            self._unlink(path)
            return None
        value = data.get("value")
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds > 0 else 0
        self._atom_write(self._entry_path(key), {
            "v": STORE_VERSION,
            "key": key,
            "value": value,
            "expires_at": expires_at,
            "created_at": _now_iso(),
        })

    def delete(self, key: str) -> None:
        self._unlink(self._entry_path(key))

    def clear(self) -> None:
        if not self.purge_all():
            raise StoreUnavailableError(f"Failed to clear cache directory {self.dir}")

    # --------------------------- IO helpers --------------------------- #

    def _entry_path(self, key: str) -> Path:
        # два уровня префиксов, чтобы не плодить тысячи файлов в одной папке
        h = _sha1_text(key)
        return self.dir / h[:2] / h[2:4] / f"{h}.json"

    def _load_json(self, path: Path) -> Optional[dict]:
        """
        Читает запись. Отсутствующая или битая запись дает None;
        expires_at в результате всегда float.
        """
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except json.JSONDecodeError:
            logger.debug(f"Corrupted cache entry {path}, treating as miss")
            return None
        except OSError as e:
            raise StoreUnavailableError(f"Failed to read cache entry {path}: {e}", e) from e

        if not isinstance(data, dict):
            logger.debug(f"Cache entry {path} is not a mapping, treating as miss")
            return None
        try:
            data["expires_at"] = float(data.get("expires_at") or 0)
        except (TypeError, ValueError):
            logger.debug(f"Malformed expires_at in cache entry {path}, treating as miss")
            return None
        return data

    def _atom_write(self, path: Path, data: dict) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".tmp")
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            tmp.replace(path)
        except OSError as e:
            raise StoreUnavailableError(f"Failed to write cache entry {path}: {e}", e) from e

    def _unlink(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StoreUnavailableError(f"Failed to delete cache entry {path}: {e}", e) from e

    # --------------------------- MAINTENANCE --------------------------- #
    def purge_all(self) -> bool:
        """Полная очистка содержимого хранилища."""
        try:
            if self.dir.exists():
                shutil.rmtree(self.dir, ignore_errors=True)
            self.dir.mkdir(parents=True, exist_ok=True)
            return True
        except OSError:
            return False

    def purge_expired(self) -> int:
        """Удаляет просроченные записи, возвращает их количество."""
        removed = 0
        now = self._clock()
        if not self.dir.exists():
            return 0
        for p in sorted(self.dir.rglob("*.json")):
            data = self._load_json(p)
            expires_at = data.get("expires_at") if data is not None else None
            if data is None or (expires_at and expires_at <= now):
                self._unlink(p)
                removed += 1
        return removed

    def snapshot(self, *, enabled: bool = True) -> StoreSnapshot:
        """Собрать best-effort снимок состояния хранилища."""
        size = 0
        entries = 0
        try:
            if self.dir.exists():
                for p in self.dir.rglob("*.json"):
                    try:
                        entries += 1
                        size += p.stat().st_size
                    except OSError:
                        # best-effort: пропускаем проблемные файлы
                        pass
        except OSError:
            # оставляем size=0, entries=0
            pass
        return StoreSnapshot(
            enabled=enabled,
            path=self.dir,
            exists=self.dir.exists(),
            size_bytes=size,
            entries=entries,
        )
