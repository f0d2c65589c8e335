"""
In-memory хранилище фрагментов с TTL.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Entry:
    value: str
    expires_at: float  # 0 - бессрочно


class MemoryStore:
    """
    Потокобезопасный словарь с абсолютными сроками истечения.

    Просроченные записи удаляются лениво при чтении и при purge_expired().
    Часы можно подменить для тестов.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.monotonic
        self._entries: Dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at and entry.expires_at <= self._clock():
                del self._entries[key]
                logger.debug(f"Entry {key} expired")
                return None
            return entry.value

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds > 0 else 0.0
        with self._lock:
            self._entries[key] = _Entry(value=value, expires_at=expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        """Удаляет просроченные записи, возвращает их количество."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.expires_at and e.expires_at <= now]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["MemoryStore"]
