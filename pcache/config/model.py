"""
Модель конфигурации частичного кэша.
Содержит dataclass-настройки с загрузкой из словаря (из YAML).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from ..cache.base import DEFAULT_TTL
from ..compiler.keys import is_supported_algorithm, normalize_algorithm
from ..errors import PCUserError
from .paths import DEFAULT_STORE_DIR

# Глобальный ключ по умолчанию: режим чтения и пользователь
DEFAULT_GLOBAL_KEY = "$CurrentReadingMode, $CurrentUser.ID"


class ConfigError(PCUserError):
    """Ошибка конфигурации с указанием пути поля."""
    pass


class StoreErrorPolicy(str, Enum):
    """Реакция на недоступность хранилища кэша."""
    DEGRADE = "degrade"  # чтение = промах, ошибка записи только логируется
    RAISE = "raise"      # StoreUnavailableError поднимается наружу


class StoreBackend(str, Enum):
    MEMORY = "memory"
    FS = "fs"


@dataclass
class CacheSettings:
    """
    Настройки хранилища и политики кэширования.
    """
    enabled: bool = True
    backend: StoreBackend = StoreBackend.MEMORY
    dir: str = DEFAULT_STORE_DIR
    default_ttl: int = DEFAULT_TTL
    on_store_error: StoreErrorPolicy = StoreErrorPolicy.DEGRADE
    key_hash: str = "sha1"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheSettings":
        """Создание экземпляра из словаря (из YAML)."""
        if not isinstance(data, dict):
            raise ConfigError("cache: expected a mapping")

        ttl = data.get("default_ttl", DEFAULT_TTL)
        if isinstance(ttl, bool) or not isinstance(ttl, int) or ttl < 0:
            raise ConfigError(f"cache.default_ttl: expected non-negative integer, got {ttl!r}")

        raw_hash = data.get("key_hash")
        key_hash = normalize_algorithm("" if raw_hash is None else str(raw_hash))
        if not is_supported_algorithm(key_hash):
            raise ConfigError(
                f"cache.key_hash: unsupported algorithm '{key_hash}' "
                f"(expected 'none' or a fixed-length hashlib algorithm such as sha1, sha256)"
            )

        return cls(
            enabled=_norm_bool(data.get("enabled", True)),
            backend=_enum(StoreBackend, data.get("backend", StoreBackend.MEMORY.value), "cache.backend"),
            dir=str(data.get("dir", DEFAULT_STORE_DIR)),
            default_ttl=ttl,
            on_store_error=_enum(
                StoreErrorPolicy,
                data.get("on_store_error", StoreErrorPolicy.DEGRADE.value),
                "cache.on_store_error",
            ),
            key_hash=key_hash,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "backend": self.backend.value,
            "dir": self.dir,
            "default_ttl": self.default_ttl,
            "on_store_error": self.on_store_error.value,
            "key_hash": self.key_hash,
        }


@dataclass
class PCConfig:
    """
    Корневая конфигурация: настройки кэша, шаблон глобального ключа
    и глобальные значения шаблонов.
    """
    cache: CacheSettings = field(default_factory=CacheSettings)
    global_key: str = DEFAULT_GLOBAL_KEY
    globals: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PCConfig":
        """Создание экземпляра из словаря (из YAML)."""
        globals_data = data.get("globals", {}) or {}
        if not isinstance(globals_data, dict):
            raise ConfigError("globals: expected a mapping")

        global_key = data.get("global_key", DEFAULT_GLOBAL_KEY)
        if not isinstance(global_key, str):
            raise ConfigError(f"global_key: expected string, got {type(global_key).__name__}")

        return cls(
            cache=CacheSettings.from_dict(data.get("cache", {}) or {}),
            global_key=global_key,
            globals=dict(globals_data),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cache": self.cache.to_dict(),
            "global_key": self.global_key,
            "globals": dict(self.globals),
        }


def _norm_bool(x: Any) -> bool:
    if isinstance(x, bool):
        return x
    if x is None:
        return False
    s = str(x).strip().lower()
    return s not in {"0", "false", "no", "off", ""}


def _enum(enum_cls, value: Any, path: str):
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise ConfigError(f"{path}: expected one of [{allowed}], got {value!r}") from None


__all__ = [
    "ConfigError",
    "StoreErrorPolicy",
    "StoreBackend",
    "CacheSettings",
    "PCConfig",
    "DEFAULT_GLOBAL_KEY",
]
