from .load import CACHE_ENV, create_store, load_config
from .model import (
    DEFAULT_GLOBAL_KEY,
    CacheSettings,
    ConfigError,
    PCConfig,
    StoreBackend,
    StoreErrorPolicy,
)
from .paths import CONFIG_FILE, config_path

__all__ = [
    "load_config",
    "create_store",
    "CACHE_ENV",
    "PCConfig",
    "CacheSettings",
    "ConfigError",
    "StoreBackend",
    "StoreErrorPolicy",
    "DEFAULT_GLOBAL_KEY",
    "CONFIG_FILE",
    "config_path",
]
