"""
Хранилища отрендеренных фрагментов частичного кэша.
"""

from .base import CacheStore, DEFAULT_TTL
from .fs_store import FileStore, StoreSnapshot
from .memory import MemoryStore

__all__ = ["CacheStore", "DEFAULT_TTL", "FileStore", "MemoryStore", "StoreSnapshot"]
