"""
Загрузчик конфигурации pcache.yaml и фабрика хранилища кэша.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from ..cache import CacheStore, FileStore, MemoryStore
from .model import ConfigError, PCConfig, StoreBackend, _norm_bool
from .paths import config_path

logger = logging.getLogger(__name__)

_yaml = YAML(typ="safe")

# Переменная окружения для принудительного включения/выключения кэша
CACHE_ENV = "PC_CACHE"


def _read_yaml_map(path: Path) -> dict:
    """Читает YAML файл и возвращает словарь."""
    if not path.is_file():
        return {}
    try:
        raw = _yaml.load(path.read_text(encoding="utf-8")) or {}
    except YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"YAML must be a mapping: {path}")
    return raw


def load_config(root: Path, *, path: Optional[Path] = None) -> PCConfig:
    """
    Загружает конфигурацию проекта.

    Отсутствующий файл означает конфигурацию по умолчанию. Переменная
    окружения PC_CACHE перекрывает cache.enabled из файла.

    Args:
        root: Корень проекта
        path: Явный путь к файлу конфигурации (иначе <root>/pcache.yaml)

    Returns:
        Конфигурация проекта

    Raises:
        ConfigError: Если файл некорректен
    """
    cfg_file = path or config_path(root)
    cfg = PCConfig.from_dict(_read_yaml_map(cfg_file))

    env = os.environ.get(CACHE_ENV, None)
    if env is not None:
        cfg.cache.enabled = _norm_bool(env)
        logger.debug(f"{CACHE_ENV}={env!r} overrides cache.enabled -> {cfg.cache.enabled}")

    return cfg


def create_store(cfg: PCConfig, root: Path) -> CacheStore:
    """
    Создает хранилище по настройкам cache.backend.
    """
    if cfg.cache.backend is StoreBackend.FS:
        return FileStore(root, dir_name=cfg.cache.dir)
    return MemoryStore()


__all__ = ["load_config", "create_store", "CACHE_ENV"]
