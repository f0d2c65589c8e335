from __future__ import annotations

from importlib import metadata

# Имя дистрибутива в pyproject.toml
DIST_NAME = "partial-cache"


def tool_version() -> str:
    """
    Версия установленного дистрибутива partial-cache.
    Без установки (запуск из исходников) - "0.0.0".
    """
    try:
        return metadata.version(DIST_NAME)
    except metadata.PackageNotFoundError:
        return "0.0.0"

__all__ = ["tool_version", "DIST_NAME"]
