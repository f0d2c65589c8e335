from __future__ import annotations

from pathlib import Path

# Single source of truth for configuration file layout.
CONFIG_FILE = "pcache.yaml"
DEFAULT_STORE_DIR = ".pcache"


def config_path(root: Path) -> Path:
    """Path to the project configuration file pcache.yaml."""
    return (root / CONFIG_FILE).resolve()
