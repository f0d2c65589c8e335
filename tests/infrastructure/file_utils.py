"""
Утилиты для создания файлов и директорий в тестах.
"""

from __future__ import annotations

import textwrap
from pathlib import Path


def write(p: Path, text: str) -> Path:
    """
    Записывает текст в файл, создавая родительские директории при необходимости.

    Args:
        p: Путь к файлу
        text: Содержимое для записи

    Returns:
        Путь к созданному файлу
    """
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(text, encoding="utf-8")
    return p


def write_template(root: Path, name: str, text: str) -> Path:
    """Создает файл шаблона (текст нормализуется через dedent)."""
    return write(root / name, textwrap.dedent(text).lstrip("\n"))


def write_config(root: Path, text: str) -> Path:
    """Создает pcache.yaml в корне проекта."""
    return write(root / "pcache.yaml", textwrap.dedent(text).strip() + "\n")
