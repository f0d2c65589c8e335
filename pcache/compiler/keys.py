"""
Построение ключей частичного кэша.

Ключ = digest(глобальный ключ) + хеш блока [+ номер фрагмента]
[+ digest(значения ключевых выражений)].
"""

from __future__ import annotations

import hashlib
import logging
from typing import Sequence

from ..errors import PCUserError

logger = logging.getLogger(__name__)

# Разделитель значений ключевых выражений
KEY_VALUES_SEPARATOR = "\x1f"

# Алгоритм "без хеширования": компоненты склеиваются как есть
NO_HASH = "none"


def normalize_algorithm(name: str) -> str:
    return (name or "sha1").strip().lower()


def is_supported_algorithm(name: str) -> bool:
    """
    none или алгоритм hashlib с фиксированной длиной дайджеста.
    SHAKE (digest_size == 0) не подходит: hexdigest требует длину.
    """
    if name == NO_HASH:
        return True
    if name not in hashlib.algorithms_available:
        return False
    try:
        return hashlib.new(name).digest_size > 0
    except ValueError:
        # алгоритм заявлен, но недоступен в текущей сборке OpenSSL
        return False


class CacheKeyComposer:
    """
    Чистая функция построения ключа для одного CachedRegion.

    Одинаковые входные данные всегда дают одинаковый ключ (в том числе
    между процессами с общим хранилищем); изменение любого компонента
    меняет ключ.
    """

    def __init__(self, algorithm: str = "sha1"):
        algorithm = normalize_algorithm(algorithm)
        if not is_supported_algorithm(algorithm):
            raise PCUserError(f"Unknown key hash algorithm '{algorithm}'")
        self.algorithm = algorithm

    def digest(self, text: str) -> str:
        if self.algorithm == NO_HASH:
            return text
        return hashlib.new(self.algorithm, text.encode("utf-8")).hexdigest()

    def block_hash(self, source: str) -> str:
        """Хеш исходного текста блока (вычисляется один раз при компиляции)."""
        if self.algorithm == NO_HASH:
            return hashlib.sha1(source.encode("utf-8")).hexdigest()
        return self.digest(source)

    def compose(
        self,
        global_key: str,
        block_hash: str,
        key_values: Sequence[str],
        segment: int = 0,
    ) -> str:
        """
        Строит ключ кэша.

        Args:
            global_key: Глобальный ключ текущего прохода рендеринга
            block_hash: Хеш блока из CachedRegion
            key_values: Значения ключевых выражений в порядке объявления
            segment: Номер фрагмента блока (0 - первый или единственный)

        Returns:
            Непрозрачная строка ключа
        """
        parts = [self.digest(global_key), block_hash if segment == 0 else f"{block_hash}_{segment}"]
        if key_values:
            parts.append(self.digest(KEY_VALUES_SEPARATOR.join(key_values)))
        key = "".join(parts)
        logger.debug(f"Composed cache key {key} (segment={segment}, keys={len(key_values)})")
        return key


__all__ = ["CacheKeyComposer", "KEY_VALUES_SEPARATOR", "NO_HASH", "is_supported_algorithm", "normalize_algorithm"]
