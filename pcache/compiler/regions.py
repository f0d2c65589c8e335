"""
Плоские регионы - результат компиляции шаблона.

Последовательность регионов повторяет порядок текста исходного шаблона
без оберток cached/uncached. Регионы неизменяемы после компиляции.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from ..expressions.model import Argument, Expression
from ..template.nodes import SourceLocation, TemplateAST


@dataclass(frozen=True)
class CachedRegion:
    """
    Регион, вывод которого может браться из хранилища кэша.

    Attributes:
        key_exprs: Ключевые выражения блока в порядке объявления
        condition: Условие кэширования (None - истинно)
        negated: Инвертировать условие (форма unless)
        block_hash: Хеш исходного текста блока, вычисляется при компиляции
        segment: Порядковый номер фрагмента блока, разрезанного вложенными блоками
        body: Узлы для рендеринга при промахе
        location: Позиция открывающей директивы блока
    """
    key_exprs: Tuple[Argument, ...]
    condition: Optional[Expression]
    negated: bool
    block_hash: str
    segment: int
    body: TemplateAST
    location: SourceLocation


@dataclass(frozen=True)
class PassthroughRegion:
    """Регион без кэширования: обычный текст и содержимое uncached."""
    body: TemplateAST


FlattenedRegion = Union[CachedRegion, PassthroughRegion]


__all__ = ["CachedRegion", "PassthroughRegion", "FlattenedRegion"]
