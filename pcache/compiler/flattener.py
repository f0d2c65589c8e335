"""
Разворачивание вложенных блоков кэша в плоскую последовательность регионов.

Обход в глубину с явно передаваемым контекстом кэша (ближайший
объемлющий cached-блок). Вложенный cached или uncached закрывает
текущий регион, разворачивается как самостоятельный регион верхнего
уровня, после чего объемлющий блок продолжается новым регионом с теми же
ключами, условием и хешем.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .keys import CacheKeyComposer
from .regions import CachedRegion, FlattenedRegion, PassthroughRegion
from ..errors import StructuralError
from ..template.nodes import (
    CacheBlockNode,
    ConditionalNode,
    LoopNode,
    TemplateAST,
    TemplateNode,
    TextNode,
    UncachedBlockNode,
    find_cache_directives,
)

logger = logging.getLogger(__name__)


@dataclass
class _CacheContext:
    """Объемлющий cached-блок и счетчик его фрагментов."""
    block: CacheBlockNode
    block_hash: str
    next_segment: int = 0


class BlockFlattener:
    """
    Компилятор дерева шаблона в последовательность FlattenedRegion.

    Выполняется один раз на шаблон; результат неизменяем.
    """

    def __init__(self, composer: Optional[CacheKeyComposer] = None, template_name: str = ""):
        self.composer = composer or CacheKeyComposer()
        self.template_name = template_name

    def flatten(self, nodes: TemplateAST) -> Tuple[FlattenedRegion, ...]:
        """
        Разворачивает AST в регионы.

        Raises:
            StructuralError: Если cached/uncached находится внутри loop или if
        """
        out: List[FlattenedRegion] = []
        self._walk(nodes, None, out)
        regions = tuple(_coalesce(out))
        logger.debug(
            f"Flattened template '{self.template_name}' into {len(regions)} regions "
            f"({sum(isinstance(r, CachedRegion) for r in regions)} cached)"
        )
        return regions

    def _walk(self, nodes: TemplateAST, ctx: Optional[_CacheContext], out: List[FlattenedRegion]) -> None:
        buffer: List[TemplateNode] = []

        for node in nodes:
            if isinstance(node, CacheBlockNode):
                self._emit(ctx, buffer, out)
                buffer = []
                inner = _CacheContext(block=node, block_hash=self.composer.block_hash(node.source))
                self._walk(node.body, inner, out)
            elif isinstance(node, UncachedBlockNode):
                self._emit(ctx, buffer, out)
                buffer = []
                self._walk(node.body, None, out)
            else:
                if isinstance(node, (LoopNode, ConditionalNode)):
                    self._check_no_cache_blocks(node)
                buffer.append(node)

        self._emit(ctx, buffer, out)

    def _emit(self, ctx: Optional[_CacheContext], body: List[TemplateNode], out: List[FlattenedRegion]) -> None:
        """Закрывает текущий регион; пустые регионы не создаются."""
        if not body:
            return
        if ctx is None:
            out.append(PassthroughRegion(body=tuple(body)))
            return

        block = ctx.block
        out.append(CachedRegion(
            key_exprs=block.key_exprs,
            condition=block.condition,
            negated=block.negated,
            block_hash=ctx.block_hash,
            segment=ctx.next_segment,
            body=tuple(body),
            location=block.location,
        ))
        ctx.next_segment += 1

    def _check_no_cache_blocks(self, node: TemplateNode) -> None:
        offending = find_cache_directives((node,))
        if offending is None:
            return
        kind = "cached" if isinstance(offending, CacheBlockNode) else "uncached"
        container = "loop" if isinstance(node, LoopNode) else "if"
        raise StructuralError(
            f"'{kind}' block is not allowed inside '{container}' block",
            offending.location.line,
            offending.location.column,
            self.template_name,
        )


def _coalesce(regions: List[FlattenedRegion]) -> List[FlattenedRegion]:
    """Объединяет соседние PassthroughRegion в один."""
    result: List[FlattenedRegion] = []
    for region in regions:
        if isinstance(region, PassthroughRegion) and result and isinstance(result[-1], PassthroughRegion):
            result[-1] = PassthroughRegion(body=_join_bodies(result[-1].body, region.body))
        else:
            result.append(region)
    return result


def _join_bodies(left: TemplateAST, right: TemplateAST) -> TemplateAST:
    if left and right and isinstance(left[-1], TextNode) and isinstance(right[0], TextNode):
        return left[:-1] + (TextNode(text=left[-1].text + right[0].text),) + right[1:]
    return left + right


def flatten_template(nodes: TemplateAST, template_name: str = "",
                     composer: Optional[CacheKeyComposer] = None) -> Tuple[FlattenedRegion, ...]:
    """
    Удобная функция для разворачивания AST.

    Raises:
        StructuralError: При недопустимой вложенности блоков
    """
    return BlockFlattener(composer, template_name).flatten(nodes)


__all__ = ["BlockFlattener", "flatten_template"]
