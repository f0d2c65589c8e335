"""
Рендеринг узлов шаблона в текст.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, List

from .context import LoopInfo, RenderPass
from ..expressions.evaluator import is_truthy, to_key_string
from ..template.nodes import (
    CacheBlockNode,
    ConditionalNode,
    ExpressionNode,
    LoopNode,
    TemplateAST,
    TemplateNode,
    TextNode,
    UncachedBlockNode,
)

logger = logging.getLogger(__name__)


class NodeRenderer:
    """
    Рендерер тел регионов.

    Выражения в теле вычисляются нестрого: отсутствующее поле выводится
    пустой строкой. Обертки cached/uncached прозрачны, поэтому
    неразвернутое дерево тоже можно отрендерить напрямую.
    """

    def __init__(self, render_pass: RenderPass):
        self.render_pass = render_pass

    def render(self, nodes: TemplateAST) -> str:
        parts: List[str] = []
        for node in nodes:
            self._render_node(node, parts)
        return "".join(parts)

    def global_key(self) -> str:
        """Глобальный ключ текущего прохода."""
        return self.render_pass.global_key(self.render)

    def _render_node(self, node: TemplateNode, parts: List[str]) -> None:
        if isinstance(node, TextNode):
            parts.append(node.text)
        elif isinstance(node, ExpressionNode):
            parts.append(to_key_string(self.render_pass.evaluate(node.expr)))
        elif isinstance(node, LoopNode):
            self._render_loop(node, parts)
        elif isinstance(node, ConditionalNode):
            self._render_conditional(node, parts)
        elif isinstance(node, (CacheBlockNode, UncachedBlockNode)):
            parts.append(self.render(node.body))
        else:
            raise TypeError(f"Unknown template node: {type(node).__name__}")

    def _render_loop(self, node: LoopNode, parts: List[str]) -> None:
        items = _as_items(self.render_pass.evaluate(node.path))
        total = len(items)
        logger.debug(f"Loop {node.path} at {node.location}: {total} item(s)")
        for index, item in enumerate(items):
            with self.render_pass.push_scope(item, LoopInfo(index=index, total=total)):
                parts.append(self.render(node.body))

    def _render_conditional(self, node: ConditionalNode, parts: List[str]) -> None:
        for branch in node.branches:
            if self.render_pass.evaluate_bool(branch.condition):
                parts.append(self.render(branch.body))
                return
        parts.append(self.render(node.else_body))


def _as_items(value: Any) -> List[Any]:
    # одиночный объект (в т.ч. словарь или строка) - список из одного элемента
    if not is_truthy(value):
        return []
    if isinstance(value, (str, bytes, Mapping)):
        return [value]
    try:
        return list(value)
    except TypeError:
        return [value]


__all__ = ["NodeRenderer"]
