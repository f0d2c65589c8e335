"""
AST-узлы шаблона.

Узлы - неизменяемые dataclass-варианты, объединенные в TemplateNode.
Обработчики различают их через isinstance, поведение в узлах не хранится.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

from ..expressions.model import Argument, Expression, PathExpression


@dataclass(frozen=True)
class SourceLocation:
    """Позиция конструкции в исходном шаблоне (строка и колонка с 1)."""
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class TextNode:
    """
    Обычный текстовый контент в шаблоне.

    Выводится в результат как есть.
    """
    text: str


@dataclass(frozen=True)
class ExpressionNode:
    """Вывод значения переменной: $Name.Field или {$Name.Field}."""
    expr: PathExpression
    location: SourceLocation


@dataclass(frozen=True)
class LoopNode:
    """
    Цикл <% loop $Items %>...<% end_loop %>.

    Тело рендерится для каждого элемента, элемент становится текущей
    областью видимости.
    """
    path: PathExpression
    body: Tuple["TemplateNode", ...]
    location: SourceLocation


@dataclass(frozen=True)
class ConditionalBranch:
    """Одна ветка if/else_if: условие и тело."""
    condition: Expression
    body: Tuple["TemplateNode", ...]


@dataclass(frozen=True)
class ConditionalNode:
    """
    Условный блок <% if %>...<% else_if %>...<% else %>...<% end_if %>.

    Ветки проверяются по порядку, else_body используется если ни одно
    условие не выполнилось.
    """
    branches: Tuple[ConditionalBranch, ...]
    else_body: Tuple["TemplateNode", ...]
    location: SourceLocation


@dataclass(frozen=True)
class CacheBlockNode:
    """
    Блок частичного кэширования <% cached $Key if $Cond %>...<% end_cached %>.

    Attributes:
        key_exprs: Ключевые выражения в порядке объявления
        condition: Условие кэширования (None - всегда кэшировать)
        negated: True для формы unless
        body: Содержимое блока
        source: Исходный текст между открывающей и закрывающей директивой
        location: Позиция открывающей директивы
    """
    key_exprs: Tuple[Argument, ...]
    condition: Optional[Expression]
    negated: bool
    body: Tuple["TemplateNode", ...]
    source: str
    location: SourceLocation


@dataclass(frozen=True)
class UncachedBlockNode:
    """Блок <% uncached %>...<% end_uncached %>, всегда рендерится заново."""
    body: Tuple["TemplateNode", ...]
    location: SourceLocation


TemplateNode = Union[
    TextNode,
    ExpressionNode,
    LoopNode,
    ConditionalNode,
    CacheBlockNode,
    UncachedBlockNode,
]

# Алиас для последовательности узлов (AST)
TemplateAST = Tuple[TemplateNode, ...]


def iter_child_bodies(node: TemplateNode) -> Sequence[TemplateAST]:
    """Возвращает все вложенные тела узла в порядке следования в тексте."""
    if isinstance(node, (LoopNode, CacheBlockNode, UncachedBlockNode)):
        return (node.body,)
    if isinstance(node, ConditionalNode):
        return tuple(branch.body for branch in node.branches) + (node.else_body,)
    return ()


def find_cache_directives(nodes: TemplateAST) -> Optional[Union[CacheBlockNode, UncachedBlockNode]]:
    """
    Ищет первый блок cached/uncached в поддереве (обход в глубину).

    Returns:
        Первый найденный блок или None
    """
    stack = list(reversed(nodes))
    while stack:
        node = stack.pop()
        if isinstance(node, (CacheBlockNode, UncachedBlockNode)):
            return node
        for body in reversed(iter_child_bodies(node)):
            stack.extend(reversed(body))
    return None


def format_ast_tree(ast: TemplateAST, indent: int = 0) -> str:
    """Форматирует AST как дерево для отладки."""
    lines = []
    prefix = "  " * indent

    for node in ast:
        if isinstance(node, TextNode):
            text_preview = repr(node.text[:40] + "..." if len(node.text) > 40 else node.text)
            lines.append(f"{prefix}Text({text_preview})")
        elif isinstance(node, ExpressionNode):
            lines.append(f"{prefix}Expression({node.expr})")
        elif isinstance(node, LoopNode):
            lines.append(f"{prefix}Loop({node.path})")
            lines.append(format_ast_tree(node.body, indent + 1))
        elif isinstance(node, ConditionalNode):
            for i, branch in enumerate(node.branches):
                keyword = "If" if i == 0 else "ElseIf"
                lines.append(f"{prefix}{keyword}({branch.condition})")
                lines.append(format_ast_tree(branch.body, indent + 1))
            if node.else_body:
                lines.append(f"{prefix}Else")
                lines.append(format_ast_tree(node.else_body, indent + 1))
        elif isinstance(node, CacheBlockNode):
            keys = ", ".join(str(k) for k in node.key_exprs)
            cond = ""
            if node.condition is not None:
                cond = f" {'unless' if node.negated else 'if'} {node.condition}"
            lines.append(f"{prefix}Cached({keys}{cond})")
            lines.append(format_ast_tree(node.body, indent + 1))
        elif isinstance(node, UncachedBlockNode):
            lines.append(f"{prefix}Uncached")
            lines.append(format_ast_tree(node.body, indent + 1))

    return "\n".join(line for line in lines if line)


__all__ = [
    "SourceLocation",
    "TextNode",
    "ExpressionNode",
    "LoopNode",
    "ConditionalBranch",
    "ConditionalNode",
    "CacheBlockNode",
    "UncachedBlockNode",
    "TemplateNode",
    "TemplateAST",
    "iter_child_bodies",
    "find_cache_directives",
    "format_ast_tree",
]
