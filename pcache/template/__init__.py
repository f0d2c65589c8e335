"""
Фронтенд шаблонизатора: лексер, AST-узлы и парсер директив <% ... %>.
"""

from .lexer import LexerError, tokenize_template
from .nodes import (
    CacheBlockNode,
    ConditionalBranch,
    ConditionalNode,
    ExpressionNode,
    LoopNode,
    SourceLocation,
    TemplateAST,
    TemplateNode,
    TextNode,
    UncachedBlockNode,
    format_ast_tree,
)
from .parser import ParserError, parse_template

__all__ = [
    # Основная функция для использования
    "parse_template",

    # Исключения
    "LexerError",
    "ParserError",

    # Узлы
    "TemplateNode",
    "TemplateAST",
    "SourceLocation",
    "TextNode",
    "ExpressionNode",
    "LoopNode",
    "ConditionalBranch",
    "ConditionalNode",
    "CacheBlockNode",
    "UncachedBlockNode",

    # Низкоуровневые функции (для тестирования и отладки)
    "tokenize_template",
    "format_ast_tree",
]
