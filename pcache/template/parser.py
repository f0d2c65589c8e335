"""
Синтаксический анализатор шаблонов.

Преобразует поток токенов в AST с поддержкой вложенных блоков
if/loop/cached/uncached. Каждый открытый блок хранится во фрейме стека,
закрывающая директива сворачивает фрейм в узел.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .lexer import Token, TokenType, TemplateLexer
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
)
from ..errors import PCUserError
from ..expressions.lexer import ExpressionSyntaxError
from ..expressions.model import Expression
from ..expressions.parser import CacheArguments, ExpressionParser

logger = logging.getLogger(__name__)

_DIRECTIVE = re.compile(r'^([A-Za-z_]+)(?:\s+(.*))?$', re.DOTALL)

# Открывающая директива → закрывающая
_BLOCK_ENDS = {
    "if": "end_if",
    "loop": "end_loop",
    "cached": "end_cached",
    "cacheblock": "end_cacheblock",
    "uncached": "end_uncached",
}


class ParserError(PCUserError):
    """Ошибка синтаксического анализа шаблона."""

    def __init__(self, message: str, token: Token, template_name: str = ""):
        where = f"{template_name}:" if template_name else ""
        super().__init__(f"{message} at {where}{token.line}:{token.column}")
        self.token = token
        self.line = token.line
        self.column = token.column


@dataclass
class _Frame:
    """Открытый блок во время разбора."""
    keyword: str
    token: Optional[Token]
    children: List[TemplateNode] = field(default_factory=list)
    # Для if: завершенные ветки и условие текущей ветки
    branches: List[ConditionalBranch] = field(default_factory=list)
    condition: Optional[Expression] = None
    in_else: bool = False
    # Для loop и cached
    loop_path: Optional[Expression] = None
    cache_args: Optional[CacheArguments] = None


class TemplateParser:
    """
    Парсер шаблонов.

    Разбирает текст в AST. Вложенность cached/uncached внутри loop/if
    здесь не проверяется - это структурная проверка компилятора.
    """

    def __init__(self, text: str, template_name: str = ""):
        self.text = text
        self.template_name = template_name
        self.lexer = TemplateLexer(text)
        self.expressions = ExpressionParser()

    def parse(self) -> TemplateAST:
        """
        Парсит текст в AST.

        Raises:
            LexerError: При лексической ошибке
            ParserError: При синтаксической ошибке
        """
        tokens = self.lexer.tokenize()
        stack: List[_Frame] = [_Frame(keyword="root", token=None)]

        for token in tokens:
            if token.type == TokenType.EOF:
                break
            if token.type == TokenType.TEXT:
                self._append(stack, TextNode(text=token.value))
            elif token.type == TokenType.VARIABLE:
                path = self._parse_or_fail(self.expressions.parse_path, token.value, token)
                self._append(stack, ExpressionNode(expr=path, location=_loc(token)))
            else:
                self._handle_directive(stack, token)

        if len(stack) > 1:
            frame = stack[-1]
            assert frame.token is not None
            raise ParserError(f"Unclosed '{frame.keyword}' block", frame.token, self.template_name)

        ast = tuple(stack[0].children)
        logger.debug(f"Parsed template '{self.template_name}' -> {len(ast)} top-level nodes")
        return ast

    def _handle_directive(self, stack: List[_Frame], token: Token) -> None:
        match = _DIRECTIVE.match(token.value)
        if not match:
            raise ParserError(f"Malformed directive '<% {token.value} %>'", token, self.template_name)

        keyword = match.group(1)
        args = (match.group(2) or "").strip()

        if keyword in _BLOCK_ENDS:
            stack.append(self._open_block(keyword, args, token))
        elif keyword == "else_if":
            frame = self._expect_open(stack, "if", token, keyword)
            if frame.in_else:
                raise ParserError("'else_if' after 'else'", token, self.template_name)
            self._close_branch(frame)
            frame.condition = self._parse_condition(args, token, keyword)
        elif keyword == "else":
            frame = self._expect_open(stack, "if", token, keyword)
            if frame.in_else:
                raise ParserError("Multiple 'else' in one block", token, self.template_name)
            if args:
                raise ParserError("'else' does not take arguments", token, self.template_name)
            self._close_branch(frame)
            frame.in_else = True
        elif keyword.startswith("end_"):
            self._close_block(stack, keyword, token)
        else:
            raise ParserError(f"Unknown directive '{keyword}'", token, self.template_name)

    def _open_block(self, keyword: str, args: str, token: Token) -> _Frame:
        frame = _Frame(keyword=keyword, token=token)
        if keyword == "if":
            frame.condition = self._parse_condition(args, token, keyword)
        elif keyword == "loop":
            if not args:
                raise ParserError("'loop' requires a list expression", token, self.template_name)
            frame.loop_path = self._parse_or_fail(self.expressions.parse_path, args, token)
        elif keyword in ("cached", "cacheblock"):
            frame.cache_args = self._parse_or_fail(self.expressions.parse_cache_arguments, args, token)
        # uncached игнорирует аргументы
        return frame

    def _close_block(self, stack: List[_Frame], keyword: str, token: Token) -> None:
        frame = stack[-1]
        if frame.token is None or _BLOCK_ENDS[frame.keyword] != keyword:
            raise ParserError(f"Unexpected '{keyword}'", token, self.template_name)
        stack.pop()

        body = tuple(frame.children)
        location = _loc(frame.token)
        node: TemplateNode

        if frame.keyword == "if":
            self._close_branch(frame)
            else_body = body if frame.in_else else ()
            node = ConditionalNode(branches=tuple(frame.branches), else_body=else_body, location=location)
        elif frame.keyword == "loop":
            node = LoopNode(path=frame.loop_path, body=body, location=location)
        elif frame.keyword in ("cached", "cacheblock"):
            args = frame.cache_args or CacheArguments()
            node = CacheBlockNode(
                key_exprs=args.key_exprs,
                condition=args.condition,
                negated=args.negated,
                body=body,
                source=self.text[frame.token.end:token.position],
                location=location,
            )
        else:
            node = UncachedBlockNode(body=body, location=location)

        self._append(stack, node)

    def _close_branch(self, frame: _Frame) -> None:
        """Переносит накопленные узлы в ветку if/else_if."""
        if frame.in_else:
            return
        assert frame.condition is not None
        frame.branches.append(ConditionalBranch(condition=frame.condition, body=tuple(frame.children)))
        frame.children = []
        frame.condition = None

    def _expect_open(self, stack: List[_Frame], keyword: str, token: Token, found: str) -> _Frame:
        frame = stack[-1]
        if frame.keyword != keyword:
            raise ParserError(f"'{found}' without matching '{keyword}'", token, self.template_name)
        return frame

    def _parse_condition(self, args: str, token: Token, keyword: str) -> Expression:
        if not args:
            raise ParserError(f"'{keyword}' requires a condition", token, self.template_name)
        return self._parse_or_fail(self.expressions.parse, args, token)

    def _parse_or_fail(self, parse_fn, text: str, token: Token):
        try:
            return parse_fn(text)
        except ExpressionSyntaxError as e:
            raise ParserError(f"Invalid expression '{text}': {e.message}", token, self.template_name) from e

    @staticmethod
    def _append(stack: List[_Frame], node: TemplateNode) -> None:
        children = stack[-1].children
        # Соседние текстовые узлы объединяем
        if isinstance(node, TextNode) and children and isinstance(children[-1], TextNode):
            children[-1] = TextNode(text=children[-1].text + node.text)
        else:
            children.append(node)


def _loc(token: Token) -> SourceLocation:
    return SourceLocation(line=token.line, column=token.column)


def parse_template(text: str, template_name: str = "") -> TemplateAST:
    """
    Удобная функция для парсинга шаблона.

    Args:
        text: Исходный текст шаблона
        template_name: Имя шаблона для диагностики

    Returns:
        AST шаблона

    Raises:
        LexerError, ParserError: При ошибке разбора
    """
    return TemplateParser(text, template_name).parse()


__all__ = ["ParserError", "TemplateParser", "parse_template"]
