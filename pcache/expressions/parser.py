"""
Парсер выражений шаблона с рекурсивным спуском.

Строит абстрактное синтаксическое дерево (AST) из последовательности токенов.
Поддерживает приоритеты операторов и группировку в скобках.

Грамматика:
expression  → or_expr
or_expr     → and_expr (("||" | "or") and_expr)*
and_expr    → not_expr (("&&" | "and") not_expr)*
not_expr    → ("not" | "!") not_expr | comparison
comparison  → operand [COMPARE operand]
operand     → path | literal | "(" expression ")"
path        → (VARIABLE | IDENTIFIER) [call] ("." NAME [call])*
call        → "(" [argument ("," argument)*] ")"
argument    → path | literal
literal     → STRING | NUMBER | "true" | "false" | "null"

cache_args  → [argument ("," argument)*] [("if" | "unless") expression]
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from .lexer import ExpressionLexer, ExpressionSyntaxError, Token
from .model import (
    Argument,
    BinaryExpression,
    CompareOp,
    Comparison,
    Expression,
    ExprType,
    GroupExpression,
    Literal,
    NotExpression,
    PathExpression,
    PathSegment,
)

_COMPARE_OPS = {
    "==": CompareOp.EQ,
    "=": CompareOp.EQ,
    "!=": CompareOp.NE,
    ">": CompareOp.GT,
    "<": CompareOp.LT,
    ">=": CompareOp.GE,
    "<=": CompareOp.LE,
}


@dataclass(frozen=True)
class CacheArguments:
    """
    Разобранные аргументы директивы <% cached ... %>.

    Attributes:
        key_exprs: Ключевые выражения в порядке объявления
        condition: Условие после if/unless (None если не указано)
        negated: True для формы unless
    """
    key_exprs: Tuple[Argument, ...] = ()
    condition: Optional[Expression] = None
    negated: bool = False


class ExpressionParser:
    """
    Парсер выражений с рекурсивным спуском.

    Преобразует список токенов в абстрактное синтаксическое дерево,
    соблюдая приоритеты операторов и правила группировки.
    """

    def __init__(self):
        self.lexer = ExpressionLexer()
        self._tokens: List[Token] = []
        self._position = 0

    def parse(self, text: str) -> Expression:
        """
        Парсит строку условия в AST.

        Raises:
            ExpressionSyntaxError: При синтаксической ошибке
        """
        self._start(text)
        if self._is_at_end():
            raise ExpressionSyntaxError("Empty expression", 0)

        result = self._parse_expression()
        self._expect_end()
        return result

    def parse_path(self, text: str) -> PathExpression:
        """Парсит одиночный путь: $Name.Field или Name.Method(1)."""
        self._start(text)
        if self._is_at_end():
            raise ExpressionSyntaxError("Empty path", 0)

        path = self._parse_path()
        self._expect_end()
        return path

    def parse_cache_arguments(self, text: str) -> CacheArguments:
        """
        Парсит аргументы директивы cached: список ключей и условие.

        Примеры:
            ""                          → без ключей и условия
            "$A, 'nav'"                 → два ключа
            "$A if $A > 0"              → ключ и условие
            "unless $CurrentUser"       → только отрицаемое условие
        """
        self._start(text)
        keys: List[Argument] = []

        if not self._is_at_end() and not self._check_keyword("if", "unless"):
            keys.append(self._parse_argument())
            while self._match_symbol(","):
                keys.append(self._parse_argument())

        condition: Optional[Expression] = None
        negated = False
        if self._match_keyword("if"):
            condition = self._parse_expression()
        elif self._match_keyword("unless"):
            condition = self._parse_expression()
            negated = True

        self._expect_end()
        return CacheArguments(key_exprs=tuple(keys), condition=condition, negated=negated)

    def _parse_expression(self) -> Expression:
        """Парсит полное выражение (начальный символ грамматики)."""
        return self._parse_or_expression()

    def _parse_or_expression(self) -> Expression:
        """Парсит выражение с оператором OR (низший приоритет)."""
        left = self._parse_and_expression()

        while self._match_operator("||") or self._match_keyword("or"):
            right = self._parse_and_expression()
            left = BinaryExpression(left=left, right=right, operator=ExprType.OR)

        return left

    def _parse_and_expression(self) -> Expression:
        """Парсит выражение с оператором AND (средний приоритет)."""
        left = self._parse_not_expression()

        while self._match_operator("&&") or self._match_keyword("and"):
            right = self._parse_not_expression()
            left = BinaryExpression(left=left, right=right, operator=ExprType.AND)

        return left

    def _parse_not_expression(self) -> Expression:
        """Парсит отрицание (высокий приоритет, правая ассоциативность)."""
        if self._match_keyword("not") or self._match_operator("!"):
            return NotExpression(expression=self._parse_not_expression())

        return self._parse_comparison()

    def _parse_comparison(self) -> Expression:
        left = self._parse_operand()

        current = self._current_token()
        if current.type == 'OPERATOR' and current.value in _COMPARE_OPS:
            self._advance()
            right = self._parse_operand()
            return Comparison(left=left, operator=_COMPARE_OPS[current.value], right=right)

        return left

    def _parse_operand(self) -> Expression:
        if self._match_symbol("("):
            expr = self._parse_expression()
            if not self._match_symbol(")"):
                raise ExpressionSyntaxError("Expected ')' after grouped expression", self._current_position())
            return GroupExpression(expression=expr)

        return self._parse_argument()

    def _parse_argument(self) -> Argument:
        """Парсит аргумент: путь или литерал."""
        current = self._current_token()

        if current.type == 'STRING':
            self._advance()
            return Literal(value=_unquote(current.value))

        if current.type == 'NUMBER':
            self._advance()
            number = float(current.value) if "." in current.value else int(current.value)
            return Literal(value=number)

        if current.type == 'KEYWORD' and current.value in ("true", "false", "null"):
            self._advance()
            return Literal(value={"true": True, "false": False, "null": None}[current.value])

        if current.type in ('VARIABLE', 'IDENTIFIER'):
            return self._parse_path()

        if current.type == 'EOF':
            raise ExpressionSyntaxError("Unexpected end of expression", current.position)
        raise ExpressionSyntaxError(f"Unexpected token '{current.value}'", current.position)

    def _parse_path(self) -> PathExpression:
        current = self._current_token()
        if current.type not in ('VARIABLE', 'IDENTIFIER'):
            raise ExpressionSyntaxError(f"Expected variable, got '{current.value}'", current.position)
        self._advance()

        name = current.value[1:] if current.type == 'VARIABLE' else current.value
        segments = [self._parse_segment(name)]

        while self._match_symbol("."):
            name_token = self._current_token()
            if name_token.type not in ('IDENTIFIER', 'KEYWORD'):
                raise ExpressionSyntaxError("Expected name after '.'", name_token.position)
            self._advance()
            segments.append(self._parse_segment(name_token.value))

        return PathExpression(segments=tuple(segments))

    def _parse_segment(self, name: str) -> PathSegment:
        if not self._match_symbol("("):
            return PathSegment(name=name)

        args: List[Argument] = []
        if not self._match_symbol(")"):
            args.append(self._parse_argument())
            while self._match_symbol(","):
                args.append(self._parse_argument())
            if not self._match_symbol(")"):
                raise ExpressionSyntaxError(f"Expected ')' after arguments of '{name}'", self._current_position())

        return PathSegment(name=name, args=tuple(args), called=True)

    # Вспомогательные методы для работы с токенами

    def _start(self, text: str) -> None:
        self._tokens = self.lexer.tokenize(text)
        self._position = 0

    def _expect_end(self) -> None:
        if not self._is_at_end():
            current = self._current_token()
            raise ExpressionSyntaxError(f"Unexpected token '{current.value}'", current.position)

    def _current_token(self) -> Token:
        """Возвращает текущий токен без продвижения позиции."""
        if self._position >= len(self._tokens):
            return self._tokens[-1]
        return self._tokens[self._position]

    def _current_position(self) -> int:
        return self._current_token().position

    def _is_at_end(self) -> bool:
        return self._current_token().type == 'EOF'

    def _advance(self) -> Token:
        """Продвигает позицию и возвращает предыдущий токен."""
        token = self._current_token()
        if not self._is_at_end():
            self._position += 1
        return token

    def _check_keyword(self, *keywords: str) -> bool:
        current = self._current_token()
        return current.type == 'KEYWORD' and current.value in keywords

    def _match_keyword(self, keyword: str) -> bool:
        """Проверяет и потребляет ключевое слово."""
        if self._check_keyword(keyword):
            self._advance()
            return True
        return False

    def _match_operator(self, operator: str) -> bool:
        current = self._current_token()
        if current.type == 'OPERATOR' and current.value == operator:
            self._advance()
            return True
        return False

    def _match_symbol(self, symbol: str) -> bool:
        """Проверяет и потребляет символ."""
        current = self._current_token()
        if current.type == 'SYMBOL' and current.value == symbol:
            self._advance()
            return True
        return False


def _unquote(raw: str) -> str:
    body = raw[1:-1]
    out: List[str] = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            out.append(body[i + 1])
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def parse_expression(text: str) -> Expression:
    """Удобная функция для парсинга условия из строки."""
    return ExpressionParser().parse(text)


def parse_path(text: str) -> PathExpression:
    """Удобная функция для парсинга пути из строки."""
    return ExpressionParser().parse_path(text)


def parse_cache_arguments(text: str) -> CacheArguments:
    """Удобная функция для парсинга аргументов директивы cached."""
    return ExpressionParser().parse_cache_arguments(text)


__all__ = [
    "CacheArguments",
    "ExpressionParser",
    "parse_expression",
    "parse_path",
    "parse_cache_arguments",
]
