"""
Вычислитель выражений шаблона.

Проходит по AST выражения и вычисляет его значение в контексте данных.
Разрешение путей делегируется резолверу области видимости (проход рендеринга),
который отвечает за мемоизацию и цепочку областей.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, Sequence, cast

from .model import (
    BinaryExpression,
    CompareOp,
    Comparison,
    Expression,
    ExprType,
    GroupExpression,
    Literal,
    NotExpression,
    PathExpression,
)
from ..errors import ExpressionEvaluationError


class _Missing:
    """Маркер отсутствующего значения (в отличие от явного None)."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


class PathResolver(Protocol):
    """Резолвер путей: знает текущую область видимости и глобальные значения."""

    def resolve(self, path: PathExpression, evaluator: "ExpressionEvaluator") -> Any:
        ...


class ExpressionEvaluator:
    """
    Вычислитель выражений.

    Принимает AST выражения и резолвер путей, возвращает значение.
    В строгом режиме отсутствующее поле - ошибка (ключи и условия кэша),
    в нестрогом - None (вывод $Var и условия <% if %>).
    """

    def __init__(self, resolver: PathResolver, *, strict: bool = False):
        self.resolver = resolver
        self.strict = strict

    def evaluate(self, expression: Expression) -> Any:
        """
        Вычисляет значение выражения.

        Raises:
            ExpressionEvaluationError: При ошибке вычисления
        """
        expr_type = expression.get_type()

        if expr_type == ExprType.PATH:
            return self.resolver.resolve(cast(PathExpression, expression), self)
        elif expr_type == ExprType.LITERAL:
            return cast(Literal, expression).value
        elif expr_type == ExprType.COMPARE:
            return self._evaluate_compare(cast(Comparison, expression))
        elif expr_type == ExprType.GROUP:
            return self.evaluate(cast(GroupExpression, expression).expression)
        elif expr_type == ExprType.NOT:
            return not is_truthy(self.evaluate(cast(NotExpression, expression).expression))
        elif expr_type == ExprType.AND:
            return self._evaluate_and(cast(BinaryExpression, expression))
        elif expr_type == ExprType.OR:
            return self._evaluate_or(cast(BinaryExpression, expression))
        else:
            raise ExpressionEvaluationError(f"Unknown expression type: {expr_type}", str(expression))

    def evaluate_bool(self, expression: Expression) -> bool:
        """Вычисляет выражение как условие."""
        return is_truthy(self.evaluate(expression))

    def missing(self, path: PathExpression, name: str) -> Any:
        """
        Реакция на отсутствующее поле.

        Returns:
            None в нестрогом режиме

        Raises:
            ExpressionEvaluationError: В строгом режиме
        """
        if self.strict:
            raise ExpressionEvaluationError(f"Cannot resolve '{name}'", str(path))
        return None

    def _evaluate_and(self, expression: BinaryExpression) -> bool:
        # Короткое вычисление
        if not self.evaluate_bool(expression.left):
            return False
        return self.evaluate_bool(expression.right)

    def _evaluate_or(self, expression: BinaryExpression) -> bool:
        if self.evaluate_bool(expression.left):
            return True
        return self.evaluate_bool(expression.right)

    def _evaluate_compare(self, expression: Comparison) -> bool:
        left = self.evaluate(expression.left)
        right = self.evaluate(expression.right)
        op = expression.operator

        left_num, right_num = _as_number(left), _as_number(right)
        if left_num is not None and right_num is not None:
            a, b = left_num, right_num
        else:
            a, b = to_key_string(left), to_key_string(right)

        if op == CompareOp.EQ:
            return a == b
        if op == CompareOp.NE:
            return a != b
        if op == CompareOp.GT:
            return a > b
        if op == CompareOp.LT:
            return a < b
        if op == CompareOp.GE:
            return a >= b
        if op == CompareOp.LE:
            return a <= b
        raise ExpressionEvaluationError(f"Unknown operator: {op}", str(expression))


# Значения, у которых шаблон не видит атрибутов и методов
_OPAQUE_TYPES = (str, bytes, bytearray, int, float, complex, bool, list, tuple, set, frozenset)


def lookup_member(value: Any, name: str, args: Sequence[Any] = (), called: bool = False) -> Any:
    """
    Ищет поле или метод в значении.

    Порядок: ключ словаря, затем атрибут. Вызываемые члены вызываются
    с переданными аргументами. Атрибуты с "_" в начале и члены встроенных
    типов (str, int, list, ...) не видны: $title у строки - отсутствующее поле.

    Returns:
        Найденное значение или MISSING
    """
    if value is None or value is MISSING:
        return MISSING

    if isinstance(value, Mapping):
        if name not in value:
            return MISSING
        member = value[name]
    else:
        if name.startswith("_") or isinstance(value, _OPAQUE_TYPES):
            return MISSING
        member = getattr(value, name, MISSING)
        if member is MISSING:
            return MISSING

    if callable(member):
        return member(*args)
    if called and args:
        raise ExpressionEvaluationError(f"'{name}' is not callable", name)
    return member


def is_truthy(value: Any) -> bool:
    """Истинность значения в условиях шаблона."""
    if value is None or value is MISSING:
        return False
    if isinstance(value, str):
        return value not in ("", "0")
    return bool(value)


def to_key_string(value: Any) -> str:
    """
    Строковое представление значения для ключа кэша и вывода.

    None → "", True → "1", False → "0", иначе str(value).
    """
    if value is None or value is MISSING:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _as_number(value: Any):
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value) if "." in value else int(value)
        except ValueError:
            return None
    return None


__all__ = [
    "MISSING",
    "PathResolver",
    "ExpressionEvaluator",
    "lookup_member",
    "is_truthy",
    "to_key_string",
]
