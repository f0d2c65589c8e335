"""
Модели данных для выражений шаблона.

Содержит классы для представления путей ($Name.Field), литералов,
сравнений и логических операций, используемых в ключах кэша и условиях.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Tuple, Union


class ExprType(Enum):
    """Типы выражений в системе."""
    PATH = "path"
    LITERAL = "literal"
    COMPARE = "compare"
    AND = "and"
    OR = "or"
    NOT = "not"
    GROUP = "group"  # для явной группировки в скобках


@dataclass(frozen=True)
class Expression(ABC):
    """Базовый абстрактный класс для всех выражений."""

    @abstractmethod
    def get_type(self) -> ExprType:
        """Возвращает тип выражения."""
        pass

    def __str__(self) -> str:
        """
        Каноническое строковое представление выражения.

        Одинаковые выражения дают одинаковую строку независимо от
        пробелов в исходном тексте, поэтому строка служит идентичностью
        выражения при мемоизации.
        """
        return self._to_string()

    @abstractmethod
    def _to_string(self) -> str:
        """Внутренний метод для создания строкового представления."""
        pass


@dataclass(frozen=True)
class Literal(Expression):
    """
    Литерал: 'text', "text", 42, 1.5, true, false, null
    """
    value: Any

    def get_type(self) -> ExprType:
        return ExprType.LITERAL

    def _to_string(self) -> str:
        if self.value is None:
            return "null"
        if isinstance(self.value, bool):
            return "true" if self.value else "false"
        if isinstance(self.value, str):
            escaped = self.value.replace("\\", "\\\\").replace("'", "\\'")
            return f"'{escaped}'"
        return repr(self.value)


@dataclass(frozen=True)
class PathSegment:
    """Один сегмент пути: имя и необязательные аргументы вызова."""
    name: str
    args: Tuple[Expression, ...] = ()
    called: bool = False  # были ли скобки в исходном тексте

    def __str__(self) -> str:
        if not self.called:
            return self.name
        return f"{self.name}({', '.join(str(a) for a in self.args)})"


@dataclass(frozen=True)
class PathExpression(Expression):
    """
    Путь к значению в контексте данных: $Name, $Name.Field, $List('x').max('y')

    Первый сегмент ищется в текущей области видимости (или в глобальных
    значениях шаблона), каждый следующий - в результате предыдущего.
    """
    segments: Tuple[PathSegment, ...]

    def get_type(self) -> ExprType:
        return ExprType.PATH

    def _to_string(self) -> str:
        return "$" + ".".join(str(s) for s in self.segments)

    @property
    def head(self) -> str:
        return self.segments[0].name


class CompareOp(Enum):
    """Операторы сравнения."""
    EQ = "=="
    NE = "!="
    GT = ">"
    LT = "<"
    GE = ">="
    LE = "<="


@dataclass(frozen=True)
class Comparison(Expression):
    """
    Сравнение двух операндов: left op right
    """
    left: Expression
    operator: CompareOp
    right: Expression

    def get_type(self) -> ExprType:
        return ExprType.COMPARE

    def _to_string(self) -> str:
        return f"{self.left} {self.operator.value} {self.right}"


@dataclass(frozen=True)
class GroupExpression(Expression):
    """
    Группа в скобках: (expression)
    """
    expression: Expression

    def get_type(self) -> ExprType:
        return ExprType.GROUP

    def _to_string(self) -> str:
        return f"({self.expression})"


@dataclass(frozen=True)
class NotExpression(Expression):
    """
    Отрицание: not expression

    Инвертирует истинность вложенного выражения.
    """
    expression: Expression

    def get_type(self) -> ExprType:
        return ExprType.NOT

    def _to_string(self) -> str:
        return f"not {self.expression}"


@dataclass(frozen=True)
class BinaryExpression(Expression):
    """
    Логическая операция: left && right, left || right
    """
    left: Expression
    right: Expression
    operator: ExprType  # AND или OR

    def get_type(self) -> ExprType:
        return self.operator

    def _to_string(self) -> str:
        op_str = "&&" if self.operator == ExprType.AND else "||"
        return f"{self.left} {op_str} {self.right}"


# Аргумент ключа кэша или вызова метода
Argument = Union[PathExpression, Literal]

# Объединенный тип для всех выражений
AnyExpression = Union[
    Literal,
    PathExpression,
    Comparison,
    GroupExpression,
    NotExpression,
    BinaryExpression,
]

__all__ = [
    "Expression",
    "ExprType",
    "Literal",
    "PathSegment",
    "PathExpression",
    "CompareOp",
    "Comparison",
    "GroupExpression",
    "NotExpression",
    "BinaryExpression",
    "Argument",
    "AnyExpression",
]
