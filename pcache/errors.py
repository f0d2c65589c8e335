"""
Base exception for user-facing errors.

All expected errors that should be displayed to the user
as clean messages (without stack traces) must inherit from PCUserError.

Programming errors and bugs should NOT inherit from PCUserError:
they will propagate with full tracebacks.
"""

from __future__ import annotations

from typing import Optional


class PCUserError(Exception):
    """
    Base class for all user-facing errors in pcache.

    These errors indicate problems that the template author or operator
    can fix: template syntax, invalid nesting, missing data fields,
    configuration issues, an unavailable cache backend.
    """
    pass


class StructuralError(PCUserError):
    """
    Недопустимая вложенность блоков при компиляции шаблона.

    Блок cached/uncached находится внутри loop или if. Ошибка фатальна
    для компиляции шаблона и не может быть обойдена рендером без кэша.
    """

    def __init__(self, message: str, line: int, column: int, template_name: str = ""):
        where = f"{template_name}:" if template_name else ""
        super().__init__(f"{message} at {where}{line}:{column}")
        self.line = line
        self.column = column
        self.template_name = template_name


class ExpressionEvaluationError(PCUserError):
    """Ключевое выражение или условие не удалось вычислить в контексте данных."""

    def __init__(self, message: str, expression: str = ""):
        super().__init__(f"{message} (expression: {expression})" if expression else message)
        self.expression = expression


class StoreUnavailableError(PCUserError):
    """Хранилище кэша не смогло выполнить операцию get/set."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.cause = cause


__all__ = [
    "PCUserError",
    "StructuralError",
    "ExpressionEvaluationError",
    "StoreUnavailableError",
]
