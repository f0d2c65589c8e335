"""
Язык выражений шаблона: ключи кэша, условия и пути $Name.Field.
"""

from .evaluator import ExpressionEvaluator, MISSING, is_truthy, lookup_member, to_key_string
from .lexer import ExpressionSyntaxError
from .model import Expression, Literal, PathExpression, PathSegment
from .parser import CacheArguments, parse_cache_arguments, parse_expression, parse_path

__all__ = [
    "Expression",
    "Literal",
    "PathExpression",
    "PathSegment",
    "CacheArguments",
    "ExpressionEvaluator",
    "ExpressionSyntaxError",
    "MISSING",
    "is_truthy",
    "lookup_member",
    "to_key_string",
    "parse_expression",
    "parse_path",
    "parse_cache_arguments",
]
