"""
Лексер для разбора выражений шаблона.

Выполняет токенизацию аргументов директив и условий, разбивая строку
на значимые элементы:
- Переменные ($Name)
- Идентификаторы и ключевые слова (if, unless, not, and, or, true, false, null)
- Строковые и числовые литералы
- Операторы сравнения и логические операторы
- Символы (скобки, точка, запятая)
- Пробелы (игнорируются)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List

from ..errors import PCUserError


@dataclass
class Token:
    """
    Токен для парсинга выражений.

    Attributes:
        type: Тип токена (VARIABLE, IDENTIFIER, KEYWORD, STRING, NUMBER,
              OPERATOR, SYMBOL, EOF)
        value: Значение токена
        position: Позиция в исходной строке
    """
    type: str
    value: str
    position: int

    def __repr__(self):
        return f"Token({self.type}, '{self.value}', pos={self.position})"


class ExpressionSyntaxError(PCUserError, ValueError):
    """Ошибка лексического или синтаксического разбора выражения."""

    def __init__(self, message: str, position: int):
        self.message = message
        self.position = position
        super().__init__(f"Expression error at position {position}: {message}")


class ExpressionLexer:
    """
    Лексер для разбиения строки выражения на токены.

    Поддерживаемые токены:
    - VARIABLE: $Name
    - IDENTIFIER: имена полей и методов, переменные без $
    - KEYWORD: if, unless, not, and, or, true, false, null
    - STRING: 'text' или "text" с экранированием \\
    - NUMBER: 42, -1, 1.5
    - OPERATOR: ==, !=, >=, <=, =, >, <, &&, ||, !
    - SYMBOL: ( ) . ,
    - EOF: конец строки
    """

    # Спецификация токенов: (regex_pattern, token_type, ignore_flag)
    TOKEN_SPECS = [
        # Пробелы и табуляция (игнорируем)
        (r'\s+', 'WHITESPACE', True),

        # Литералы
        (r"'(?:[^'\\]|\\.)*'", 'STRING', False),
        (r'"(?:[^"\\]|\\.)*"', 'STRING', False),
        (r'-?\d+(?:\.\d+)?', 'NUMBER', False),

        # Переменные
        (r'\$[A-Za-z_]\w*', 'VARIABLE', False),

        # Операторы (двухсимвольные проверяем первыми)
        (r'==|!=|>=|<=|&&|\|\|', 'OPERATOR', False),
        (r'[=><!]', 'OPERATOR', False),

        # Символы
        (r'[().,]', 'SYMBOL', False),

        # Идентификаторы, ключевые слова определяем после захвата
        (r'[A-Za-z_]\w*', 'IDENTIFIER', False),

        # Неизвестный символ (ошибка)
        (r'.', 'UNKNOWN', False),
    ]

    # Ключевые слова для постпроцессинга
    KEYWORDS = {
        'if', 'unless', 'not', 'and', 'or', 'true', 'false', 'null'
    }

    def __init__(self):
        self._compiled_patterns = [
            (re.compile(pattern, re.DOTALL), token_type, ignore)
            for pattern, token_type, ignore in self.TOKEN_SPECS
        ]

    def tokenize(self, text: str) -> List[Token]:
        """
        Разбивает строку на токены.

        Args:
            text: Строка выражения для разбора

        Returns:
            Список токенов, включая EOF в конце

        Raises:
            ExpressionSyntaxError: При обнаружении неизвестного символа
        """
        tokens: List[Token] = []
        position = 0

        while position < len(text):
            for pattern, token_type, ignore in self._compiled_patterns:
                match = pattern.match(text, position)
                if not match:
                    continue

                value = match.group(0)
                if not ignore:
                    if token_type == 'UNKNOWN':
                        raise ExpressionSyntaxError(f"Unexpected character '{value}'", position)

                    final_type = token_type
                    if token_type == 'IDENTIFIER' and value in self.KEYWORDS:
                        final_type = 'KEYWORD'

                    tokens.append(Token(type=final_type, value=value, position=position))

                position = match.end()
                break

        tokens.append(Token(type='EOF', value='', position=position))
        return tokens


__all__ = ["Token", "ExpressionLexer", "ExpressionSyntaxError"]
