"""
Лексический анализатор шаблонов.

Токенизирует исходный текст шаблона, разбивая его на последовательность
токенов для последующего синтаксического анализа:
- обычный текст
- директивы <% ... %>
- переменные $Name.Field и {$Name.Field}
- комментарии <%-- ... --%> (отбрасываются)
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from typing import List, Tuple

from ..errors import PCUserError

logger = logging.getLogger(__name__)


class TokenType(enum.Enum):
    """Типы токенов в шаблоне."""

    # Текстовый контент
    TEXT = "TEXT"

    # Директива <% ... %>
    DIRECTIVE = "DIRECTIVE"

    # Переменная $Name или {$Name}
    VARIABLE = "VARIABLE"

    # Специальные токены
    EOF = "EOF"


@dataclass(frozen=True)
class Token:
    """
    Токен с позиционной информацией для точной диагностики ошибок.

    Для DIRECTIVE value - содержимое между <% и %> без пробелов по краям,
    для VARIABLE - текст выражения без фигурных скобок.
    """
    type: TokenType
    value: str
    position: int        # Позиция начала в исходном тексте
    end: int             # Позиция конца (исключительно)
    line: int            # Номер строки (начиная с 1)
    column: int          # Номер колонки (начиная с 1)

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"


class LexerError(PCUserError):
    """Ошибка лексического анализа."""

    def __init__(self, message: str, line: int, column: int, position: int):
        super().__init__(f"{message} at {line}:{column}")
        self.line = line
        self.column = column
        self.position = position


class TemplateLexer:
    """
    Лексический анализатор шаблонов.

    Ищет ближайшую специальную конструкцию и выдает текст перед ней
    одним TEXT токеном. Экранированный \\$ выводится как литерал $.
    """

    # Начала специальных конструкций (порядок альтернатив важен)
    _SPECIAL = re.compile(r'<%--|<%|\{\$|\$[A-Za-z_]|\\\$')

    # Переменная в тексте: $Name, $Name.Field, $Name.Method('x').Other
    _VARIABLE = re.compile(
        r'\$[A-Za-z_]\w*(?:\([^()]*\))?(?:\.[A-Za-z_]\w*(?:\([^()]*\))?)*'
    )

    def __init__(self, text: str):
        self.text = text
        self.length = len(text)

    def tokenize(self) -> List[Token]:
        """
        Разбивает шаблон на токены.

        Returns:
            Список токенов, заканчивающийся EOF

        Raises:
            LexerError: При незакрытой директиве или комментарии
        """
        tokens: List[Token] = []
        text_parts: List[str] = []
        text_start = 0
        position = 0

        def flush_text(end: int) -> None:
            nonlocal text_parts
            if text_parts:
                value = "".join(text_parts)
                line, column = self.location(text_start)
                tokens.append(Token(TokenType.TEXT, value, text_start, end, line, column))
                text_parts = []

        while position < self.length:
            match = self._SPECIAL.search(self.text, position)
            if match is None:
                if not text_parts:
                    text_start = position
                text_parts.append(self.text[position:])
                position = self.length
                break

            start = match.start()
            if start > position:
                if not text_parts:
                    text_start = position
                text_parts.append(self.text[position:start])

            opener = match.group(0)

            if opener == "\\$":
                if not text_parts:
                    text_start = start
                text_parts.append("$")
                position = start + 2
                continue

            flush_text(start)

            if opener == "<%--":
                position = self._skip_comment(start)
            elif opener == "<%":
                token = self._read_directive(start)
                tokens.append(token)
                position = token.end
            elif opener == "{$":
                token = self._read_braced_variable(start)
                tokens.append(token)
                position = token.end
            else:
                token = self._read_variable(start)
                tokens.append(token)
                position = token.end

        flush_text(self.length)

        line, column = self.location(self.length)
        tokens.append(Token(TokenType.EOF, "", self.length, self.length, line, column))

        logger.debug(f"Tokenized template into {len(tokens)} tokens")
        return tokens

    def location(self, position: int) -> Tuple[int, int]:
        """Вычисляет (строка, колонка) для позиции в тексте."""
        line = self.text.count("\n", 0, position) + 1
        line_start = self.text.rfind("\n", 0, position) + 1
        return line, position - line_start + 1

    def _skip_comment(self, start: int) -> int:
        end = self.text.find("--%>", start + 4)
        if end == -1:
            line, column = self.location(start)
            raise LexerError("Unterminated template comment", line, column, start)
        return end + 4

    def _read_directive(self, start: int) -> Token:
        end = self.text.find("%>", start + 2)
        if end == -1:
            line, column = self.location(start)
            raise LexerError("Unterminated directive", line, column, start)
        line, column = self.location(start)
        content = self.text[start + 2:end].strip()
        return Token(TokenType.DIRECTIVE, content, start, end + 2, line, column)

    def _read_braced_variable(self, start: int) -> Token:
        end = self.text.find("}", start + 2)
        if end == -1:
            line, column = self.location(start)
            raise LexerError("Unterminated {$...} variable", line, column, start)
        line, column = self.location(start)
        content = self.text[start + 1:end].strip()
        return Token(TokenType.VARIABLE, content, start, end + 1, line, column)

    def _read_variable(self, start: int) -> Token:
        match = self._VARIABLE.match(self.text, start)
        line, column = self.location(start)
        # _SPECIAL гарантирует хотя бы $ и одну букву
        assert match is not None
        return Token(TokenType.VARIABLE, match.group(0), start, match.end(), line, column)


def tokenize_template(text: str) -> List[Token]:
    """
    Удобная функция для токенизации шаблона.

    Args:
        text: Исходный текст шаблона

    Returns:
        Список токенов
    """
    return TemplateLexer(text).tokenize()


__all__ = ["TokenType", "Token", "LexerError", "TemplateLexer", "tokenize_template"]
