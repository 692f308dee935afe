"""Tokenizer for Go source files."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import List

from go2proto.errors import Go2ProtoError


class GoTokenType(Enum):
    # Keywords
    PACKAGE = auto()
    IMPORT = auto()
    TYPE = auto()
    STRUCT = auto()
    INTERFACE = auto()
    MAP = auto()
    CHAN = auto()
    FUNC = auto()

    # Delimiters
    LBRACE = auto()
    RBRACE = auto()
    LPAREN = auto()
    RPAREN = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    SEMICOLON = auto()
    COMMA = auto()
    DOT = auto()
    ELLIPSIS = auto()
    STAR = auto()
    ASSIGN = auto()
    TILDE = auto()
    ARROW = auto()
    OPERATOR = auto()

    # Literals
    IDENT = auto()
    NUMBER = auto()
    STRING = auto()
    CHAR = auto()

    # Special
    EOF = auto()


_KEYWORDS = {
    "package": GoTokenType.PACKAGE,
    "import": GoTokenType.IMPORT,
    "type": GoTokenType.TYPE,
    "struct": GoTokenType.STRUCT,
    "interface": GoTokenType.INTERFACE,
    "map": GoTokenType.MAP,
    "chan": GoTokenType.CHAN,
    "func": GoTokenType.FUNC,
}

_SINGLE_CHARS = {
    "{": GoTokenType.LBRACE,
    "}": GoTokenType.RBRACE,
    "(": GoTokenType.LPAREN,
    ")": GoTokenType.RPAREN,
    "[": GoTokenType.LBRACKET,
    "]": GoTokenType.RBRACKET,
    ";": GoTokenType.SEMICOLON,
    ",": GoTokenType.COMMA,
    "*": GoTokenType.STAR,
    "~": GoTokenType.TILDE,
}

# A line ending after one of these gets an implicit semicolon.
_SEMICOLON_TRIGGERS = {
    GoTokenType.IDENT,
    GoTokenType.NUMBER,
    GoTokenType.STRING,
    GoTokenType.CHAR,
    GoTokenType.RPAREN,
    GoTokenType.RBRACKET,
    GoTokenType.RBRACE,
}

_OPERATOR_CHARS = set("+-/%&|^<>=!:")

_ESCAPE_RE = re.compile(
    r"\\(?:x[0-9a-fA-F]{2}|u[0-9a-fA-F]{4}|U[0-9a-fA-F]{8}|[0-7]{3}|.)",
    re.DOTALL,
)

_SIMPLE_ESCAPES = {
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
    "\\": "\\",
    "'": "'",
    '"': '"',
}


class GoParseError(Go2ProtoError):
    def __init__(self, message: str, line: int = 0, col: int = 0):
        if line:
            super().__init__(f"Line {line}:{col}: {message}")
        else:
            super().__init__(message)


@dataclass
class GoToken:
    type: GoTokenType
    value: str
    line: int
    col: int


def unquote_go_string(body: str) -> str:
    """Decode the escape sequences of an interpreted Go string body."""

    def _replace(m: re.Match) -> str:
        esc = m.group(0)[1:]
        if esc[0] in "xuU" and len(esc) > 1:
            return chr(int(esc[1:], 16))
        if esc[0] in "01234567" and len(esc) == 3:
            return chr(int(esc, 8))
        return _SIMPLE_ESCAPES.get(esc, esc)

    return _ESCAPE_RE.sub(_replace, body)


def tokenize_go(text: str) -> List[GoToken]:
    """Tokenize a Go source string into a list of tokens.

    Implicit semicolons are emitted as SEMICOLON tokens with value "\\n".
    """
    tokens: List[GoToken] = []
    i = 0
    line = 1
    col = 1
    n = len(text)

    def _end_of_line() -> None:
        if tokens and tokens[-1].type in _SEMICOLON_TRIGGERS:
            tokens.append(GoToken(GoTokenType.SEMICOLON, "\n", line, col))

    while i < n:
        ch = text[i]

        # Whitespace
        if ch in (" ", "\t", "\r"):
            i += 1
            col += 1
            continue

        if ch == "\n":
            _end_of_line()
            i += 1
            line += 1
            col = 1
            continue

        # Line comment: the newline that ends it is handled above
        if ch == "/" and i + 1 < n and text[i + 1] == "/":
            while i < n and text[i] != "\n":
                i += 1
            continue

        # General comment; one spanning lines acts like a newline
        if ch == "/" and i + 1 < n and text[i + 1] == "*":
            start_line, start_col = line, col
            end = text.find("*/", i + 2)
            if end < 0:
                raise GoParseError("comment not terminated", start_line, start_col)
            comment = text[i:end + 2]
            newlines = comment.count("\n")
            if newlines:
                _end_of_line()
                line += newlines
                col = len(comment) - comment.rfind("\n")
            else:
                col += len(comment)
            i = end + 2
            continue

        # Interpreted string
        if ch == '"':
            start_col = col
            j = i + 1
            while j < n and text[j] != '"':
                if text[j] == "\n":
                    raise GoParseError("string literal not terminated", line, start_col)
                j += 2 if text[j] == "\\" else 1
            if j >= n:
                raise GoParseError("string literal not terminated", line, start_col)
            tokens.append(
                GoToken(GoTokenType.STRING, unquote_go_string(text[i + 1:j]), line, start_col)
            )
            col += j + 1 - i
            i = j + 1
            continue

        # Raw string
        if ch == "`":
            start_line, start_col = line, col
            end = text.find("`", i + 1)
            if end < 0:
                raise GoParseError("raw string literal not terminated", start_line, start_col)
            body = text[i + 1:end]
            tokens.append(
                GoToken(GoTokenType.STRING, body.replace("\r", ""), start_line, start_col)
            )
            newlines = body.count("\n")
            if newlines:
                line += newlines
                col = len(body) - body.rfind("\n") + 1
            else:
                col += len(body) + 2
            i = end + 1
            continue

        # Rune literal
        if ch == "'":
            start_col = col
            j = i + 1
            while j < n and text[j] != "'":
                if text[j] == "\n":
                    raise GoParseError("rune literal not terminated", line, start_col)
                j += 2 if text[j] == "\\" else 1
            if j >= n:
                raise GoParseError("rune literal not terminated", line, start_col)
            tokens.append(GoToken(GoTokenType.CHAR, text[i:j + 1], line, start_col))
            col += j + 1 - i
            i = j + 1
            continue

        # Ellipsis / selector dot / fractional number
        if ch == ".":
            if text.startswith("...", i):
                tokens.append(GoToken(GoTokenType.ELLIPSIS, "...", line, col))
                i += 3
                col += 3
                continue
            if not (i + 1 < n and text[i + 1].isdigit()):
                tokens.append(GoToken(GoTokenType.DOT, ".", line, col))
                i += 1
                col += 1
                continue

        # Number (decimal, hex, octal, binary, float, imaginary, with _ separators)
        if ch.isdigit() or ch == ".":
            start = i
            start_col = col
            i += 1
            while i < n and (text[i].isalnum() or text[i] in "._"):
                if text[i] in "eEpP" and i + 1 < n and text[i + 1] in "+-":
                    i += 1
                i += 1
            col += i - start
            tokens.append(GoToken(GoTokenType.NUMBER, text[start:i], line, start_col))
            continue

        # Identifier / keyword
        if ch.isalpha() or ch == "_":
            start = i
            start_col = col
            while i < n and (text[i].isalnum() or text[i] == "_"):
                i += 1
                col += 1
            word = text[start:i]
            tok_type = _KEYWORDS.get(word, GoTokenType.IDENT)
            tokens.append(GoToken(tok_type, word, line, start_col))
            continue

        # Channel arrow
        if ch == "<" and i + 1 < n and text[i + 1] == "-":
            tokens.append(GoToken(GoTokenType.ARROW, "<-", line, col))
            i += 2
            col += 2
            continue

        if ch in _SINGLE_CHARS:
            tokens.append(GoToken(_SINGLE_CHARS[ch], ch, line, col))
            i += 1
            col += 1
            continue

        # Plain assignment, as in type aliases: type A = B
        if ch == "=" and not (i + 1 < n and text[i + 1] == "="):
            tokens.append(GoToken(GoTokenType.ASSIGN, "=", line, col))
            i += 1
            col += 1
            continue

        # Any other operator, kept as one token per run of operator characters
        if ch in _OPERATOR_CHARS:
            start = i
            start_col = col
            while i < n and text[i] in _OPERATOR_CHARS:
                i += 1
                col += 1
            tokens.append(GoToken(GoTokenType.OPERATOR, text[start:i], line, start_col))
            continue

        raise GoParseError(f"invalid character {ch!r}", line, col)

    _end_of_line()
    tokens.append(GoToken(GoTokenType.EOF, "", line, col))
    return tokens
