"""Scanner — the lexical state machine behind the document parser.

The scanner walks the text with four states:

    NORMAL --'"'-------------> IN_STRING ----'"'----> NORMAL
    NORMAL --'\"\"\"'--------> IN_MULTILINE_STRING --'\"\"\"'--> NORMAL
    NORMAL --'//'------------> IN_COMMENT ---'\\n'----> NORMAL

Inside both string states a backslash consumes the following character as a
pair. ``transition`` is defined for every character in every state and always
advances, so scanning terminates on any input. Structural characters (braces,
brackets, colons, commas) are only recognised in NORMAL.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from startkit.errors import StructuralParseError


class ScanState(Enum):
    NORMAL = "normal"
    IN_STRING = "in_string"
    IN_MULTILINE_STRING = "in_multiline_string"
    IN_COMMENT = "in_comment"


class TokenKind(Enum):
    STRING = "string"
    MULTILINE_STRING = "multiline_string"
    COMMENT = "comment"
    NEWLINE = "newline"
    WORD = "word"  # run of identifier characters
    LBRACE = "{"
    RBRACE = "}"
    LBRACKET = "["
    RBRACKET = "]"
    LPAREN = "("
    RPAREN = ")"
    COLON = ":"
    COMMA = ","
    OTHER = "other"  # any other single character
    EOF = "eof"


TRIPLE_QUOTE = '"""'
WORD_CHARS = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_$#")

_PUNCTUATION = {
    "{": TokenKind.LBRACE,
    "}": TokenKind.RBRACE,
    "[": TokenKind.LBRACKET,
    "]": TokenKind.RBRACKET,
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
    ":": TokenKind.COLON,
    ",": TokenKind.COMMA,
}


@dataclass
class Token:
    kind: TokenKind
    text: str
    start: int
    end: int


def transition(state: ScanState, text: str, pos: int) -> tuple[ScanState, int]:
    """Return the state after the character(s) at ``pos`` and how many were consumed.

    Always consumes at least one character while ``pos < len(text)``.
    """
    char = text[pos]
    if state is ScanState.NORMAL:
        if text.startswith(TRIPLE_QUOTE, pos):
            return ScanState.IN_MULTILINE_STRING, 3
        if char == '"':
            return ScanState.IN_STRING, 1
        if text.startswith("//", pos):
            return ScanState.IN_COMMENT, 2
        return ScanState.NORMAL, 1

    if state is ScanState.IN_STRING:
        if char == "\\":
            return ScanState.IN_STRING, min(2, len(text) - pos)
        if char == '"':
            return ScanState.NORMAL, 1
        return ScanState.IN_STRING, 1

    if state is ScanState.IN_MULTILINE_STRING:
        if char == "\\":
            return ScanState.IN_MULTILINE_STRING, min(2, len(text) - pos)
        if text.startswith(TRIPLE_QUOTE, pos):
            return ScanState.NORMAL, 3
        return ScanState.IN_MULTILINE_STRING, 1

    # IN_COMMENT
    if char == "\n":
        return ScanState.NORMAL, 1
    return ScanState.IN_COMMENT, 1


def tokenize(text: str) -> list[Token]:
    """Split ``text`` into tokens, ending with a single EOF token.

    Raises StructuralParseError for strings left open at end of input and
    for line breaks inside single-line strings.
    """
    tokens: list[Token] = []
    state = ScanState.NORMAL
    region_start = 0
    word_start = -1
    pos = 0
    length = len(text)

    def close_word(at: int) -> None:
        nonlocal word_start
        if word_start >= 0:
            tokens.append(Token(TokenKind.WORD, text[word_start:at], word_start, at))
            word_start = -1

    while pos < length:
        char = text[pos]
        new_state, consumed = transition(state, text, pos)

        if state is ScanState.NORMAL:
            if new_state is not ScanState.NORMAL:
                close_word(pos)
                region_start = pos
            elif char in WORD_CHARS:
                if word_start < 0:
                    word_start = pos
            else:
                close_word(pos)
                if char == "\n":
                    tokens.append(Token(TokenKind.NEWLINE, char, pos, pos + 1))
                elif char in _PUNCTUATION:
                    tokens.append(Token(_PUNCTUATION[char], char, pos, pos + 1))
                elif not char.isspace():
                    tokens.append(Token(TokenKind.OTHER, char, pos, pos + 1))
        elif state is ScanState.IN_STRING:
            if "\n" in text[pos : pos + consumed]:
                raise StructuralParseError(
                    "line break in single-line string", *line_and_column(text, pos)
                )
            if new_state is ScanState.NORMAL:
                end = pos + consumed
                tokens.append(Token(TokenKind.STRING, text[region_start:end], region_start, end))
        elif state is ScanState.IN_MULTILINE_STRING:
            if new_state is ScanState.NORMAL:
                end = pos + consumed
                tokens.append(
                    Token(TokenKind.MULTILINE_STRING, text[region_start:end], region_start, end)
                )
        elif new_state is ScanState.NORMAL:
            # comment ends at the newline, which is its own token
            tokens.append(Token(TokenKind.COMMENT, text[region_start:pos].rstrip(), region_start, pos))
            tokens.append(Token(TokenKind.NEWLINE, "\n", pos, pos + 1))

        state = new_state
        pos += consumed

    if state is ScanState.NORMAL:
        close_word(length)
    elif state is ScanState.IN_COMMENT:
        tokens.append(Token(TokenKind.COMMENT, text[region_start:].rstrip(), region_start, length))
    else:
        raise StructuralParseError("unterminated string", *line_and_column(text, region_start))

    tokens.append(Token(TokenKind.EOF, "", length, length))
    return tokens


def line_and_column(text: str, pos: int) -> tuple[int, int]:
    """1-based line and column of ``pos`` in ``text``."""
    pos = max(0, min(pos, len(text)))
    line = text.count("\n", 0, pos) + 1
    column = pos - (text.rfind("\n", 0, pos) + 1) + 1
    return line, column
