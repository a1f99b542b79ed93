"""String literal and label quoting for the document format."""

from __future__ import annotations

import re

IDENTIFIER_RE = re.compile(r"^(?:_?#)?[A-Za-z_$][A-Za-z0-9_$]*$")
KEYWORDS = frozenset({"true", "false", "null", "package", "import", "for", "in", "if", "let"})

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    '"': '"',
    "\\": "\\",
    "/": "/",
    "'": "'",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "v": "\v",
}
_HEX_ESCAPES = {"x": 2, "u": 4, "U": 8}


class Interpolation(Exception):
    """Raised when a literal contains ``\\(...)`` and cannot be decoded to plain text."""


def unescape(body: str) -> str:
    """Decode backslash escapes; unknown escapes are kept verbatim."""
    if "\\" not in body:
        return body
    out: list[str] = []
    i = 0
    while i < len(body):
        char = body[i]
        if char != "\\" or i + 1 >= len(body):
            out.append(char)
            i += 1
            continue
        nxt = body[i + 1]
        if nxt == "(":
            raise Interpolation(body)
        if nxt in _SIMPLE_ESCAPES:
            out.append(_SIMPLE_ESCAPES[nxt])
            i += 2
            continue
        if nxt in _HEX_ESCAPES:
            width = _HEX_ESCAPES[nxt]
            digits = body[i + 2 : i + 2 + width]
            if len(digits) == width and all(c in "0123456789abcdefABCDEF" for c in digits):
                code = int(digits, 16)
                if code <= 0x10FFFF:
                    out.append(chr(code))
                    i += 2 + width
                    continue
        out.append(char)
        out.append(nxt)
        i += 2
    return "".join(out)


def decode_string(raw: str) -> str:
    """Decode a single-line literal including its surrounding quotes."""
    return unescape(raw[1:-1])


def decode_multiline(raw: str) -> str:
    """Decode a triple-quoted literal.

    The indentation of the closing delimiter is removed from every content
    line, and the line breaks after the opening and before the closing
    delimiter are not part of the value.
    """
    inner = raw[3:-3]
    if not inner.startswith("\n"):
        return unescape(inner)
    lines = inner.split("\n")[1:]
    indent = lines[-1] if not lines[-1].strip() else ""
    body = lines[:-1] if indent or not lines[-1] else lines
    stripped = []
    for line in body:
        if indent and line.startswith(indent):
            line = line[len(indent) :]
        elif not line.strip():
            line = ""
        stripped.append(line)
    return unescape("\n".join(stripped))


def _escape_char(char: str) -> str:
    if char == "\\":
        return "\\\\"
    if char == "\t":
        return char
    code = ord(char)
    if code < 0x20 or code == 0x7F or 0xD800 <= code <= 0xDFFF:
        return f"\\u{code:04x}"
    return char


def quote(value: str) -> str:
    """Encode ``value`` as a single-line literal."""
    out = ['"']
    for char in value:
        if char == '"':
            out.append('\\"')
        elif char == "\t":
            out.append("\\t")
        else:
            out.append(_escape_char(char))
    out.append('"')
    return "".join(out)


def quote_multiline(value: str, indent: str) -> str:
    """Encode ``value`` as a triple-quoted literal whose lines are indented by ``indent``."""
    lines = []
    for line in value.split("\n"):
        encoded: list[str] = []
        quotes = 0
        for char in line:
            if char == '"':
                quotes += 1
                if quotes == 3:
                    encoded.append('\\"')
                    quotes = 0
                    continue
            else:
                quotes = 0
            if char == "\r":
                encoded.append("\\r")
            else:
                encoded.append(_escape_char(char))
        text = "".join(encoded)
        lines.append(indent + text if text else "")
    return '"""\n' + "\n".join(lines) + "\n" + indent + '"""'


def is_identifier(name: str) -> bool:
    return bool(IDENTIFIER_RE.match(name)) and name not in KEYWORDS


def format_label(name: str) -> str:
    """Quote a label only when it is not a plain identifier."""
    return name if is_identifier(name) else quote(name)


def unquote_key(key: str) -> str:
    """Normalise a lookup key written either quoted or bare."""
    key = key.strip()
    if len(key) >= 2 and key.startswith('"') and key.endswith('"'):
        try:
            return decode_string(key)
        except Interpolation:
            return key
    return key
