"""Document parser — builds the document tree from scanner tokens.

Grammar, informally:

    document := decl* EOF
    decl     := label ["?" | "!"] ":" value | raw
    value    := string | multiline | bool | "{" decl* "}" | "[" value* "]" | raw
    raw      := tokens up to the next newline, comma or closing bracket at depth 0

Values the tree does not model (numbers, references, expressions) are kept as
Passthrough source text, and declarations that are not fields are kept as
RawDecl, so nothing in a document is silently dropped.
"""

from __future__ import annotations

from startkit.document.nodes import (
    BoolValue,
    Decl,
    Document,
    Field,
    FieldValue,
    ListValue,
    Passthrough,
    RawDecl,
    StringValue,
    StructValue,
)
from startkit.document.scanner import Token, TokenKind, line_and_column, tokenize
from startkit.document.strings import Interpolation, decode_multiline, decode_string
from startkit.errors import StructuralParseError

MAX_DEPTH = 100

_OPENERS = {TokenKind.LBRACE, TokenKind.LBRACKET, TokenKind.LPAREN}
_CLOSERS = {TokenKind.RBRACE, TokenKind.RBRACKET, TokenKind.RPAREN}
_VALUE_END = {
    TokenKind.NEWLINE,
    TokenKind.COMMA,
    TokenKind.COMMENT,
    TokenKind.RBRACE,
    TokenKind.RBRACKET,
    TokenKind.EOF,
}


def parse(source: str | bytes) -> Document:
    """Parse a configuration document.

    Raises StructuralParseError for malformed input; never anything else.
    """
    if isinstance(source, bytes):
        source = source.decode("utf-8", errors="replace")
    text = source.replace("\r\n", "\n").replace("\r", "\n")
    if text.startswith("\ufeff"):
        text = text[1:]
    return _Parser(text).parse_document()


class _Parser:
    def __init__(self, text: str):
        self.text = text
        self.tokens = tokenize(text)
        self.pos = 0
        self.depth = 0

    # --- Token helpers ---

    def peek(self, offset: int = 0) -> Token:
        index = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[index]

    def advance(self) -> Token:
        token = self.tokens[self.pos]
        if token.kind is not TokenKind.EOF:
            self.pos += 1
        return token

    def error(self, message: str, token: Token | None = None) -> StructuralParseError:
        token = token or self.peek()
        return StructuralParseError(message, *line_and_column(self.text, token.start))

    def enter(self) -> None:
        self.depth += 1
        if self.depth > MAX_DEPTH:
            raise self.error("nesting too deep")

    # --- Declarations ---

    def parse_document(self) -> Document:
        decls, trailing = self.parse_decls(TokenKind.EOF)
        return Document(decls=decls, trailing_comments=trailing)

    def parse_decls(self, end: TokenKind) -> tuple[list[Decl], list[str]]:
        """Parse declarations until ``end`` (not consumed).

        Returns the declarations and the comments left before ``end``.
        """
        decls: list[Decl] = []
        pending: list[str] = []
        blank = False
        newlines = 0

        while True:
            token = self.peek()
            if token.kind is end:
                break
            if token.kind is TokenKind.EOF:
                raise self.error("unbalanced braces: missing '}'", token)
            if token.kind in _CLOSERS:
                raise self.error(f"unexpected '{token.text}'", token)

            if token.kind is TokenKind.NEWLINE:
                self.advance()
                newlines += 1
                if newlines >= 2:
                    if pending:
                        if pending[-1] != "":
                            pending.append("")
                    else:
                        blank = True
                continue
            if token.kind is TokenKind.COMMA:
                self.advance()
                continue
            if token.kind is TokenKind.COMMENT:
                self.advance()
                pending.append(token.text)
                newlines = 0
                continue

            decl = self.parse_decl()
            decl.comments = pending
            decl.blank_before = blank
            decl.trailing_comment = self.parse_trailing_comment()
            decls.append(decl)
            pending = []
            blank = False
            newlines = 0

        while pending and pending[-1] == "":
            pending.pop()
        return decls, pending

    def parse_decl(self) -> Decl:
        start = self.pos
        label = self.parse_label()
        if label is not None:
            name, marker = label
            if self.peek().kind is TokenKind.COLON:
                self.advance()
                value = self.parse_value()
                return Field(name=name, value=value, marker=marker)
        self.pos = start
        return RawDecl(text=self.parse_raw("declaration"))

    def parse_label(self) -> tuple[str, str] | None:
        token = self.peek()
        if token.kind is TokenKind.WORD:
            name = token.text
        elif token.kind is TokenKind.STRING:
            try:
                name = decode_string(token.text)
            except Interpolation:
                return None
        else:
            return None
        self.advance()

        marker = ""
        nxt = self.peek()
        if nxt.kind is TokenKind.OTHER and nxt.text in ("?", "!") and nxt.start == token.end:
            marker = nxt.text
            self.advance()
        return name, marker

    def parse_trailing_comment(self) -> str:
        if self.peek().kind is TokenKind.COMMA:
            self.advance()
        if self.peek().kind is TokenKind.COMMENT:
            return self.advance().text
        return ""

    # --- Values ---

    def parse_value(self) -> FieldValue:
        start = self.pos
        value = self.parse_plain_value()
        if value is not None and self.peek().kind in _VALUE_END:
            return value
        # Not a plain value (or followed by an operator): keep the source text.
        self.pos = start
        return Passthrough(self.parse_raw("value"))

    def parse_plain_value(self) -> FieldValue | None:
        token = self.peek()
        if token.kind is TokenKind.STRING:
            self.advance()
            try:
                return StringValue(decode_string(token.text))
            except Interpolation:
                return None
        if token.kind is TokenKind.MULTILINE_STRING:
            self.advance()
            try:
                return StringValue(decode_multiline(token.text))
            except Interpolation:
                return None
        if token.kind is TokenKind.WORD and token.text in ("true", "false"):
            self.advance()
            return BoolValue(token.text == "true")
        if token.kind is TokenKind.LBRACE:
            return self.parse_struct()
        if token.kind is TokenKind.LBRACKET:
            return self.parse_list()
        return None

    def parse_struct(self) -> StructValue:
        self.enter()
        self.advance()  # {
        fields, trailing = self.parse_decls(TokenKind.RBRACE)
        self.advance()  # }
        self.depth -= 1
        return StructValue(fields=fields, trailing_comments=trailing)

    def parse_list(self) -> ListValue:
        self.enter()
        opening = self.advance()  # [
        result = ListValue()
        pending: list[str] = []

        while True:
            token = self.peek()
            if token.kind is TokenKind.RBRACKET:
                self.advance()
                break
            if token.kind is TokenKind.EOF:
                raise self.error("unbalanced brackets: missing ']'", opening)
            if token.kind in (TokenKind.RBRACE, TokenKind.RPAREN):
                raise self.error(f"unexpected '{token.text}'", token)
            if token.kind in (TokenKind.NEWLINE, TokenKind.COMMA):
                self.advance()
                continue
            if token.kind is TokenKind.COMMENT:
                self.advance()
                pending.append(token.text)
                continue

            if pending:
                result.item_comments[len(result.items)] = pending
                pending = []
            result.items.append(self.parse_value())

        result.trailing_comments = pending
        self.depth -= 1
        return result

    def parse_raw(self, what: str) -> str:
        """Consume tokens up to the end of the current value or declaration.

        Bracket nesting is tracked so that ``a & {b: 1}`` or a parenthesised
        import list is taken as one unit.
        """
        first = self.peek()
        stack: list[Token] = []
        last: Token | None = None
        while True:
            token = self.peek()
            if token.kind is TokenKind.EOF:
                if stack:
                    raise self.error(f"unbalanced '{stack[-1].text}'", stack[-1])
                break
            if not stack and (token.kind in _VALUE_END or token.kind is TokenKind.RPAREN):
                break
            if token.kind in _OPENERS:
                stack.append(token)
            elif token.kind in _CLOSERS:
                if not _closes(stack[-1], token):
                    raise self.error(f"unexpected '{token.text}'", token)
                stack.pop()
            last = self.advance()

        if last is None:
            raise self.error(f"missing {what}", first)
        return self.text[first.start : last.end].strip()


def _closes(opener: Token, closer: Token) -> bool:
    pairs = {
        TokenKind.LBRACE: TokenKind.RBRACE,
        TokenKind.LBRACKET: TokenKind.RBRACKET,
        TokenKind.LPAREN: TokenKind.RPAREN,
    }
    return pairs[opener.kind] is closer.kind
