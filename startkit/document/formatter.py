"""Formatter — canonical text for a document tree.

Formatting is idempotent: formatting a parsed document, parsing the result and
formatting again yields identical text. Layout rules:

- one declaration per line, indented with tabs
- labels are quoted only when they are not identifiers
- strings containing line breaks become triple-quoted blocks
- lists stay on one line unless they hold structs, multi-line text or comments
- a blank line is kept before a declaration that had one (never before the
  first declaration of a struct)
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
from startkit.document.strings import format_label, quote, quote_multiline

INDENT = "\t"


def format_document(doc: Document) -> str:
    """Serialize a document. An empty document formats to the empty string."""
    lines = _format_decls(doc.decls, doc.trailing_comments, 0)
    if not lines:
        return ""
    return "\n".join(lines) + "\n"


def format_value(value: FieldValue, depth: int = 0) -> str:
    """Serialize a single value as it would appear after ``label: `` at ``depth``."""
    if isinstance(value, StringValue):
        if "\n" in value.value:
            return quote_multiline(value.value, INDENT * (depth + 1))
        return quote(value.value)
    if isinstance(value, BoolValue):
        return "true" if value.value else "false"
    if isinstance(value, ListValue):
        return _format_list(value, depth)
    if isinstance(value, StructValue):
        return _format_struct(value, depth)
    return value.text


def _format_decls(decls: list[Decl], trailing: list[str], depth: int) -> list[str]:
    indent = INDENT * depth
    lines: list[str] = []
    for i, decl in enumerate(decls):
        if decl.blank_before and i > 0:
            lines.append("")
        lines.extend(_comment_lines(decl.comments, indent))
        lines.append(indent + _format_decl(decl, depth))
    lines.extend(_comment_lines(trailing, indent))
    return lines


def _format_decl(decl: Decl, depth: int) -> str:
    if isinstance(decl, RawDecl):
        text = decl.text
    else:
        text = f"{format_label(decl.name)}{decl.marker}: {format_value(decl.value, depth)}"
    if decl.trailing_comment:
        text += " " + decl.trailing_comment
    return text


def _format_struct(value: StructValue, depth: int) -> str:
    if not value.fields and not value.trailing_comments:
        return "{}"
    inner = _format_decls(value.fields, value.trailing_comments, depth + 1)
    return "{\n" + "\n".join(inner) + "\n" + INDENT * depth + "}"


def _format_list(value: ListValue, depth: int) -> str:
    if not value.items and not value.trailing_comments:
        return "[]"
    if _is_inline(value):
        return "[" + ", ".join(format_value(item, depth) for item in value.items) + "]"

    indent = INDENT * (depth + 1)
    lines: list[str] = []
    for i, item in enumerate(value.items):
        lines.extend(_comment_lines(value.item_comments.get(i, []), indent))
        lines.append(indent + format_value(item, depth + 1) + ",")
    lines.extend(_comment_lines(value.trailing_comments, indent))
    return "[\n" + "\n".join(lines) + "\n" + INDENT * depth + "]"


def _is_inline(value: ListValue) -> bool:
    if value.trailing_comments or any(value.item_comments.values()):
        return False
    for item in value.items:
        if isinstance(item, (StructValue, ListValue)):
            return False
        if isinstance(item, StringValue) and "\n" in item.value:
            return False
        if isinstance(item, Passthrough) and "\n" in item.text:
            return False
    return True


def _comment_lines(comments: list[str], indent: str) -> list[str]:
    return [indent + c if c else "" for c in comments]
