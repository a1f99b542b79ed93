"""Structured configuration documents — parse, edit and format.

Documents are parsed into a tree (startkit.document.nodes), edited through
typed lookups (startkit.document.editor) and written back in a canonical
layout (startkit.document.formatter).
"""

from startkit.document.editor import (
    create_block,
    find_block,
    find_entry,
    load_document,
    put_entry,
    remove_entry,
    save_document,
    update_entry,
    upsert_entry,
)
from startkit.document.formatter import format_document, format_value
from startkit.document.nodes import (
    BoolValue,
    Document,
    Field,
    FieldValue,
    ListValue,
    Passthrough,
    RawDecl,
    StringValue,
    StructValue,
    from_python,
    to_python,
)
from startkit.document.parser import parse

__all__ = [
    "BoolValue",
    "Document",
    "Field",
    "FieldValue",
    "ListValue",
    "Passthrough",
    "RawDecl",
    "StringValue",
    "StructValue",
    "create_block",
    "find_block",
    "find_entry",
    "format_document",
    "format_value",
    "from_python",
    "load_document",
    "parse",
    "put_entry",
    "remove_entry",
    "save_document",
    "to_python",
    "update_entry",
    "upsert_entry",
]
