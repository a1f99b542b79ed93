"""Editor — typed lookup and mutation of category blocks and entries.

All edits go through the parsed tree: a block is located by its top-level
label, an entry by its label inside that block, and the whole document is
re-serialized afterwards. Nothing here does offset arithmetic on raw text.
"""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from pathlib import Path

from startkit.document.formatter import format_document
from startkit.document.nodes import Document, Field, FieldValue, StructValue
from startkit.document.parser import parse
from startkit.document.strings import unquote_key
from startkit.errors import NotFoundError, StructuralParseError

logger = logging.getLogger(__name__)

HEADER_COMMENTS = [
    "// startkit configuration",
    "// Managed by 'startkit add'",
]


def find_block(doc: Document, category: str) -> Field | None:
    """Return the top-level block named ``category``.

    Raises StructuralParseError if the block exists but is not a struct, or
    if it names the same entry twice.
    """
    key = unquote_key(category)
    for decl in doc.fields():
        if decl.name == key:
            if not isinstance(decl.value, StructValue):
                raise StructuralParseError(f"category {key!r} is not a struct")
            _check_unique(decl)
            return decl
    return None


def find_entry(block: Field, key: str) -> Field | None:
    """Return the entry named ``key``; quoted and bare spellings are equivalent."""
    return _entries(block).get(unquote_key(key))


def upsert_entry(block: Field, key: str, value: FieldValue) -> Field:
    """Replace the entry's value in place if present, else append a new entry."""
    return _entries(block).set(unquote_key(key), value)


def _entries(block: Field) -> StructValue:
    if not isinstance(block.value, StructValue):
        raise StructuralParseError(f"category {block.name!r} is not a struct")
    return block.value


def _check_unique(block: Field) -> None:
    seen = set()
    for name in block.value.names():
        if name in seen:
            raise StructuralParseError(f"duplicate entry {name!r} in category {block.name!r}")
        seen.add(name)


def create_block(doc: Document, category: str, first_entry: Field) -> Field:
    """Append a new category block holding ``first_entry``.

    A new (empty) document gets a short header comment; comments in a
    document that has no declarations yet move onto the new block.
    """
    block = Field(name=unquote_key(category), value=StructValue(fields=[first_entry]))
    if doc.is_empty:
        block.comments = list(HEADER_COMMENTS)
    elif not doc.decls:
        block.comments = doc.trailing_comments + [""]
        doc.trailing_comments = []
    else:
        block.blank_before = True
    doc.decls.append(block)
    return block


def put_entry(doc: Document, category: str, key: str, value: FieldValue) -> Field:
    """Upsert ``key`` into the ``category`` block, creating the block if needed."""
    block = find_block(doc, category)
    if block is None:
        entry = Field(name=unquote_key(key), value=value)
        create_block(doc, category, entry)
        return entry
    return upsert_entry(block, key, value)


def update_entry(doc: Document, category: str, key: str, value: FieldValue) -> Field:
    """Replace an existing entry. Raises NotFoundError if the block or entry is missing."""
    block = find_block(doc, category)
    entry = find_entry(block, key) if block is not None else None
    if entry is None:
        raise NotFoundError(f"asset {unquote_key(key)!r} not found in {category}")
    entry.value = value
    return entry


def remove_entry(doc: Document, category: str, key: str) -> None:
    """Delete an entry. Raises NotFoundError if the block or entry is missing."""
    block = find_block(doc, category)
    if block is None or not _entries(block).remove(unquote_key(key)):
        raise NotFoundError(f"asset {unquote_key(key)!r} not found in {category}")


# --- Files ---


def load_document(path: str | Path) -> Document:
    """Read and parse a document; a missing or blank file is an empty document."""
    path = Path(path)
    if not path.exists():
        return Document()
    data = path.read_bytes()
    if not data.strip():
        return Document()
    return parse(data)


def save_document(path: str | Path, doc: Document) -> None:
    """Format and write a document atomically.

    The text goes to a temporary file in the same directory which then
    replaces the target, so a failed write leaves the previous file intact.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    text = format_document(doc)
    mode = stat.S_IMODE(path.stat().st_mode) if path.exists() else 0o644

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.debug("Wrote %s (%d bytes)", path, len(text))
