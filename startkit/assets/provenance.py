"""Provenance — the origin stamped on every installed asset.

Each installed entry starts with an ``origin`` field holding the resolved,
versioned module path it was installed from, e.g.
``github.com/acme/assets/tasks/golang/debug@v0.1.1``. This is what ``list``
shows as the installed version and what ``update`` compares against the index.
"""

from __future__ import annotations

from startkit.document.editor import find_block, find_entry
from startkit.document.nodes import Document, StringValue, StructValue

ORIGIN_FIELD = "origin"


def module_from_origin(origin: str) -> str:
    """``path@v1.2.3`` -> ``path``. An origin without a version is returned as is."""
    at = origin.rfind("@")
    if at == -1:
        return origin
    return origin[:at]


def version_from_origin(origin: str) -> str:
    """``path@v1.2.3`` -> ``v1.2.3``, or "" when the origin carries no version."""
    at = origin.rfind("@")
    if at == -1:
        return ""
    return origin[at + 1 :]


def with_default_version(module_path: str, default: str = "v0") -> str:
    """Append ``@v0`` to a module path that names no version."""
    if "@" in module_path:
        return module_path
    return f"{module_path}@{default}"


def origin_of(entry_value: StructValue) -> str:
    value = entry_value.value_of(ORIGIN_FIELD)
    return value.value if isinstance(value, StringValue) else ""


def installed_origin(doc: Document, category: str, name: str) -> str:
    """The origin of an installed entry, or "" if it is missing or has none."""
    block = find_block(doc, category)
    if block is None:
        return ""
    entry = find_entry(block, name)
    if entry is None or not isinstance(entry.value, StructValue):
        return ""
    return origin_of(entry.value)
