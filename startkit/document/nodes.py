"""Document tree — the parsed form of a configuration document.

A document is an ordered list of top-level declarations. Category blocks are
fields whose value is a struct; each entry inside a block is again a field.
Field values form a small tagged variant:

- StringValue, BoolValue: scalars
- ListValue: ordered values
- StructValue: ordered named fields (nested structs model maps)
- Passthrough: source text kept verbatim (numbers, references, expressions)

Comments are stored with their ``//`` marker. An empty string inside a comment
group stands for a blank line.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


# --- Values ---


@dataclass
class StringValue:
    value: str


@dataclass
class BoolValue:
    value: bool


@dataclass
class Passthrough:
    """Source text the editor does not interpret."""

    text: str


@dataclass
class ListValue:
    items: list[FieldValue] = field(default_factory=list)
    # Comments preceding an item, keyed by item index
    item_comments: dict[int, list[str]] = field(default_factory=dict)
    trailing_comments: list[str] = field(default_factory=list)


@dataclass
class StructValue:
    fields: list[Decl] = field(default_factory=list)
    trailing_comments: list[str] = field(default_factory=list)

    def get(self, name: str) -> Field | None:
        for decl in self.fields:
            if isinstance(decl, Field) and decl.name == name:
                return decl
        return None

    def value_of(self, name: str) -> FieldValue | None:
        found = self.get(name)
        return found.value if found else None

    def names(self) -> list[str]:
        return [d.name for d in self.fields if isinstance(d, Field)]

    def set(self, name: str, value: FieldValue) -> Field:
        """Replace the value of ``name`` in place, or append a new field."""
        existing = self.get(name)
        if existing is not None:
            existing.value = value
            return existing
        new_field = Field(name=name, value=value)
        self.fields.append(new_field)
        return new_field

    def remove(self, name: str) -> bool:
        for i, decl in enumerate(self.fields):
            if isinstance(decl, Field) and decl.name == name:
                del self.fields[i]
                return True
        return False


FieldValue = StringValue | BoolValue | ListValue | StructValue | Passthrough


# --- Declarations ---


@dataclass
class Field:
    """A ``name: value`` declaration."""

    name: str
    value: FieldValue
    marker: str = ""  # "?" or "!" constraint suffix on the label
    comments: list[str] = field(default_factory=list)
    trailing_comment: str = ""
    blank_before: bool = False


@dataclass
class RawDecl:
    """A declaration that is not a field (``package``, ``import``, embeddings)."""

    text: str
    comments: list[str] = field(default_factory=list)
    trailing_comment: str = ""
    blank_before: bool = False


Decl = Field | RawDecl


@dataclass
class Document:
    decls: list[Decl] = field(default_factory=list)
    trailing_comments: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.decls and not self.trailing_comments

    def fields(self) -> list[Field]:
        return [d for d in self.decls if isinstance(d, Field)]


# --- Conversion helpers ---


def to_python(value: FieldValue) -> Any:
    """Convert a value tree into plain Python data.

    Passthrough values become their source text.
    """
    if isinstance(value, (StringValue, BoolValue)):
        return value.value
    if isinstance(value, ListValue):
        return [to_python(item) for item in value.items]
    if isinstance(value, StructValue):
        return {
            decl.name: to_python(decl.value)
            for decl in value.fields
            if isinstance(decl, Field)
        }
    return value.text


def from_python(data: Any) -> FieldValue:
    """Build a value tree from plain Python data (str, bool, list, dict).

    Numbers and None are kept as passthrough source text.
    """
    if isinstance(data, bool):
        return BoolValue(data)
    if isinstance(data, str):
        return StringValue(data)
    if isinstance(data, (list, tuple)):
        return ListValue(items=[from_python(item) for item in data])
    if isinstance(data, dict):
        return StructValue(
            fields=[Field(name=str(k), value=from_python(v)) for k, v in data.items()]
        )
    if data is None:
        return Passthrough("null")
    if isinstance(data, (int, float)):
        return Passthrough(repr(data))
    if isinstance(data, (StringValue, BoolValue, ListValue, StructValue, Passthrough)):
        return data
    raise TypeError(f"Cannot convert {type(data).__name__} to a field value")


def string_list(value: FieldValue | None) -> list[str]:
    """Return the string items of a list value, ignoring anything else."""
    if not isinstance(value, ListValue):
        return []
    return [item.value for item in value.items if isinstance(item, StringValue)]
