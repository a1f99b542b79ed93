"""Asset data models — categories, catalog entries, search results, role references."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from startkit.document.nodes import FieldValue, StringValue, StructValue
from startkit.errors import ValidationError


class Category(Enum):
    """The four asset kinds. The value is the block key in the config document."""

    AGENT = "agents"
    ROLE = "roles"
    CONTEXT = "contexts"
    TASK = "tasks"

    @property
    def singular(self) -> str:
        return self.value[:-1]

    @property
    def config_file(self) -> str:
        return f"{self.value}.cue"

    @property
    def order(self) -> int:
        return _ORDER.index(self)

    @property
    def fields(self) -> tuple[str, ...]:
        """Fields copied from a module into an installed entry, in write order."""
        return CATEGORY_FIELDS[self]

    @classmethod
    def parse(cls, name: str) -> Category:
        """Accept singular or plural names, case-insensitively."""
        key = name.strip().lower()
        for category in cls:
            if key in (category.value, category.singular):
                return category
        choices = ", ".join(c.value for c in cls)
        raise ValidationError(f"Unknown category '{name}'. Must be one of: {choices}")


_ORDER = [Category.AGENT, Category.ROLE, Category.CONTEXT, Category.TASK]

CATEGORY_FIELDS: dict[Category, tuple[str, ...]] = {
    Category.AGENT: ("description", "tags", "bin", "command", "default_model", "models"),
    Category.ROLE: ("description", "tags", "file", "command", "prompt", "optional"),
    Category.CONTEXT: ("description", "tags", "file", "command", "prompt", "required", "default"),
    Category.TASK: ("description", "tags", "role", "file", "command", "prompt"),
}


@dataclass
class CatalogEntry:
    """A searchable asset, from the registry index or from an installed document."""

    category: Category
    name: str
    module: str = ""  # module path, optionally with @version
    description: str = ""
    tags: list[str] = field(default_factory=list)

    # Index metadata
    version: str = ""
    bin: str = ""

    @property
    def qualified_id(self) -> str:
        return f"{self.category.singular}:{self.name}"


@dataclass
class SearchResult:
    """A catalog entry that matched a query. ``score`` is always positive."""

    entry: CatalogEntry
    score: int

    @property
    def category(self) -> Category:
        return self.entry.category

    @property
    def name(self) -> str:
        return self.entry.name


# --- Role references ---


@dataclass
class RoleName:
    """A task role given by the name of an installed role asset."""

    name: str

    def to_value(self) -> FieldValue:
        return StringValue(self.name)


@dataclass
class InlineRole:
    """A task role embedded directly in the task."""

    content: StructValue

    def to_value(self) -> FieldValue:
        return self.content


RoleRef = RoleName | InlineRole


def role_ref_from_value(value: FieldValue | None) -> RoleRef | None:
    """Interpret a task's ``role`` field; other value kinds are not role references."""
    if isinstance(value, StringValue):
        return RoleName(value.value)
    if isinstance(value, StructValue):
        return InlineRole(value)
    return None
