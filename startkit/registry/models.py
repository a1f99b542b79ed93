"""Registry data models — the catalog index snapshot and fetch results."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator

from startkit.assets.models import CatalogEntry, Category
from startkit.errors import RegistryError


@dataclass
class FetchResult:
    """Where a fetched module's files live on disk."""

    module_path: str  # versioned path, e.g. "github.com/acme/roles/go@v0.1.0"
    source_dir: Path


@dataclass
class CatalogIndex:
    """Read-only snapshot of the registry's asset index.

    Entries are keyed by name within each category. The snapshot is passed
    explicitly to search and dependency resolution; nothing caches it globally.
    """

    categories: dict[Category, dict[str, CatalogEntry]] = field(
        default_factory=lambda: {c: {} for c in Category}
    )
    version: str = ""

    def add(self, entry: CatalogEntry) -> None:
        self.categories.setdefault(entry.category, {})[entry.name] = entry

    def get(self, category: Category, name: str) -> CatalogEntry | None:
        return self.categories.get(category, {}).get(name)

    def entries(self, category: Category | None = None) -> Iterator[CatalogEntry]:
        cats = [category] if category else list(Category)
        for cat in cats:
            yield from self.categories.get(cat, {}).values()

    def find_by_module(self, category: Category, module_path: str) -> CatalogEntry | None:
        """Exact module path match within one category."""
        for entry in self.entries(category):
            if entry.module == module_path:
                return entry
        return None

    def __len__(self) -> int:
        return sum(len(c) for c in self.categories.values())

    @classmethod
    def from_dict(cls, data: dict[str, Any], version: str = "") -> CatalogIndex:
        """Build an index from ``{"agents": {name: {...}}, "roles": ...}`` data."""
        index = cls(version=version)
        for category in Category:
            items = data.get(category.value) or {}
            if not isinstance(items, dict):
                raise RegistryError(f"Index category {category.value!r} must be a mapping of assets")
            for name, item in items.items():
                if item is None:
                    item = {}
                if not isinstance(item, dict):
                    raise RegistryError(f"Index entry {category.singular} {name!r} must be a mapping")
                index.add(_dict_to_entry(category, str(name), item))
        return index

    def to_dict(self) -> dict[str, Any]:
        return {
            category.value: {
                name: _entry_to_dict(entry) for name, entry in sorted(entries.items())
            }
            for category, entries in self.categories.items()
            if entries
        }


def _entry_to_dict(entry: CatalogEntry) -> dict:
    data: dict[str, Any] = {"module": entry.module}
    if entry.description:
        data["description"] = entry.description
    if entry.tags:
        data["tags"] = entry.tags
    if entry.version:
        data["version"] = entry.version
    if entry.bin:
        data["bin"] = entry.bin
    return data


def _dict_to_entry(category: Category, name: str, data: dict) -> CatalogEntry:
    return CatalogEntry(
        category=category,
        name=name,
        module=_text(data.get("module")),
        description=_text(data.get("description")),
        tags=[str(t) for t in _tags(data.get("tags"))],
        version=_text(data.get("version")),
        bin=_text(data.get("bin")),
    )


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _tags(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [t for t in value if t is not None]
    return [value]
