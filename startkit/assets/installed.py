"""Installed catalog — reads category documents back as catalog entries."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from startkit.assets.models import CatalogEntry, Category
from startkit.assets.provenance import origin_of
from startkit.document.editor import find_block, find_entry, load_document
from startkit.document.nodes import Document, Field, StringValue, StructValue, string_list

logger = logging.getLogger(__name__)


@dataclass
class InstalledAsset:
    """An entry found in one of the category documents."""

    entry: CatalogEntry
    path: Path

    @property
    def origin(self) -> str:
        return self.entry.module


def catalog_entries(doc: Document, category: Category) -> list[CatalogEntry]:
    """All entries of ``category`` in a parsed document, in document order.

    Entries whose value is not a struct are skipped.
    """
    block = find_block(doc, category.value)
    if block is None or not isinstance(block.value, StructValue):
        return []

    entries = []
    for decl in block.value.fields:
        if not isinstance(decl, Field) or not isinstance(decl.value, StructValue):
            continue
        value = decl.value
        description = value.value_of("description")
        entries.append(
            CatalogEntry(
                category=category,
                name=decl.name,
                module=origin_of(value),
                description=description.value if isinstance(description, StringValue) else "",
                tags=string_list(value.value_of("tags")),
            )
        )
    return entries


def asset_exists(doc: Document, category: Category, name: str) -> bool:
    block = find_block(doc, category.value)
    return block is not None and find_entry(block, name) is not None


def load_category(config_dir: str | Path, category: Category) -> Document:
    """Load the document for one category from a config directory."""
    return load_document(Path(config_dir) / category.config_file)


def list_installed(
    config_dir: str | Path, category: Category | None = None
) -> list[InstalledAsset]:
    """Every installed asset under ``config_dir``, in category precedence order."""
    config_dir = Path(config_dir)
    categories = [category] if category else list(Category)

    assets = []
    for cat in categories:
        path = config_dir / cat.config_file
        doc = load_document(path)
        for entry in catalog_entries(doc, cat):
            assets.append(InstalledAsset(entry=entry, path=path))
    logger.debug("Found %d installed assets in %s", len(assets), config_dir)
    return assets
