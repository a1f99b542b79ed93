"""Installer — writes fetched assets into the category documents.

An install fetches the asset's module through the registry collaborator,
pulls the asset definition out of the module's ``.cue`` files, keeps only
the fields its category allows, stamps the origin first, and upserts the
result into the category's document::

    tasks: {
    	"golang/debug": {
    		origin:      "github.com/acme/assets/tasks/golang/debug@v0.1.1"
    		description: "Debug Go programs"
    		role:        "golang/assistant"
    		prompt:      "..."
    	}
    }
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from startkit.assets.dependencies import DependencyResolver
from startkit.assets.models import CatalogEntry, Category, RoleName, RoleRef, role_ref_from_value
from startkit.assets.provenance import ORIGIN_FIELD, with_default_version
from startkit.document.editor import (
    find_block,
    find_entry,
    load_document,
    put_entry,
    save_document,
    update_entry,
)
from startkit.document.nodes import Field, StringValue, StructValue, from_python
from startkit.document.parser import parse
from startkit.document.strings import unquote_key
from startkit.errors import InstallError, NotFoundError, RegistryError, StructuralParseError
from startkit.registry.client import RegistryClient
from startkit.registry.models import CatalogIndex, FetchResult

logger = logging.getLogger(__name__)


@dataclass
class InstallResult:
    """What an install wrote, and where."""

    category: Category
    name: str
    origin: str
    path: Path
    role_name: str = ""  # role installed or referenced for a task


def build_entry_value(
    category: Category,
    source_fields: StructValue,
    origin: str,
    role: RoleRef | None = None,
) -> StructValue:
    """Build the struct written for an entry: origin, then allowed fields in order.

    When ``role`` is given it replaces whatever role the source carries.
    """
    entry = StructValue(fields=[Field(name=ORIGIN_FIELD, value=StringValue(origin))])
    for name in category.fields:
        if name == "role" and role is not None:
            entry.fields.append(Field(name="role", value=role.to_value()))
            continue
        value = source_fields.value_of(name)
        if value is not None:
            entry.fields.append(Field(name=name, value=value))
    return entry


def _as_struct(source_fields: StructValue | dict[str, Any]) -> StructValue:
    if isinstance(source_fields, StructValue):
        return source_fields
    return from_python(dict(source_fields))


def module_files(module_dir: str | Path) -> list[Path]:
    """The module's top-level ``.cue`` files, sorted; ``cue.mod`` is not included."""
    return sorted(p for p in Path(module_dir).glob("*.cue") if p.is_file())


def extract_source_fields(module_dir: str | Path, category: Category, name: str) -> StructValue:
    """Find an asset's definition in a fetched module.

    Looks for a top-level field named after the category's singular key
    (``task``, ``role``, ...) first, then for one named after the asset.
    """
    fields: dict[str, Field] = {}
    for path in module_files(module_dir):
        try:
            doc = parse(path.read_bytes())
        except StructuralParseError as e:
            raise InstallError(f"invalid module file {path.name}: {e}") from e
        for decl in doc.fields():
            fields.setdefault(decl.name, decl)

    found = fields.get(category.singular) or fields.get(unquote_key(name))
    if found is None:
        raise InstallError(
            f"asset definition not found in module (tried '{category.singular}' and '{name}')"
        )
    if not isinstance(found.value, StructValue):
        raise InstallError(f"asset definition '{found.name}' is not a struct")
    return found.value


class Installer:
    """Installs and updates assets in one configuration directory."""

    def __init__(
        self,
        config_dir: str | Path,
        client: RegistryClient | None = None,
        index: CatalogIndex | None = None,
    ):
        self.config_dir = Path(config_dir)
        self.client = client
        self.index = index

    def path_for(self, category: Category) -> Path:
        return self.config_dir / category.config_file

    def install(
        self,
        category: Category,
        name: str,
        source_fields: StructValue | dict[str, Any],
        provenance: str,
        role_name: str | None = None,
    ) -> Path:
        """Upsert one entry into its category document and save it.

        Re-installing an entry replaces its value in place.
        """
        role = RoleName(role_name) if role_name else None
        value = build_entry_value(category, _as_struct(source_fields), provenance, role)

        path = self.path_for(category)
        doc = load_document(path)
        put_entry(doc, category.value, name, value)
        save_document(path, doc)
        logger.info("Installed %s '%s' (%s) to %s", category.singular, name, provenance, path)
        return path

    def install_asset(self, entry: CatalogEntry, resolve_dependencies: bool = True) -> InstallResult:
        """Fetch and install a catalog entry.

        For tasks, a role dependency known to the index is installed first
        and the task refers to it by name.
        """
        self.config_dir.mkdir(parents=True, exist_ok=True)
        origin, fetched = self._fetch(entry)

        role_name = None
        if entry.category is Category.TASK and resolve_dependencies and self.index is not None:
            role_name = DependencyResolver(self.index, self).resolve(fetched.source_dir)

        source_fields = extract_source_fields(fetched.source_dir, entry.category, entry.name)
        path = self.install(entry.category, entry.name, source_fields, origin, role_name)
        return InstallResult(
            category=entry.category,
            name=entry.name,
            origin=origin,
            path=path,
            role_name=role_name or "",
        )

    def update_asset(self, entry: CatalogEntry) -> InstallResult:
        """Re-fetch an installed entry and replace it.

        Raises NotFoundError if the entry is not installed. A task that
        refers to its role by name keeps that reference.
        """
        path = self.path_for(entry.category)
        doc = load_document(path)
        block = find_block(doc, entry.category.value)
        existing = find_entry(block, entry.name) if block is not None else None
        if existing is None:
            raise NotFoundError(f"asset '{entry.name}' not found in {entry.category.value}")

        role = None
        if entry.category is Category.TASK and isinstance(existing.value, StructValue):
            ref = role_ref_from_value(existing.value.value_of("role"))
            if isinstance(ref, RoleName):
                role = ref

        origin, fetched = self._fetch(entry)
        source_fields = extract_source_fields(fetched.source_dir, entry.category, entry.name)
        value = build_entry_value(entry.category, source_fields, origin, role)
        update_entry(doc, entry.category.value, entry.name, value)
        save_document(path, doc)
        logger.info("Updated %s '%s' to %s", entry.category.singular, entry.name, origin)
        return InstallResult(
            category=entry.category,
            name=entry.name,
            origin=origin,
            path=path,
            role_name=role.name if role else "",
        )

    def _fetch(self, entry: CatalogEntry) -> tuple[str, FetchResult]:
        if self.client is None:
            raise InstallError("no registry client configured")
        module_path = with_default_version(entry.module)
        try:
            resolved = self.client.resolve_version(module_path)
            logger.debug("Resolved %s to %s", module_path, resolved)
            fetched = self.client.fetch(resolved)
        except (RegistryError, OSError) as e:
            raise InstallError(f"fetching {entry.qualified_id} ({module_path}): {e}") from e
        return resolved, fetched
