"""Dependency resolution — installs the role a task module depends on.

A task module may declare a role module among its dependencies in
``cue.mod/module.cue``::

    deps: {
    	"github.com/acme/assets/roles/golang/assistant@v0": {
    		v: "v0.1.0"
    	}
    }

If that module path is a role in the catalog index, the role is installed as
its own asset (one level only) and the task refers to it by name. Anything
else leaves the task's own role untouched.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from startkit.assets.installed import asset_exists, load_category
from startkit.assets.models import CatalogEntry, Category
from startkit.document.nodes import Field, StringValue, StructValue
from startkit.document.parser import parse
from startkit.errors import InstallError, StructuralParseError
from startkit.registry.models import CatalogIndex

if TYPE_CHECKING:
    from startkit.assets.installer import Installer

logger = logging.getLogger(__name__)

MODULE_FILE = Path("cue.mod") / "module.cue"
ROLE_PATH_MARKER = "/roles/"


def read_module_dependencies(module_dir: str | Path) -> dict[str, str]:
    """Dependency path -> version from a module's manifest.

    A missing or unreadable manifest has no dependencies.
    """
    path = Path(module_dir) / MODULE_FILE
    try:
        doc = parse(path.read_bytes())
    except (OSError, StructuralParseError) as e:
        logger.debug("No usable module manifest at %s: %s", path, e)
        return {}

    deps_field = next((d for d in doc.fields() if d.name == "deps"), None)
    if deps_field is None or not isinstance(deps_field.value, StructValue):
        return {}

    deps = {}
    for decl in deps_field.value.fields:
        if not isinstance(decl, Field):
            continue
        version = ""
        if isinstance(decl.value, StructValue):
            v = decl.value.value_of("v")
            if isinstance(v, StringValue):
                version = v.value
        deps[decl.name] = version
    return deps


def find_role_dependency(deps: dict[str, str]) -> str | None:
    """The first dependency path, in sorted order, that names a role module."""
    for dep_path in sorted(deps):
        if ROLE_PATH_MARKER in dep_path:
            return dep_path
    return None


def resolve_role(index: CatalogIndex, dep_path: str) -> CatalogEntry | None:
    """The index role whose module path equals ``dep_path`` exactly."""
    return index.find_by_module(Category.ROLE, dep_path)


class DependencyResolver:
    """Resolves and installs a task module's role dependency."""

    def __init__(self, index: CatalogIndex, installer: Installer):
        self.index = index
        self.installer = installer

    def resolve(self, module_dir: str | Path) -> str | None:
        """Return the role name the task should reference, or None.

        The role is installed first unless it is already present.
        """
        dep_path = find_role_dependency(read_module_dependencies(module_dir))
        if dep_path is None:
            return None

        role = resolve_role(self.index, dep_path)
        if role is None:
            logger.debug("Role dependency %s is not in the index; keeping inline role", dep_path)
            return None

        roles_doc = load_category(self.installer.config_dir, Category.ROLE)
        if asset_exists(roles_doc, Category.ROLE, role.name):
            logger.debug("Role '%s' already installed", role.name)
            return role.name

        logger.info("Installing role dependency '%s'", role.name)
        try:
            self.installer.install_asset(role, resolve_dependencies=False)
        except InstallError as e:
            raise InstallError(f"role '{role.name}': {e}") from e
        return role.name
