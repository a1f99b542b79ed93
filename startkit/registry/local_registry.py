"""Local file-based registry implementation.

A simple, file-system-backed module registry for development, offline use
and tests. Layout::

    <root>/index.yaml                         catalog index
    <root>/<module path>/<version>/*.cue      module sources
    <root>/<module path>/<version>/cue.mod/module.cue

The index maps each category to its assets::

    tasks:
      golang/debug:
        module: github.com/acme/assets/tasks/golang/debug
        description: Debug Go programs
        tags: [golang, debug]
        version: v0.1.1
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

import yaml

from startkit.assets.provenance import module_from_origin, version_from_origin
from startkit.errors import RegistryError
from startkit.registry.models import CatalogIndex, FetchResult

logger = logging.getLogger(__name__)

SEMVER_RE = re.compile(r"^v(\d+)\.(\d+)\.(\d+)$")
MAJOR_RE = re.compile(r"^v(\d+)$")


def parse_semver(version: str) -> tuple[int, int, int] | None:
    m = SEMVER_RE.match(version)
    if not m:
        return None
    return int(m.group(1)), int(m.group(2)), int(m.group(3))


def load_index(path: str | Path) -> CatalogIndex:
    """Load a catalog index from a YAML or JSON file."""
    path = Path(path)
    try:
        with open(path) as f:
            if path.suffix == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise RegistryError(f"Cannot read index {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise RegistryError(f"Index {path} must be a mapping of categories")
    return CatalogIndex.from_dict(data, version=str(data.get("version") or ""))


class LocalModuleRegistry:
    """Directory-backed registry of versioned asset modules."""

    INDEX_FILE = "index.yaml"
    JSON_INDEX_FILE = "index.json"

    def __init__(self, root: str | Path):
        self.root = Path(root)

    @property
    def index_path(self) -> Path:
        yaml_path = self.root / self.INDEX_FILE
        json_path = self.root / self.JSON_INDEX_FILE
        if not yaml_path.exists() and json_path.exists():
            return json_path
        return yaml_path

    def fetch_index(self) -> CatalogIndex:
        """Load the catalog snapshot."""
        path = self.index_path
        if not path.exists():
            raise RegistryError(f"No index found in {self.root}")
        index = load_index(path)
        logger.debug("Loaded index %s (%d assets)", path, len(index))
        return index

    def versions(self, module: str) -> list[str]:
        """Available semver versions of a module, lowest first."""
        module_dir = self.root / module
        if not module_dir.is_dir():
            return []
        found = [p.name for p in module_dir.iterdir() if p.is_dir() and parse_semver(p.name)]
        return sorted(found, key=parse_semver)

    def resolve_version(self, module_path: str) -> str:
        """Pick the highest version within the requested major, or check an exact one."""
        module = module_from_origin(module_path)
        wanted = version_from_origin(module_path)
        available = self.versions(module)
        if not available:
            raise RegistryError(f"module not found: {module}")

        if not wanted:
            return f"{module}@{available[-1]}"
        if parse_semver(wanted):
            if wanted not in available:
                raise RegistryError(f"version {wanted} of {module} not found")
            return module_path

        major = MAJOR_RE.match(wanted)
        if not major:
            raise RegistryError(f"invalid version query '{wanted}' for {module}")
        candidates = [v for v in available if parse_semver(v)[0] == int(major.group(1))]
        if not candidates:
            raise RegistryError(f"no {wanted} version of {module} found")
        resolved = f"{module}@{candidates[-1]}"
        logger.debug("Resolved %s to %s", module_path, resolved)
        return resolved

    def fetch(self, module_path: str) -> FetchResult:
        module = module_from_origin(module_path)
        version = version_from_origin(module_path)
        if not parse_semver(version):
            raise RegistryError(f"cannot fetch unresolved module path '{module_path}'")
        source_dir = self.root / module / version
        if not source_dir.is_dir():
            raise RegistryError(f"module not found: {module_path}")
        return FetchResult(module_path=module_path, source_dir=source_dir)
