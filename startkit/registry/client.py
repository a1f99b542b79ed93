"""The registry collaborator boundary used by the installer."""

from __future__ import annotations

from typing import Protocol

from startkit.registry.models import FetchResult


class RegistryClient(Protocol):
    """Resolves and fetches asset modules.

    Implementations raise RegistryError on failure.
    """

    def resolve_version(self, module_path: str) -> str:
        """Turn ``path@v0`` (or ``path@v0.1.2``) into a concrete versioned path."""
        ...

    def fetch(self, module_path: str) -> FetchResult:
        """Make a versioned module's files available locally."""
        ...
