"""Settings — where configuration documents and the registry live.

Directories come from the environment, with CLI options taking precedence:

- STARTKIT_CONFIG_DIR: global configuration (default ~/.config/startkit)
- STARTKIT_REGISTRY_DIR: local module registry (default ~/.cache/startkit/registry)

Project-local configuration always lives in ./.startkit.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

CONFIG_DIR_ENV = "STARTKIT_CONFIG_DIR"
REGISTRY_DIR_ENV = "STARTKIT_REGISTRY_DIR"

DEFAULT_CONFIG_DIR = "~/.config/startkit"
DEFAULT_REGISTRY_DIR = "~/.cache/startkit/registry"
LOCAL_DIR = ".startkit"


class Scope(Enum):
    GLOBAL = "global"
    LOCAL = "local"


@dataclass
class Settings:
    config_dir: Path
    registry_dir: Path
    local_dir: Path = field(default_factory=lambda: Path(LOCAL_DIR))

    @classmethod
    def from_env(
        cls,
        config_dir: str | Path | None = None,
        registry_dir: str | Path | None = None,
    ) -> Settings:
        """Build settings from the environment; explicit arguments win."""
        config = config_dir or os.environ.get(CONFIG_DIR_ENV, DEFAULT_CONFIG_DIR)
        registry = registry_dir or os.environ.get(REGISTRY_DIR_ENV, DEFAULT_REGISTRY_DIR)
        return cls(
            config_dir=Path(config).expanduser(),
            registry_dir=Path(registry).expanduser(),
        )

    def dir_for(self, scope: Scope) -> Path:
        return self.local_dir if scope is Scope.LOCAL else self.config_dir
