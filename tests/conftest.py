"""Shared fixtures: a small on-disk module registry."""

from pathlib import Path

import pytest
import yaml

ROLE_MODULE = "github.com/acme/assets/roles/golang/assistant"
TASK_MODULE = "github.com/acme/assets/tasks/golang/debug"
AGENT_MODULE = "github.com/acme/assets/agents/claude"
CONTEXT_MODULE = "github.com/acme/assets/contexts/project/readme"

INDEX = {
    "version": "2026-10-01",
    "agents": {
        "claude": {
            "module": AGENT_MODULE,
            "description": "Anthropic Claude CLI",
            "tags": ["ai", "cli"],
            "bin": "claude",
            "version": "v0.2.0",
        },
    },
    "roles": {
        "golang/assistant": {
            "module": f"{ROLE_MODULE}@v0",
            "description": "Go programming assistant",
            "tags": ["golang"],
            "version": "v0.1.0",
        },
    },
    "contexts": {
        "project/readme": {
            "module": CONTEXT_MODULE,
            "description": "Project README",
            "tags": ["docs"],
            "version": "v0.1.0",
        },
    },
    "tasks": {
        "golang/debug": {
            "module": TASK_MODULE,
            "description": "Debug Go programs",
            "tags": ["golang", "debug"],
            "version": "v0.1.1",
        },
    },
}

ROLE_CUE = """package assistant

role: {
	description: "Go programming assistant"
	tags: ["golang"]
	prompt: "You are a Go expert."
	optional: false
	internal_notes: "not copied"
}
"""

AGENT_CUE = """package claude

agent: {
	description: "Anthropic Claude CLI"
	tags: ["ai", "cli"]
	bin: "claude"
	command: "{bin} --model {model} '{prompt}'"
	default_model: "sonnet"
	models: {
		haiku: "claude-haiku"
		sonnet: "claude-sonnet"
	}
}
"""

CONTEXT_CUE = """package readme

"project/readme": {
	description: "Project README"
	file: "README.md"
	required: true
}
"""


def task_cue(description: str) -> str:
    return f"""package debug

task: {{
	description: "{description}"
	tags: ["golang", "debug"]
	role: {{
		prompt: "Inline Go role"
	}}
	prompt: \"\"\"
		Find the bug.
		Explain the fix.
		\"\"\"
}}
"""


TASK_MANIFEST = f"""module: "{TASK_MODULE}@v0"
language: {{
	version: "v0.9.0"
}}
deps: {{
	"{ROLE_MODULE}@v0": {{
		v: "v0.1.0"
	}}
}}
"""


def write_module(root: Path, module: str, version: str, files: dict[str, str]) -> Path:
    """Write a module's files under ``root/<module>/<version>/``."""
    module_dir = root / module / version
    for name, text in files.items():
        path = module_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
    return module_dir


def write_index(root: Path, data: dict) -> None:
    root.mkdir(parents=True, exist_ok=True)
    with open(root / "index.yaml", "w") as f:
        yaml.dump(data, f)


def build_registry(root: Path) -> Path:
    write_index(root, INDEX)
    write_module(root, ROLE_MODULE, "v0.1.0", {"role.cue": ROLE_CUE})
    write_module(root, AGENT_MODULE, "v0.2.0", {"agent.cue": AGENT_CUE})
    write_module(root, CONTEXT_MODULE, "v0.1.0", {"readme.cue": CONTEXT_CUE})
    for version, description in (("v0.1.0", "Debug Go programs (old)"), ("v0.1.1", "Debug Go programs")):
        write_module(
            root,
            TASK_MODULE,
            version,
            {"task.cue": task_cue(description), "cue.mod/module.cue": TASK_MANIFEST},
        )
    return root


@pytest.fixture
def registry_root(tmp_path: Path) -> Path:
    return build_registry(tmp_path / "registry")


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    return tmp_path / "config"
