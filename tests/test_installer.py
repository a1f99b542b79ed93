"""Tests for installing and updating assets."""

from pathlib import Path

import pytest
from conftest import (
    AGENT_MODULE,
    CONTEXT_MODULE,
    INDEX,
    ROLE_MODULE,
    TASK_MODULE,
    task_cue,
    write_index,
    write_module,
)

from startkit.assets.installer import Installer, build_entry_value, extract_source_fields
from startkit.assets.models import CatalogEntry, Category, InlineRole, RoleName
from startkit.assets.provenance import installed_origin
from startkit.document import (
    Field,
    StringValue,
    StructValue,
    find_block,
    find_entry,
    format_document,
    from_python,
    load_document,
    parse,
)
from startkit.errors import InstallError, NotFoundError, StructuralParseError
from startkit.registry.local_registry import LocalModuleRegistry

TASK_FIELDS = {
    "description": "Debug Go programs",
    "tags": ["golang", "debug"],
    "role": {"prompt": "Inline Go role"},
    "prompt": "Find the bug.",
    "unknown": "dropped",
}


class RecordingInstaller(Installer):
    """Installer that remembers the order of its writes."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.writes: list[tuple[Category, str]] = []

    def install(self, category, name, source_fields, provenance, role_name=None):
        self.writes.append((category, name))
        return super().install(category, name, source_fields, provenance, role_name)


def _installed(config_dir: Path, category: Category, name: str) -> StructValue | None:
    doc = load_document(config_dir / category.config_file)
    block = find_block(doc, category.value)
    entry = find_entry(block, name) if block is not None else None
    return entry.value if entry is not None else None


def _entry(category: Category, name: str) -> CatalogEntry:
    data = INDEX[category.value][name]
    return CatalogEntry(
        category=category,
        name=name,
        module=data["module"],
        description=data["description"],
        tags=data["tags"],
        version=data.get("version", ""),
    )


def _installer(config_dir: Path, registry_root: Path, index=True, cls=Installer) -> Installer:
    registry = LocalModuleRegistry(registry_root)
    return cls(config_dir, client=registry, index=registry.fetch_index() if index else None)


# --- Entry construction ---


def test_build_entry_value_puts_origin_first_and_filters_fields():
    value = build_entry_value(Category.TASK, from_python(TASK_FIELDS), "m@v0.1.0")
    assert value.names() == ["origin", "description", "tags", "role", "prompt"]
    assert value.value_of("origin") == StringValue("m@v0.1.0")


def test_build_entry_value_role_reference():
    source = from_python(TASK_FIELDS)
    named = build_entry_value(Category.TASK, source, "m@v0.1.0", RoleName("golang/assistant"))
    assert named.value_of("role") == StringValue("golang/assistant")

    inline = InlineRole(from_python({"prompt": "Other role"}))
    value = build_entry_value(Category.TASK, source, "m@v0.1.0", inline)
    assert value.value_of("role") == inline.content


def test_allow_lists_per_category():
    source = from_python(
        {
            "description": "d",
            "bin": "claude",
            "file": "README.md",
            "optional": True,
            "required": True,
            "default": False,
            "models": {"a": "b"},
        }
    )
    assert build_entry_value(Category.AGENT, source, "o").names() == ["origin", "description", "bin", "models"]
    assert build_entry_value(Category.ROLE, source, "o").names() == ["origin", "description", "file", "optional"]
    assert build_entry_value(Category.CONTEXT, source, "o").names() == [
        "origin",
        "description",
        "file",
        "required",
        "default",
    ]


# --- install ---


def test_install_then_lookup_returns_same_fields(config_dir):
    installer = Installer(config_dir)
    path = installer.install(Category.TASK, "golang/debug", TASK_FIELDS, f"{TASK_MODULE}@v0.1.1")
    assert path == config_dir / "tasks.cue"

    entry = _installed(config_dir, Category.TASK, "golang/debug")
    assert entry.value_of("origin") == StringValue(f"{TASK_MODULE}@v0.1.1")
    assert entry.value_of("description") == StringValue("Debug Go programs")
    assert entry.value_of("role") == from_python({"prompt": "Inline Go role"})
    assert entry.get("unknown") is None


def test_install_twice_keeps_one_entry_with_second_content(config_dir):
    installer = Installer(config_dir)
    installer.install(Category.AGENT, "x", {"bin": "first"}, "m@v0.1.0")
    installer.install(Category.AGENT, "x", {"bin": "second"}, "m@v0.1.1")

    doc = load_document(config_dir / "agents.cue")
    block = find_block(doc, "agents")
    assert block.value.names() == ["x"]
    assert find_entry(block, "x").value.value_of("bin") == StringValue("second")


def test_install_with_role_name_writes_reference(config_dir):
    Installer(config_dir).install(
        Category.TASK, "golang/debug", TASK_FIELDS, "m@v0.1.0", role_name="golang/assistant"
    )
    entry = _installed(config_dir, Category.TASK, "golang/debug")
    assert entry.value_of("role") == StringValue("golang/assistant")


def test_install_preserves_other_content(config_dir):
    config_dir.mkdir()
    original = '// my contexts\ncontexts: {\n\tnotes: {\n\t\tfile: "NOTES.md"\n\t}\n}\n\nsettings: {\n\tshell: "bash"\n}\n'
    (config_dir / "contexts.cue").write_text(original)

    Installer(config_dir).install(Category.CONTEXT, "project/readme", {"file": "README.md"}, "m@v0.1.0")

    text = (config_dir / "contexts.cue").read_text()
    assert text.startswith("// my contexts\ncontexts: {\n\tnotes: {")
    assert text.endswith('\n\nsettings: {\n\tshell: "bash"\n}\n')
    assert find_block(parse(text), "contexts").value.names() == ["notes", "project/readme"]


def test_install_into_malformed_document_writes_nothing(config_dir):
    config_dir.mkdir()
    (config_dir / "roles.cue").write_text('roles: {\n\tbroken: "open\n}\n')
    with pytest.raises(StructuralParseError):
        Installer(config_dir).install(Category.ROLE, "x", {"prompt": "p"}, "m@v0.1.0")
    assert (config_dir / "roles.cue").read_text() == 'roles: {\n\tbroken: "open\n}\n'


# --- Module extraction ---


def test_extract_prefers_singular_key(registry_root):
    module_dir = registry_root / TASK_MODULE / "v0.1.1"
    fields = extract_source_fields(module_dir, Category.TASK, "golang/debug")
    assert fields.value_of("prompt") == StringValue("Find the bug.\nExplain the fix.")


def test_extract_falls_back_to_asset_name(registry_root):
    module_dir = registry_root / CONTEXT_MODULE / "v0.1.0"
    fields = extract_source_fields(module_dir, Category.CONTEXT, "project/readme")
    assert fields.value_of("file") == StringValue("README.md")


def test_extract_missing_definition(tmp_path):
    module_dir = write_module(tmp_path, "example.com/empty", "v0.1.0", {"x.cue": 'other: {\n\ta: "b"\n}\n'})
    with pytest.raises(InstallError, match="asset definition not found"):
        extract_source_fields(module_dir, Category.ROLE, "golang/assistant")


def test_extract_rejects_non_struct_definition(tmp_path):
    module_dir = write_module(tmp_path, "example.com/bad", "v0.1.0", {"x.cue": 'role: "just text"\n'})
    with pytest.raises(InstallError):
        extract_source_fields(module_dir, Category.ROLE, "r")


# --- install_asset ---


def test_install_asset_resolves_latest_version(config_dir, registry_root):
    installer = _installer(config_dir, registry_root)
    result = installer.install_asset(_entry(Category.AGENT, "claude"))

    assert result.origin == f"{AGENT_MODULE}@v0.2.0"
    assert result.path == config_dir / "agents.cue"
    entry = _installed(config_dir, Category.AGENT, "claude")
    assert entry.names() == ["origin", "description", "tags", "bin", "command", "default_model", "models"]
    assert entry.value_of("command") == StringValue("{bin} --model {model} '{prompt}'")


def test_task_with_role_dependency_installs_role_first(config_dir, registry_root):
    installer = _installer(config_dir, registry_root, cls=RecordingInstaller)
    result = installer.install_asset(_entry(Category.TASK, "golang/debug"))

    assert installer.writes == [(Category.ROLE, "golang/assistant"), (Category.TASK, "golang/debug")]
    assert result.role_name == "golang/assistant"
    assert result.origin == f"{TASK_MODULE}@v0.1.1"

    task = _installed(config_dir, Category.TASK, "golang/debug")
    assert task.value_of("role") == StringValue("golang/assistant")

    role = _installed(config_dir, Category.ROLE, "golang/assistant")
    assert role.value_of("origin") == StringValue(f"{ROLE_MODULE}@v0.1.0")
    assert role.names() == ["origin", "description", "tags", "prompt", "optional"]


def test_installed_role_is_not_reinstalled(config_dir, registry_root):
    installer = _installer(config_dir, registry_root, cls=RecordingInstaller)
    installer.install(Category.ROLE, "golang/assistant", {"prompt": "My own"}, "local")
    installer.writes.clear()

    installer.install_asset(_entry(Category.TASK, "golang/debug"))

    assert installer.writes == [(Category.TASK, "golang/debug")]
    role = _installed(config_dir, Category.ROLE, "golang/assistant")
    assert role.value_of("prompt") == StringValue("My own")
    assert _installed(config_dir, Category.TASK, "golang/debug").value_of("role") == StringValue(
        "golang/assistant"
    )


def test_unknown_role_dependency_keeps_inline_role(config_dir, registry_root):
    index = {k: v for k, v in INDEX.items() if k != "roles"}
    write_index(registry_root, index)

    installer = _installer(config_dir, registry_root, cls=RecordingInstaller)
    result = installer.install_asset(_entry(Category.TASK, "golang/debug"))

    assert result.role_name == ""
    assert installer.writes == [(Category.TASK, "golang/debug")]
    assert not (config_dir / "roles.cue").exists()
    role = _installed(config_dir, Category.TASK, "golang/debug").value_of("role")
    assert role == from_python({"prompt": "Inline Go role"})


def test_install_without_index_skips_dependencies(config_dir, registry_root):
    installer = _installer(config_dir, registry_root, index=False)
    installer.install_asset(_entry(Category.TASK, "golang/debug"))
    assert not (config_dir / "roles.cue").exists()


def test_role_install_is_one_level(config_dir, registry_root):
    # A role module that itself declares a role dependency
    write_module(
        registry_root,
        ROLE_MODULE,
        "v0.1.0",
        {"cue.mod/module.cue": f'deps: {{\n\t"{ROLE_MODULE}@v0": {{\n\t\tv: "v0.1.0"\n\t}}\n}}\n'},
    )
    installer = _installer(config_dir, registry_root, cls=RecordingInstaller)
    installer.install_asset(_entry(Category.ROLE, "golang/assistant"))
    assert installer.writes == [(Category.ROLE, "golang/assistant")]


def test_fetch_failure_raises_install_error(config_dir, registry_root):
    installer = _installer(config_dir, registry_root)
    entry = CatalogEntry(category=Category.TASK, name="ghost", module="github.com/acme/ghost")
    with pytest.raises(InstallError) as exc:
        installer.install_asset(entry)
    assert exc.value.__cause__ is not None
    assert not (config_dir / "tasks.cue").exists()


def test_install_asset_without_client(config_dir):
    with pytest.raises(InstallError):
        Installer(config_dir).install_asset(_entry(Category.AGENT, "claude"))


# --- update_asset ---


def test_update_asset_moves_to_latest_version(config_dir, registry_root):
    installer = _installer(config_dir, registry_root)
    pinned = _entry(Category.TASK, "golang/debug")
    pinned.module = f"{TASK_MODULE}@v0.1.0"
    installer.install_asset(pinned)

    doc = load_document(config_dir / "tasks.cue")
    assert installed_origin(doc, "tasks", "golang/debug") == f"{TASK_MODULE}@v0.1.0"

    result = installer.update_asset(_entry(Category.TASK, "golang/debug"))
    assert result.origin == f"{TASK_MODULE}@v0.1.1"

    task = _installed(config_dir, Category.TASK, "golang/debug")
    assert task.value_of("description") == StringValue("Debug Go programs")
    assert task.value_of("role") == StringValue("golang/assistant")


def test_update_asset_requires_installed_entry(config_dir, registry_root):
    installer = _installer(config_dir, registry_root)
    with pytest.raises(NotFoundError):
        installer.update_asset(_entry(Category.AGENT, "claude"))


def test_update_keeps_comments_on_entry(config_dir, registry_root):
    installer = _installer(config_dir, registry_root)
    installer.install_asset(_entry(Category.AGENT, "claude"))

    path = config_dir / "agents.cue"
    doc = load_document(path)
    find_entry(find_block(doc, "agents"), "claude").comments = ["// pinned by team"]
    path.write_text(format_document(doc))

    installer.update_asset(_entry(Category.AGENT, "claude"))
    entry = find_entry(find_block(load_document(path), "agents"), "claude")
    assert entry.comments == ["// pinned by team"]


def test_update_of_task_module_changed_upstream(config_dir, registry_root):
    installer = _installer(config_dir, registry_root)
    installer.install_asset(_entry(Category.TASK, "golang/debug"))

    write_module(registry_root, TASK_MODULE, "v0.2.0", {"task.cue": task_cue("Debug Go, v2")})
    result = installer.update_asset(_entry(Category.TASK, "golang/debug"))

    assert result.origin == f"{TASK_MODULE}@v0.2.0"
    task = _installed(config_dir, Category.TASK, "golang/debug")
    assert task.value_of("description") == StringValue("Debug Go, v2")
    assert isinstance(task.get("origin"), Field)
