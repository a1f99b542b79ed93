"""startkit CLI — search, install and manage configuration assets."""

import functools
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from startkit import __version__
from startkit.config import Scope, Settings
from startkit.errors import StartkitError

console = Console()
err_console = Console(stderr=True)


def handle_errors(func):
    """Report startkit errors in red and exit non-zero."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except StartkitError as e:
            err_console.print(f"[red]Error:[/] {escape(str(e))}")
            raise SystemExit(1) from e

    return wrapper


def _scope(local: bool) -> Scope:
    return Scope.LOCAL if local else Scope.GLOBAL


def _registry(settings: Settings):
    from startkit.registry.local_registry import LocalModuleRegistry

    return LocalModuleRegistry(settings.registry_dir)


@click.group()
@click.version_option(version=__version__)
@click.option("--config-dir", default=None, help="Global configuration directory")
@click.option("--registry-dir", default=None, help="Module registry directory")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def main(ctx: click.Context, config_dir: str | None, registry_dir: str | None, verbose: bool):
    """startkit — search and install shareable configuration assets.

    Assets (agents, roles, contexts, tasks) are published as modules in a
    registry and installed into one configuration document per category.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )
    ctx.obj = Settings.from_env(config_dir=config_dir, registry_dir=registry_dir)


# ── Search ───────────────────────────────────────────────────────────


@main.command()
@click.argument("query", default="")
@click.option("--tag", "-t", multiple=True, help="Filter by tag (any matches)")
@click.option("--installed", is_flag=True, help="Search installed assets instead of the index")
@click.option("--local", is_flag=True, help="With --installed, search the project configuration")
@click.pass_obj
@handle_errors
def search(settings: Settings, query: str, tag: tuple, installed: bool, local: bool):
    """Search assets by name, description and tags.

    QUERY terms are regular expressions; every term must match.
    """
    from startkit.assets.installed import load_category
    from startkit.assets.models import Category
    from startkit.assets.search import search_index, search_installed, sort_results

    if installed:
        config_dir = settings.dir_for(_scope(local))
        results = []
        for category in Category:
            doc = load_category(config_dir, category)
            results.extend(search_installed(doc, category, query, list(tag)))
        results = sort_results(results)
    else:
        index = _registry(settings).fetch_index()
        results = search_index(index, query, list(tag))

    if not results:
        console.print("[yellow]No matching assets found.[/]")
        return

    table = Table(title=f"Assets ({len(results)} found)")
    table.add_column("Category", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Score", justify="right", style="green")
    table.add_column("Description")

    for result in results:
        table.add_row(
            result.category.singular,
            result.name,
            str(result.score),
            result.entry.description[:60],
        )

    console.print(table)


# ── Add ──────────────────────────────────────────────────────────────


@main.command()
@click.argument("query", default="")
@click.option("--tag", "-t", multiple=True, help="Filter by tag (any matches)")
@click.option("--local", is_flag=True, help="Install into the project configuration")
@click.pass_obj
@handle_errors
def add(settings: Settings, query: str, tag: tuple, local: bool):
    """Find an asset in the index and install it.

    An exact name match wins; otherwise the query must match exactly one asset.
    """
    from startkit.assets.installer import Installer
    from startkit.assets.search import search_index

    registry = _registry(settings)
    index = registry.fetch_index()
    results = search_index(index, query, list(tag))

    if not results:
        console.print("[yellow]No matching assets found.[/]")
        return

    exact = [r for r in results if r.name == query]
    if len(exact) == 1:
        selected = exact[0]
    elif len(results) == 1:
        selected = results[0]
    else:
        console.print(f"[yellow]{len(results)} assets match; be more specific:[/]")
        for result in results:
            console.print(f"  [cyan]{result.entry.qualified_id}[/]  {result.entry.description}")
        return

    config_dir = settings.dir_for(_scope(local))
    installer = Installer(config_dir, client=registry, index=index)
    result = installer.install_asset(selected.entry)

    if result.role_name:
        console.print(f"  Role: [cyan]{result.role_name}[/]")
    console.print(
        f"\n[green]Installed[/] {result.category.singular} [cyan]{result.name}[/] "
        f"({result.origin}) to {result.path}"
    )


# ── List ─────────────────────────────────────────────────────────────


@main.command(name="list")
@click.argument("category", required=False)
@click.option("--local", is_flag=True, help="List the project configuration")
@click.pass_obj
@handle_errors
def list_assets(settings: Settings, category: str | None, local: bool):
    """List installed assets, optionally for one CATEGORY."""
    from startkit.assets.installed import list_installed
    from startkit.assets.models import Category
    from startkit.assets.provenance import version_from_origin

    config_dir = settings.dir_for(_scope(local))
    assets = list_installed(config_dir, Category.parse(category) if category else None)

    if not assets:
        console.print(f"[yellow]No assets installed in {config_dir}.[/]")
        return

    table = Table(title=f"Installed ({len(assets)} assets)")
    table.add_column("Category", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Version")
    table.add_column("Description")

    for asset in assets:
        table.add_row(
            asset.entry.category.singular,
            asset.entry.name,
            version_from_origin(asset.origin) or "-",
            asset.entry.description[:50],
        )

    console.print(table)


# ── Update ───────────────────────────────────────────────────────────


@main.command()
@click.argument("query", default="")
@click.option("--dry-run", is_flag=True, help="Show what would change without writing")
@click.option("--force", is_flag=True, help="Re-install even when versions match")
@click.option("--local", is_flag=True, help="Update the project configuration")
@click.pass_obj
@handle_errors
def update(settings: Settings, query: str, dry_run: bool, force: bool, local: bool):
    """Update installed assets whose index version has changed.

    QUERY optionally limits the update to assets whose name contains a term.
    """
    from startkit.assets.installed import list_installed
    from startkit.assets.installer import Installer
    from startkit.assets.provenance import version_from_origin, with_default_version
    from startkit.assets.search import parse_search_terms

    registry = _registry(settings)
    index = registry.fetch_index()
    config_dir = settings.dir_for(_scope(local))
    installer = Installer(config_dir, client=registry, index=index)
    terms = parse_search_terms(query)

    assets = list_installed(config_dir)
    if terms:
        assets = [a for a in assets if any(t in a.entry.name.lower() for t in terms)]
    if not assets:
        console.print("[yellow]No installed assets to update.[/]")
        return

    updated = 0
    for asset in assets:
        entry = asset.entry
        index_entry = index.get(entry.category, entry.name)
        if index_entry is None:
            console.print(f"  [dim]skip[/] {entry.qualified_id} (not in index)")
            continue

        current = version_from_origin(asset.origin)
        latest = index_entry.version or version_from_origin(
            registry.resolve_version(with_default_version(index_entry.module))
        )
        if current == latest and not force:
            console.print(f"  [green]OK[/] {entry.qualified_id} {current}")
            continue

        if dry_run:
            console.print(f"  [yellow]would update[/] {entry.qualified_id} {current or '-'} -> {latest}")
            continue

        result = installer.update_asset(index_entry)
        updated += 1
        console.print(
            f"  [green]updated[/] {entry.qualified_id} {current or '-'} -> "
            f"{version_from_origin(result.origin)}"
        )

    if not dry_run:
        console.print(f"\n{updated} asset(s) updated.")


# ── Remove ───────────────────────────────────────────────────────────


@main.command()
@click.argument("category")
@click.argument("name")
@click.option("--local", is_flag=True, help="Remove from the project configuration")
@click.pass_obj
@handle_errors
def remove(settings: Settings, category: str, name: str, local: bool):
    """Remove an installed asset."""
    from startkit.assets.models import Category
    from startkit.document.editor import load_document, remove_entry, save_document

    cat = Category.parse(category)
    path = Path(settings.dir_for(_scope(local))) / cat.config_file
    doc = load_document(path)
    remove_entry(doc, cat.value, name)
    save_document(path, doc)
    console.print(f"[green]Removed[/] {cat.singular} [cyan]{name}[/] from {path}")


if __name__ == "__main__":
    main()
