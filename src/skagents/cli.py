"""SKAgents CLI — build and sync AGENTS.md from the terminal.

Commands:
    get              Build AGENTS.md from selected skills
    set              Store a skill from a markdown file
    sync             Sync skills with AGENTS.md
    sync-remote      Sync, then pull remote changes into the skills repo
    list             List stored skill names
    local            Show skills and their sync status
    delete           Remove a skill section from AGENTS.md
    delete-globally  Remove a skill section and delete the stored skill
    config           Get or set configuration values
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from . import __version__
from . import config as cfg
from .errors import SkagentsError
from .store import SkillStore, read_markdown
from .sync import SkillSync, format_status

console = Console()
err_console = Console(stderr=True)


class AppContext:
    """Per-invocation settings; paths are resolved only when a command needs them."""

    def __init__(
        self,
        overrides: dict[str, str],
        skills_dir: Optional[str],
        agents_path: Optional[str],
    ) -> None:
        self.overrides = overrides
        self.skills_dir = skills_dir
        self.agents_path = agents_path

    def store(self) -> SkillStore:
        return SkillStore(cfg.resolve_skills_dir(self.overrides, self.skills_dir))

    def syncer(self) -> SkillSync:
        return SkillSync(self.store(), cfg.resolve_agents_path(self.agents_path), console=console)


pass_app = click.make_pass_decorator(AppContext)


def _fail(action: str, exc: Exception) -> None:
    err_console.print(f"[red]{action} failed:[/red] {escape(str(exc))}")
    sys.exit(1)


def expand_skill_args(args: tuple[str, ...]) -> list[str]:
    """Split comma- and space-separated skill arguments into names."""
    names = [piece.strip() for arg in args for piece in arg.split(",")]
    return [n for n in names if n]


@click.group()
@click.version_option(__version__, prog_name="skagents")
@click.option(
    "--config",
    "config_overrides",
    multiple=True,
    metavar="KEY:VALUE",
    help="Override a configuration value. Can be repeated.",
)
@click.option("--skills-dir", default=None, help="Directory containing skill markdown files.")
@click.option("--agents-path", default=None, help="Path to AGENTS.md (default: ./AGENTS.md).")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def main(
    ctx: click.Context,
    config_overrides: tuple[str, ...],
    skills_dir: Optional[str],
    agents_path: Optional[str],
    verbose: bool,
) -> None:
    """SKAgents — skill-driven AGENTS.md builder and synchronizer.

    Keep reusable instruction snippets in a skills directory and
    sync them with marked sections of AGENTS.md.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=err_console, show_path=False)],
            force=True,
        )
    try:
        overrides = cfg.parse_overrides(config_overrides)
    except SkagentsError as exc:
        _fail("Config", exc)
    ctx.obj = AppContext(overrides, skills_dir, agents_path)


@main.command()
@click.argument("skills", nargs=-1)
@pass_app
def get(app: AppContext, skills: tuple[str, ...]) -> None:
    """Build AGENTS.md from selected skills.

    SKILLS may be comma- or space-separated.
    """
    names = expand_skill_args(skills)
    if not names:
        raise click.UsageError("no skills provided")
    try:
        syncer = app.syncer()
        syncer.build(names)
    except SkagentsError as exc:
        _fail("Build", exc)
    console.print(f"[green]Wrote[/green] {escape(str(syncer.agents_path))}: {escape(', '.join(names))}")


@main.command("set")
@click.argument("name")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@pass_app
def set_skill(app: AppContext, name: str, path: Path) -> None:
    """Store a skill from a markdown file as <skills-dir>/NAME/SKILL.md."""
    try:
        store = app.store()
        target = store.save(name, read_markdown(path))
    except SkagentsError as exc:
        _fail("Set", exc)
    console.print(f"[green]Stored:[/green] {escape(name)} -> {escape(str(target))}")


def _print_sync_summary(adopted: list[str], resolved: list[str]) -> None:
    if adopted:
        console.print(f"[cyan]Adopted:[/cyan] {escape(', '.join(adopted))}")
    if resolved:
        console.print(f"[cyan]Resolved:[/cyan] {escape(', '.join(resolved))}")


@main.command()
@pass_app
def sync(app: AppContext) -> None:
    """Sync skills with AGENTS.md."""
    try:
        result = app.syncer().sync()
    except SkagentsError as exc:
        _fail("Sync", exc)
    _print_sync_summary(result.adopted, result.resolved)


@main.command("sync-remote")
@pass_app
def sync_remote(app: AppContext) -> None:
    """Sync skills with AGENTS.md, then pull remote skill changes."""
    try:
        result = app.syncer().sync_remote()
    except SkagentsError as exc:
        _fail("Sync", exc)
    _print_sync_summary(result.adopted, result.resolved)


@main.command("list")
@click.argument("fragment", required=False)
@pass_app
def list_skills(app: AppContext, fragment: Optional[str]) -> None:
    """List stored skills, optionally only those containing FRAGMENT."""
    try:
        names = app.store().list_names(fragment)
    except SkagentsError as exc:
        _fail("List", exc)

    if not names:
        console.print("[dim]No skills found.[/dim]")
        return
    separator = " " if fragment else "\n\n"
    console.print(escape(separator.join(names)), soft_wrap=True)


@main.command()
@pass_app
def local(app: AppContext) -> None:
    """Show skills with their sync status against AGENTS.md."""
    try:
        statuses = app.syncer().status()
    except SkagentsError as exc:
        _fail("Status", exc)
    for name, status in statuses.items():
        console.print(escape(format_status(name, status)), soft_wrap=True)


@main.command()
@click.argument("name")
@pass_app
def delete(app: AppContext, name: str) -> None:
    """Remove a skill section from AGENTS.md (the stored skill is kept)."""
    try:
        removed = app.syncer().delete(name)
    except SkagentsError as exc:
        _fail("Delete", exc)
    if not removed:
        err_console.print(f"[red]Not found:[/red] section {escape(name)}")
        sys.exit(1)
    console.print(f"[green]Removed section:[/green] {escape(name)}")


@main.command("delete-globally")
@click.argument("name")
@pass_app
def delete_globally(app: AppContext, name: str) -> None:
    """Remove a skill section from AGENTS.md and delete the stored skill."""
    try:
        removed = app.syncer().delete_globally(name)
    except SkagentsError as exc:
        _fail("Delete", exc)
    if not removed:
        err_console.print(f"[red]Not found:[/red] {escape(name)}")
        sys.exit(1)
    console.print(f"[green]Deleted:[/green] {escape(name)}")


@main.group("config", invoke_without_command=True)
@click.pass_context
def config_group(ctx: click.Context) -> None:
    """Get or set configuration values (lists them with no subcommand)."""
    if ctx.invoked_subcommand is not None:
        return
    try:
        config = cfg.load_config()
    except SkagentsError as exc:
        _fail("Config", exc)
    console.print("Required:", highlight=False)
    for key in config.REQUIRED_KEYS:
        value = config.get(key)
        console.print(escape(f"{key}={value if value is not None else ''}"), soft_wrap=True, highlight=False)
    optional = config.optional_items()
    if optional:
        console.print("Optional:", highlight=False)
        for key, value in optional:
            console.print(escape(f"{key}={value}"), soft_wrap=True, highlight=False)


@config_group.command("get")
@click.argument("key")
def config_get(key: str) -> None:
    """Print one configuration value."""
    try:
        value = cfg.get_value(key)
    except SkagentsError as exc:
        _fail("Config", exc)
    console.print(escape(value), soft_wrap=True, highlight=False)


@config_group.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key: str, value: str) -> None:
    """Set one configuration value."""
    try:
        stored = cfg.set_value(key, value)
    except SkagentsError as exc:
        _fail("Config", exc)
    console.print(escape(f"{key}={stored} (updated)"), soft_wrap=True, highlight=False)


if __name__ == "__main__":
    main()
