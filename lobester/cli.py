"""LobeSter CLI (``lobe``) — the local connector entry point."""

from __future__ import annotations

import asyncio
import logging

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from lobester import __version__
from lobester.config import load_config
from lobester.errors import LobesterError, PresetNotFoundError
from lobester.skills.models import SkillSource, SourceKind
from lobester.skills.refs import parse_skill_refs, resolve_skill_refs
from lobester.workspace import Workspace

console = Console()


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _workspace(ctx: click.Context) -> Workspace:
    """Build the workspace once per invocation and initialize state."""
    obj = ctx.ensure_object(dict)
    if "workspace" not in obj:
        try:
            workspace = Workspace.from_config(obj["config"])
            workspace.init_state()
        except LobesterError as exc:
            _abort(exc)
        obj["workspace"] = workspace
    return obj["workspace"]


def _abort(exc: LobesterError) -> None:
    console.print(f"[red]Error[/] ({exc.code}): {escape(exc.message)}")
    raise click.exceptions.Exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("--engram", default=None, help="Engram id or name used by `lobe list`")
@click.pass_context
def main(ctx: click.Context, engram: str | None):
    """LobeSter — local skill manager and OpenClaw config connector.

    Install skills, group them into engrams, and apply an engram to produce
    an OpenClaw config that layers the managed skills over your own.
    """
    try:
        config = load_config()
    except (OSError, ValueError) as exc:
        raise click.ClickException(f"Could not load configuration: {exc}")
    _setup_logging(config.log_level)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["engram"] = engram


# ── Service ──────────────────────────────────────────────────────────


@main.command()
@click.option("--port", "-p", default=None, type=int, help="Port to listen on")
@click.pass_context
def start(ctx: click.Context, port: int | None):
    """Start the local connector API on 127.0.0.1."""
    import uvicorn

    from web.backend.app.main import create_app

    workspace = _workspace(ctx)
    port = port or workspace.config.port
    app = create_app(workspace)
    workspace.runtime_log.info("server.started", port=port, url=f"http://localhost:{port}")
    console.print(f"\n[bold blue]LobeSter[/] running on http://localhost:{port}\n")
    uvicorn.run(app, host="127.0.0.1", port=port)


@main.command()
@click.pass_context
def init(ctx: click.Context):
    """Create the LobeSter state directories and files."""
    _workspace(ctx)
    console.print("[green]LobeSter initialized.[/]")


@main.command()
@click.pass_context
def doctor(ctx: click.Context):
    """Check that state directories and the base config exist."""
    config = ctx.obj["config"]
    try:
        workspace = Workspace.from_config(config)
    except LobesterError as exc:
        _abort(exc)

    table = Table(title="LobeSter doctor")
    table.add_column("Check", style="cyan")
    table.add_column("Path")
    table.add_column("Status")
    for check in workspace.doctor():
        colour = "green" if check.ok else "yellow"
        table.add_row(check.label, str(check.path), f"[{colour}]{check.status}[/]")
    console.print(table)


@main.command()
@click.option("--limit", "-n", default=20, help="Number of events to show")
@click.pass_context
def logs(ctx: click.Context, limit: int):
    """Show the newest connector log events."""
    workspace = _workspace(ctx)
    events = workspace.runtime_log.tail(limit)
    if not events:
        console.print("[yellow]No log events yet.[/]")
        return
    for event in events:
        level = event.get("level", "info")
        colour = {"error": "red", "warn": "yellow"}.get(level, "dim")
        console.print(f"[{colour}]{event.get('ts', '')} {level:5}[/] {event.get('message', '')}")


# ── Engrams ──────────────────────────────────────────────────────────


@main.command(name="list")
@click.pass_context
def list_engram_skills(ctx: click.Context):
    """List the skills in the engram given by --engram."""
    engram_ref = ctx.obj.get("engram")
    if not engram_ref:
        raise click.UsageError("Missing --engram. Usage: lobe --engram <name-or-id> list")

    workspace = _workspace(ctx)
    try:
        engram = workspace.presets.get_by_ref(engram_ref)
        if engram is None:
            raise PresetNotFoundError(f"Engram not found: {engram_ref}")
        by_id = {skill.id: skill for skill in workspace.skills.list()}
    except LobesterError as exc:
        _abort(exc)

    console.print(f"Engram: [cyan]{engram.name}[/] ({engram.id})")
    if not engram.skill_ids:
        console.print("[yellow]No skills in engram.[/]")
        return

    table = Table()
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Key")
    for skill_id in engram.skill_ids:
        skill = by_id.get(skill_id)
        if skill is None:
            table.add_row(skill_id, "[red]MISSING[/]", "")
        else:
            table.add_row(skill.id, skill.name, skill.key)
    console.print(table)


@main.command(name="set")
@click.option("--engram", "engram_ref", required=True, help="Engram id or name")
@click.pass_context
def set_engram(ctx: click.Context, engram_ref: str):
    """Apply an engram: write the overlay and generated OpenClaw config."""
    workspace = _workspace(ctx)
    try:
        outcome = workspace.orchestrator.apply_preset(engram_ref)
    except LobesterError as exc:
        _abort(exc)

    response = outcome.response
    console.print("[green]Engram set.[/]")
    console.print(f"  baseConfigPath: {response.base_config_path}")
    console.print(f"  generatedConfigPath: {response.generated_config_path}")
    console.print(f"  overlayPath: {response.overlay_path}")
    console.print(f"  conflicts: {len(response.conflicts)}")
    for conflict in response.conflicts:
        console.print(f"  [yellow]-[/] {escape(f'[{conflict.reason.value}]')} {conflict.key}: {conflict.message}")
    console.print(f"\n  {response.wrapper_snippets['bash']['snippet']}")


@main.command()
@click.option("--engram", "engram_ref", required=True, help="Engram id or name")
@click.option("--add", default=None, help="Comma-separated skill refs (id, name, or key)")
@click.option("--remove", default=None, help="Comma-separated skill refs (id, name, or key)")
@click.pass_context
def update(ctx: click.Context, engram_ref: str, add: str | None, remove: str | None):
    """Add or remove skills from an engram."""
    add_refs = parse_skill_refs(add)
    remove_refs = parse_skill_refs(remove)
    if not add_refs and not remove_refs:
        raise click.UsageError("Nothing to update. Provide --add and/or --remove.")

    workspace = _workspace(ctx)
    try:
        engram = workspace.presets.get_by_ref(engram_ref)
        if engram is None:
            raise PresetNotFoundError(f"Engram not found: {engram_ref}")
        installed = workspace.skills.list()
        add_ids = resolve_skill_refs(add_refs, installed)
        remove_ids = set(resolve_skill_refs(remove_refs, installed))

        skill_ids = list(engram.skill_ids)
        for skill_id in add_ids:
            if skill_id not in skill_ids:
                skill_ids.append(skill_id)
        skill_ids = [skill_id for skill_id in skill_ids if skill_id not in remove_ids]

        updated = workspace.presets.update(engram.id, skill_ids=skill_ids)
        if updated is None:
            raise PresetNotFoundError(f"Engram not found: {engram_ref}")
    except LobesterError as exc:
        _abort(exc)

    console.print("[green]Engram updated.[/]")
    console.print(f"  id: {updated.id}")
    console.print(f"  name: {updated.name}")
    console.print(f"  skillIds: {','.join(updated.skill_ids) or '(none)'}")


@main.group()
def create():
    """Create LobeSter objects."""


@create.command(name="engram")
@click.option("--name", required=True, help="Engram name")
@click.option("--skills", default=None, help="Comma-separated skill refs (id, name, or key)")
@click.pass_context
def create_engram(ctx: click.Context, name: str, skills: str | None):
    """Create an engram from a list of installed skills."""
    workspace = _workspace(ctx)
    try:
        skill_ids = resolve_skill_refs(parse_skill_refs(skills), workspace.skills.list())
        engram = workspace.presets.create(name=name, skill_ids=skill_ids)
    except LobesterError as exc:
        _abort(exc)

    console.print("[green]Engram created.[/]")
    console.print(f"  id: {engram.id}")
    console.print(f"  name: {engram.name}")
    console.print(f"  skillIds: {','.join(engram.skill_ids) or '(none)'}")


@main.group()
def engram():
    """Manage engrams (named skill presets)."""


@engram.command(name="list")
@click.pass_context
def list_engrams(ctx: click.Context):
    """List all engrams with their skills."""
    workspace = _workspace(ctx)
    rows = workspace.presets.list()
    if not rows:
        console.print("[yellow]No engrams.[/]")
        return

    by_id = {skill.id: skill for skill in workspace.skills.list()}
    table = Table(title=f"Engrams ({len(rows)})")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Skills", justify="right")
    table.add_column("Members")
    for row in rows:
        labels = []
        for skill_id in row.skill_ids:
            skill = by_id.get(skill_id)
            labels.append(f"{skill.name}[{skill.id}]" if skill else f"{skill_id}(missing)")
        table.add_row(row.id, row.name, str(len(row.skill_ids)), ", ".join(labels))
    console.print(table)


@engram.command(name="delete")
@click.argument("engram_ref")
@click.pass_context
def delete_engram(ctx: click.Context, engram_ref: str):
    """Delete an engram by id or name."""
    workspace = _workspace(ctx)
    try:
        target = workspace.presets.get_by_ref(engram_ref, strict=True)
        if target is None or not workspace.presets.remove(target.id):
            raise PresetNotFoundError(f"Engram not found: {engram_ref}")
    except LobesterError as exc:
        _abort(exc)
    console.print(f"[green]Engram deleted:[/] {target.id}")


# ── Skills ───────────────────────────────────────────────────────────


@main.group()
def skill():
    """Manage installed skills."""


@skill.command(name="install")
@click.option("--source", "source_kind", required=True, type=click.Choice(["local", "github"], case_sensitive=False))
@click.option("--ref", required=True, help="Absolute path or owner/repo[#ref]")
@click.pass_context
def install_skill(ctx: click.Context, source_kind: str, ref: str):
    """Install a skill from a local folder or a public GitHub repo."""
    workspace = _workspace(ctx)
    try:
        installed = workspace.skills.install(SkillSource(kind=SourceKind(source_kind.lower()), ref=ref))
    except LobesterError as exc:
        _abort(exc)

    console.print("[green]Skill installed.[/]")
    console.print(f"  id: {installed.id}")
    console.print(f"  name: {installed.name}")
    console.print(f"  key: {installed.key}")
    console.print(f"  localPath: {installed.local_path}")


@skill.command(name="install-batch")
@click.argument("root_path")
@click.pass_context
def install_skill_batch(ctx: click.Context, root_path: str):
    """Install every skill folder found under ROOT_PATH."""
    workspace = _workspace(ctx)
    try:
        results = workspace.skills.install_local_batch(root_path)
    except LobesterError as exc:
        _abort(exc)

    colours = {"installed": "green", "skipped": "yellow", "failed": "red"}
    for result in results:
        status = result.status.value
        line = f"  [{colours[status]}]{status:9}[/] {result.ref}"
        if result.error:
            line += f" [red]({result.error})[/]"
        console.print(line)


@skill.command(name="list")
@click.pass_context
def list_skills(ctx: click.Context):
    """List installed skills."""
    workspace = _workspace(ctx)
    rows = workspace.skills.list()
    if not rows:
        console.print("[yellow]No installed skills.[/]")
        return

    table = Table(title=f"Skills ({len(rows)})")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Key")
    table.add_column("Source")
    for row in rows:
        table.add_row(row.id, row.name, row.key, f"{row.source.kind.value}:{row.source.ref}")
    console.print(table)


@skill.command(name="remove")
@click.argument("skill_id")
@click.pass_context
def remove_skill(ctx: click.Context, skill_id: str):
    """Remove an installed skill and its managed content."""
    workspace = _workspace(ctx)
    if not workspace.skills.remove(skill_id):
        console.print(f"[red]Skill not found:[/] {skill_id}")
        raise click.exceptions.Exit(1)
    console.print(f"[green]Skill removed:[/] {skill_id}")


# ── Runs ─────────────────────────────────────────────────────────────


@main.group()
def runs():
    """Inspect apply history."""


@runs.command(name="list")
@click.option("--limit", "-n", default=20, help="Number of runs to show")
@click.pass_context
def list_runs(ctx: click.Context, limit: int):
    """List recent runs, newest first."""
    workspace = _workspace(ctx)
    rows = workspace.runs.list()[:limit]
    if not rows:
        console.print("[yellow]No runs yet.[/]")
        return

    colours = {"done": "green", "failed": "red", "running": "blue", "queued": "dim"}
    table = Table(title="Runs")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Status")
    table.add_column("Created")
    for row in rows:
        status = row.status.value
        table.add_row(row.id, row.title, f"[{colours[status]}]{status}[/]", row.created_at)
    console.print(table)


# ── License ──────────────────────────────────────────────────────────


@main.group(name="license")
def license_group():
    """Show or set the LobeSter license."""


def _print_limits(result) -> None:
    plan = "[green]pro[/]" if result.is_pro else "free"
    console.print(f"  plan: {plan} (source: {result.source.value})")
    for key, value in result.limits.to_wire().items():
        console.print(f"  {key}: {value}")


@license_group.command(name="status")
@click.pass_context
def license_status(ctx: click.Context):
    """Show effective limits."""
    workspace = _workspace(ctx)
    _print_limits(asyncio.run(workspace.entitlements.get_effective_limits()))


@license_group.command(name="set-token")
@click.argument("token")
@click.pass_context
def license_set_token(ctx: click.Context, token: str):
    """Store a license token and validate it."""
    token = token.strip()
    if not token:
        raise click.UsageError("Token is required")
    workspace = _workspace(ctx)
    workspace.entitlements.set_token(token)
    _print_limits(asyncio.run(workspace.entitlements.get_effective_limits()))


if __name__ == "__main__":
    main()
