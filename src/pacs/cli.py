"""pacs CLI - Project Aware Command Storage."""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from pacs import __version__
from pacs.cli_utils import (
    EXIT_SYSTEM_ERROR,
    env_option,
    error,
    get_config_from_context,
    home_option,
    info,
    json_option,
    project_option,
    setup_logging,
    success,
    warning,
    wire_config,
)
from pacs.editor import (
    edit_text,
    parse_command_text,
    parse_environments,
    render_environments,
)
from pacs.errors import PacsError, PersistenceError
from pacs.resolver import ResolvedCommand
from pacs.shell import copy_to_clipboard, run_command
from pacs.storage import JsonStore
from pacs.vault import Vault

app = typer.Typer(
    name="pacs",
    help="pacs - Project Aware Command Storage. Save shell commands per project and fill their placeholders from environments.",
    add_completion=False,
    no_args_is_help=True,
)
project_app = typer.Typer(help="Manage projects.", no_args_is_help=True)
env_app = typer.Typer(help="Manage project environments.", no_args_is_help=True)
app.add_typer(project_app, name="project")
app.add_typer(env_app, name="env")

# Rich console for tables
console = Console(highlight=False)


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


@contextmanager
def _handle_errors() -> Iterator[None]:
    """Map pacs errors to CLI errors and exit codes."""
    try:
        yield
    except PersistenceError as e:
        error(str(e), exit_code=EXIT_SYSTEM_ERROR)
    except (PacsError, ValueError) as e:
        error(str(e))


def _open_vault(ctx: typer.Context) -> Vault:
    config = get_config_from_context(ctx)
    with _handle_errors():
        return Vault.open(config)


def _resolved_to_dict(resolved: ResolvedCommand) -> dict[str, Any]:
    return {
        "name": resolved.name,
        "project": resolved.project,
        "command": resolved.text,
        "environment": resolved.used_environment,
        "complete": resolved.complete,
        "missing": list(resolved.missing),
        "cwd": resolved.cwd,
    }


def _warn_incomplete(resolved: ResolvedCommand) -> None:
    if resolved.complete or not resolved.missing:
        return
    missing = ", ".join(resolved.missing)
    if resolved.used_environment is None:
        warning(f"No active environment; placeholders left as-is: {missing}")
    else:
        warning(f"Unresolved placeholders in '{resolved.used_environment}': {missing}")


# -----------------------------------------------------------------------------
# Version and Main Callbacks
# -----------------------------------------------------------------------------


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"pacs version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    home: str | None = home_option(),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Log debug output to stderr.",
    ),
) -> None:
    """pacs - Project Aware Command Storage."""
    setup_logging(verbose)
    ctx.obj = wire_config(home=home)


# -----------------------------------------------------------------------------
# Init Command
# -----------------------------------------------------------------------------


@app.command()
def init(
    ctx: typer.Context,
    project: str | None = typer.Option(
        None,
        "--project",
        "-p",
        help="Create a first project and make it active.",
    ),
) -> None:
    """Initialize the pacs data directory."""
    config = get_config_from_context(ctx)
    store = JsonStore.from_config(config)
    with _handle_errors():
        created = store.initialize()
    if created:
        success(f"Initialized pacs at {store.home}")
    else:
        info(f"pacs already initialized at {store.home}")

    if project is not None:
        with _handle_errors():
            Vault(store).add_project(project, activate=True)
        success(f"Project '{project}' created and activated.")


# -----------------------------------------------------------------------------
# Command Management
# -----------------------------------------------------------------------------


@app.command()
def add(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name for the command."),
    template: str | None = typer.Argument(
        None,
        help="The shell command to save. Opens an editor when omitted.",
    ),
    tags: list[str] | None = typer.Option(
        None,
        "--tag",
        "-t",
        help="Tag for organizing commands. Repeat for several tags.",
    ),
    cwd: str | None = typer.Option(
        None,
        "--cwd",
        "-c",
        help="Working directory for the command.",
    ),
    project: str | None = project_option(),
) -> None:
    """Add a new command to a project."""
    config = get_config_from_context(ctx)
    vault = _open_vault(ctx)
    with _handle_errors():
        owner = vault.project(project)
        if template is None:
            template = parse_command_text(
                edit_text("", editor=config.get_editor(), extension=".sh")
            )
        vault.add_command(name, template, tags or [], cwd, project=owner.name)
    success(f"Command '{name}' added to project '{owner.name}'.")


@app.command()
def edit(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the command to edit."),
    project: str | None = project_option(),
) -> None:
    """Edit a command's template in an editor."""
    config = get_config_from_context(ctx)
    vault = _open_vault(ctx)
    with _handle_errors():
        command = vault.get_command(name, project=project)
        edited = edit_text(command.template, editor=config.get_editor(), extension=".sh")
        vault.edit_command(name, parse_command_text(edited), project=project)
    success(f"Command '{name}' updated.")


@app.command()
def rename(
    ctx: typer.Context,
    old_name: str = typer.Argument(..., help="Current name of the command."),
    new_name: str = typer.Argument(..., help="New name for the command."),
    project: str | None = project_option(),
) -> None:
    """Rename a command."""
    vault = _open_vault(ctx)
    with _handle_errors():
        vault.rename_command(old_name, new_name, project=project)
    success(f"Command '{old_name}' renamed to '{new_name}'.")


@app.command("remove")
def remove(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the command to remove."),
    project: str | None = project_option(),
) -> None:
    """Remove a command."""
    vault = _open_vault(ctx)
    with _handle_errors():
        vault.remove_command(name, project=project)
    success(f"Command '{name}' removed.")


app.command("rm", hidden=True)(remove)


@app.command("list")
def list_commands(
    ctx: typer.Context,
    tag: str | None = typer.Option(None, "--tag", "-t", help="Filter commands by tag."),
    env: str | None = env_option(),
    project: str | None = project_option(),
    names: bool = typer.Option(False, "--names", "-n", help="Show only command names."),
    json_output: bool = json_option(),
) -> None:
    """List commands, resolved against the active or given environment."""
    vault = _open_vault(ctx)
    with _handle_errors():
        owner = vault.project(project)
        commands = vault.list_commands(tag, project=owner.name)
        resolved = vault.resolve_all(tag, env, project=owner.name)

    if json_output:
        entries = []
        for command, result in zip(commands, resolved):
            entry = _resolved_to_dict(result)
            entry["tags"] = command.sorted_tags
            entries.append(entry)
        console.print_json(json.dumps({"project": owner.name, "commands": entries}))
        return

    if not commands:
        info("No commands found. Use 'pacs add <name> <command>' to add one.")
        return

    if names:
        for command in commands:
            info(command.name)
        return

    environment = env or vault.active.get_active_environment(owner.name)
    title = owner.name if environment is None else f"{owner.name} ({environment})"
    table = Table(title=escape(title))
    table.add_column("Name", style="cyan")
    table.add_column("Tags", style="yellow")
    table.add_column("Command")
    for command, result in zip(commands, resolved):
        table.add_row(
            escape(command.name),
            escape(", ".join(command.sorted_tags)),
            escape(result.text.rstrip()),
        )
    console.print(table)


app.command("ls", hidden=True)(list_commands)


@app.command()
def show(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the command to show."),
    env: str | None = env_option(),
    project: str | None = project_option(),
    json_output: bool = json_option(),
) -> None:
    """Print a command's resolved text."""
    vault = _open_vault(ctx)
    with _handle_errors():
        resolved = vault.resolve(name, env, project=project)

    if json_output:
        console.print_json(json.dumps(_resolved_to_dict(resolved)))
        return

    typer.echo(resolved.text.rstrip("\n"))
    _warn_incomplete(resolved)


@app.command()
def run(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the command to run."),
    env: str | None = env_option(),
    project: str | None = project_option(),
    allow_partial: bool = typer.Option(
        False,
        "--allow-partial",
        help="Run even if some placeholders are unresolved.",
    ),
) -> None:
    """Resolve a command and run it in a shell."""
    config = get_config_from_context(ctx)
    vault = _open_vault(ctx)
    with _handle_errors():
        resolved = vault.resolve(name, env, project=project)

    if resolved.missing and not allow_partial:
        error(
            f"Unresolved placeholders: {', '.join(resolved.missing)}. "
            "Use --allow-partial to run anyway."
        )

    with _handle_errors():
        code = run_command(resolved.text, cwd=resolved.cwd, shell=config.shell)
    if code != 0:
        raise typer.Exit(code=code)


@app.command("copy")
def copy(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the command to copy."),
    env: str | None = env_option(),
    project: str | None = project_option(),
) -> None:
    """Resolve a command and copy it to the clipboard."""
    vault = _open_vault(ctx)
    with _handle_errors():
        resolved = vault.resolve(name, env, project=project)
        copy_to_clipboard(resolved.text.strip())
    _warn_incomplete(resolved)
    success(f"Copied '{name}' to clipboard.")


app.command("cp", hidden=True)(copy)


@app.command()
def search(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Text to look for in command names and bodies."),
) -> None:
    """Search commands across all projects."""
    vault = _open_vault(ctx)
    matches = vault.search(query)
    if not matches:
        info("No matches found.")
        return
    for project_name, command in matches:
        info(f"{project_name}/{command.name}")


# -----------------------------------------------------------------------------
# Project Commands
# -----------------------------------------------------------------------------


@project_app.command("add")
def project_add(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the project."),
    path: str | None = typer.Option(None, "--path", help="Path associated with the project."),
) -> None:
    """Create a project and make it active."""
    vault = _open_vault(ctx)
    with _handle_errors():
        vault.add_project(name, path, activate=True)
    success(f"Project '{name}' created and activated.")


@project_app.command("remove")
def project_remove(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the project to remove."),
) -> None:
    """Remove a project with all its commands and environments."""
    vault = _open_vault(ctx)
    with _handle_errors():
        vault.remove_project(name)
    success(f"Project '{name}' deleted.")


project_app.command("rm", hidden=True)(project_remove)


@project_app.command("list")
def project_list(
    ctx: typer.Context,
    json_output: bool = json_option(),
) -> None:
    """List all projects. The active one is marked with '*'."""
    vault = _open_vault(ctx)
    projects = vault.list_projects()
    active = vault.active_project_name()

    if json_output:
        data = {
            "active_project": active,
            "projects": [
                {
                    "name": project.name,
                    "path": project.path,
                    "commands": len(project.commands),
                    "environments": len(project.environments),
                }
                for project in projects
            ],
        }
        console.print_json(json.dumps(data))
        return

    if not projects:
        info("No projects. Use 'pacs project add' to create one.")
        return

    for project in projects:
        path_info = f" ({project.path})" if project.path else ""
        marker = " *" if project.name == active else ""
        info(f"{project.name}{path_info}{marker}")


project_app.command("ls", hidden=True)(project_list)


@project_app.command("switch")
def project_switch(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the project to switch to."),
) -> None:
    """Make a project active."""
    vault = _open_vault(ctx)
    with _handle_errors():
        vault.switch_project(name)
    success(f"Switched to project '{name}'.")


@project_app.command("clear")
def project_clear(ctx: typer.Context) -> None:
    """Clear the active project."""
    vault = _open_vault(ctx)
    with _handle_errors():
        vault.clear_project()
    success("Active project cleared.")


@project_app.command("active")
def project_active(ctx: typer.Context) -> None:
    """Show the active project."""
    vault = _open_vault(ctx)
    active = vault.active_project_name()
    info(active if active is not None else "No active project.")


# -----------------------------------------------------------------------------
# Environment Commands
# -----------------------------------------------------------------------------


@env_app.command("add")
def env_add(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Environment name to add (e.g. dev, stg)."),
    project: str | None = project_option(),
) -> None:
    """Add an empty environment and make it active."""
    vault = _open_vault(ctx)
    with _handle_errors():
        owner = vault.project(project)
        vault.add_environment(name, project=owner.name, activate=True)
    success(f"Environment '{name}' added and activated in project '{owner.name}'.")


@env_app.command("remove")
def env_remove(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Environment name to remove."),
    project: str | None = project_option(),
) -> None:
    """Remove an environment."""
    vault = _open_vault(ctx)
    with _handle_errors():
        owner = vault.project(project)
        vault.remove_environment(name, project=owner.name)
    success(f"Environment '{name}' removed from project '{owner.name}'.")


env_app.command("rm", hidden=True)(env_remove)


@env_app.command("edit")
def env_edit(
    ctx: typer.Context,
    project: str | None = project_option(),
) -> None:
    """Edit every environment of a project in an editor."""
    config = get_config_from_context(ctx)
    vault = _open_vault(ctx)
    with _handle_errors():
        owner = vault.project(project)
        active = vault.active.get_active_environment(owner.name)
        edited = edit_text(
            render_environments(owner, active),
            editor=config.get_editor(),
            extension=".toml",
        )
        document = parse_environments(edited)
        vault.apply_environment_values(document.values, document.active, project=owner.name)
    success(f"Environments updated for project '{owner.name}'.")


@env_app.command("list")
def env_list(
    ctx: typer.Context,
    project: str | None = project_option(),
    json_output: bool = json_option(),
) -> None:
    """List environments and their values. The active one is marked with '*'."""
    vault = _open_vault(ctx)
    with _handle_errors():
        owner = vault.project(project)
    environments = owner.environments.list()
    active = vault.active.get_active_environment(owner.name)

    if json_output:
        data = {
            "project": owner.name,
            "active_environment": active,
            "environments": [
                {"name": environment.name, "values": dict(environment.sorted_items())}
                for environment in environments
            ],
        }
        console.print_json(json.dumps(data))
        return

    if not environments:
        info("No environments.")
        return

    for environment in environments:
        marker = " *" if environment.name == active else ""
        info(f"{environment.name}{marker}")
        for key, value in environment.sorted_items():
            info(f"  {key} = {value}")


env_app.command("ls", hidden=True)(env_list)


@env_app.command("switch")
def env_switch(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Environment name to switch to."),
    project: str | None = project_option(),
) -> None:
    """Make an environment active."""
    vault = _open_vault(ctx)
    with _handle_errors():
        owner = vault.project(project)
        vault.switch_environment(name, project=owner.name)
    success(f"Switched to environment '{name}' in project '{owner.name}'.")


@env_app.command("clear")
def env_clear(
    ctx: typer.Context,
    project: str | None = project_option(),
) -> None:
    """Clear the active environment of a project."""
    vault = _open_vault(ctx)
    with _handle_errors():
        owner = vault.project(project)
        vault.clear_environment(project=owner.name)
    success(f"Active environment cleared in project '{owner.name}'.")


@env_app.command("active")
def env_active(
    ctx: typer.Context,
    project: str | None = project_option(),
) -> None:
    """Show the active environment of a project."""
    vault = _open_vault(ctx)
    with _handle_errors():
        active = vault.active_environment(project=project)
    info(active if active is not None else "No active environment.")
