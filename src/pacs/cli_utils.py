"""CLI utility functions for pacs.

Provides helper functions for:
- Config wiring: Extracting Typer CLI options and passing to load_config
- Logging setup: Routing log records to stderr through rich
- Error formatting: Consistent user-friendly error messages with exit codes
- Option factories: Shared Typer options for project and environment scope
"""

from __future__ import annotations

import logging
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.logging import RichHandler

from pacs.config import PacsConfig, load_config

# Exit code conventions
EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1  # User error (bad input, unknown name, etc.)
EXIT_SYSTEM_ERROR = 2  # System error (permissions, I/O, etc.)


# -----------------------------------------------------------------------------
# Error Formatting Helpers
# -----------------------------------------------------------------------------


def error(msg: str, *, exit_code: int = EXIT_USER_ERROR) -> NoReturn:
    """Print an error message and exit with the given exit code.

    Args:
        msg: The error message to display.
        exit_code: Exit code to use (default: EXIT_USER_ERROR=1).

    Raises:
        typer.Exit: Always raises to exit the program.
    """
    styled_prefix = typer.style("Error:", fg=typer.colors.RED, bold=True)
    typer.echo(f"{styled_prefix} {msg}", err=True)
    raise typer.Exit(code=exit_code)


def warning(msg: str) -> None:
    """Print a warning message to stderr."""
    styled_prefix = typer.style("Warning:", fg=typer.colors.YELLOW, bold=True)
    typer.echo(f"{styled_prefix} {msg}", err=True)


def success(msg: str) -> None:
    """Print a success message to stdout."""
    styled_prefix = typer.style("Success:", fg=typer.colors.GREEN, bold=True)
    typer.echo(f"{styled_prefix} {msg}")


def info(msg: str) -> None:
    """Print an info message to stdout."""
    typer.echo(msg)


# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------


def setup_logging(verbose: bool = False) -> None:
    """Route pacs log records to stderr.

    Args:
        verbose: Log at DEBUG level instead of WARNING.
    """
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
    )
    logger = logging.getLogger("pacs")
    logger.handlers = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


# -----------------------------------------------------------------------------
# Config Wiring Helper
# -----------------------------------------------------------------------------


def wire_config(home: str | None = None) -> PacsConfig:
    """Wire CLI options to load_config with appropriate overrides.

    Args:
        home: Override for the data directory.

    Returns:
        Fully resolved PacsConfig instance.

    Raises:
        typer.Exit: If configuration is invalid.
    """
    cli_overrides: dict[str, Any] = {}

    if home is not None:
        cli_overrides["home"] = home

    try:
        return load_config(cli_overrides=cli_overrides)
    except ValueError as e:
        error(f"Invalid configuration: {e}", exit_code=EXIT_USER_ERROR)


def get_config_from_context(ctx: typer.Context) -> PacsConfig:
    """Get PacsConfig from Typer context if available.

    This helper retrieves the config object that was stored in the
    Typer context by the main callback.

    Raises:
        typer.Exit: If no config is found in context.
    """
    config = ctx.obj
    if not isinstance(config, PacsConfig):
        error(
            "Configuration not initialized. This is a bug in the CLI.",
            exit_code=EXIT_SYSTEM_ERROR,
        )
    return config


# -----------------------------------------------------------------------------
# Typer Option Factory Functions
# -----------------------------------------------------------------------------
# These factory functions create fresh Typer Option instances for each command.
# This is necessary because Typer consumes Option objects when decorating commands,
# so the same Option instance cannot be reused across multiple commands.


def home_option() -> Any:
    """Create a Typer Option for --home."""
    return typer.Option(
        None,
        "--home",
        help="Override the data directory (default: ~/.pacs).",
    )


def project_option() -> Any:
    """Create a Typer Option for --project / -p."""
    return typer.Option(
        None,
        "--project",
        "-p",
        help="Target project (defaults to the active project).",
    )


def env_option() -> Any:
    """Create a Typer Option for --env / -e."""
    return typer.Option(
        None,
        "--env",
        "-e",
        help="Use this environment instead of the active one.",
    )


def json_option() -> Any:
    """Create a Typer Option for --json."""
    return typer.Option(
        False,
        "--json",
        help="Output as JSON.",
    )
