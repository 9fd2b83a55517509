"""Subprocess and clipboard collaborators.

Resolved command text is handed to these helpers unchanged; nothing here
inspects or validates the command itself.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from pacs.errors import PacsError

logger = logging.getLogger(__name__)

# Clipboard programs tried in order; the first one on PATH wins.
CLIPBOARD_COMMANDS: list[list[str]] = [
    ["pbcopy"],
    ["wl-copy"],
    ["xclip", "-selection", "clipboard"],
    ["xsel", "--clipboard", "--input"],
    ["clip.exe"],
]


class ClipboardError(PacsError):
    """Raised when text cannot be copied to the clipboard."""


class RunError(PacsError):
    """Raised when a command cannot be started."""


def find_clipboard_command() -> list[str] | None:
    """Return the first available clipboard program, or None."""
    for command in CLIPBOARD_COMMANDS:
        if shutil.which(command[0]) is not None:
            return command
    return None


def copy_to_clipboard(text: str) -> None:
    """Copy text to the system clipboard.

    Raises:
        ClipboardError: If no clipboard program is available or it fails.
    """
    command = find_clipboard_command()
    if command is None:
        raise ClipboardError(
            "No clipboard program found (tried: "
            + ", ".join(c[0] for c in CLIPBOARD_COMMANDS)
            + ")"
        )

    logger.debug("Copying %d characters with %s", len(text), command[0])
    try:
        result = subprocess.run(
            command,
            input=text,
            text=True,
            capture_output=True,
            check=False,
        )
    except (subprocess.SubprocessError, OSError) as e:
        raise ClipboardError(f"Failed to copy to clipboard: {e}") from e

    if result.returncode != 0:
        raise ClipboardError(
            f"Failed to copy to clipboard: {command[0]} exited with {result.returncode}"
        )


def run_command(text: str, *, cwd: str | None = None, shell: str = "sh") -> int:
    """Run command text with ``<shell> -c`` and return its exit status.

    Output is not captured; the child inherits the terminal.

    Raises:
        RunError: If the shell cannot be started or cwd does not exist.
    """
    workdir = Path(cwd).expanduser() if cwd else None
    if workdir is not None and not workdir.is_dir():
        raise RunError(f"Working directory does not exist: {workdir}")

    logger.debug("Running with %s in %s", shell, workdir or Path.cwd())
    try:
        result = subprocess.run([shell, "-c", text], cwd=workdir, check=False)
    except OSError as e:
        raise RunError(f"Failed to start {shell}: {e}") from e
    return result.returncode
