"""
Terminal output for BuildLayer commands.

Tables and status lines are rendered with rich; the only prompt, the
hidden password entry of ``encrypt-credential``, uses questionary.
NO_COLOR disables colour and FORCE_COLOR forces it when piped.
"""

from __future__ import annotations

import os
import sys
from typing import Any, Iterable, Mapping

import questionary
from questionary import Style as QStyle
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

from buildlayer.core.errors import InputError
from buildlayer.specs.models import BuildValue, DataType
from buildlayer.specs.template import PlaceholderRef

CI_ENV_VARS = ("CI", "GITHUB_ACTIONS", "JENKINS_URL", "GITLAB_CI", "BUILD_ID")

console = Console(
    theme=Theme(
        {
            "info": "#88C0D0",
            "success": "#A3BE8C",
            "warning": "#EBCB8B",
            "error": "#BF616A bold",
            "stage": "#B48EAD bold",
            "key": "cyan",
            "muted": "#D8DEE9",
        }
    ),
    force_terminal=os.environ.get("FORCE_COLOR") is not None,
    no_color=os.environ.get("NO_COLOR") is not None,
)

PROMPT_STYLE = QStyle([("qmark", "fg:#88C0D0 bold"), ("answer", "fg:#A3BE8C")])

# (marker, style) per status line kind
_STATUS = {
    "success": ("✓", "success"),
    "error": ("✗", "error"),
    "warning": ("⚠", "warning"),
    "info": ("ℹ", "info"),
}


def _status(kind: str, message: str) -> None:
    marker, style = _STATUS[kind]
    console.print(f"[{style}]{marker} {message}[/{style}]")


def success(message: str) -> None:
    _status("success", message)


def error(message: str) -> None:
    _status("error", message)


def warning(message: str) -> None:
    _status("warning", message)


def info(message: str) -> None:
    _status("info", message)


def header(title: str, build: object | None = None) -> None:
    """Print the command banner, naming the build when there is one."""
    subtitle = f"[muted]{build}[/muted]" if build else None
    console.print()
    console.print(
        Panel(f"[bold]BuildLayer[/bold] [muted]|[/muted] {title}", subtitle=subtitle, border_style="cyan")
    )


def working(message: str):
    """Context manager showing a spinner while values resolve or stages render."""
    return console.status(f"[info]{message}[/info]", spinner="dots")


def _display_value(row: BuildValue) -> str:
    if row.data_type == DataType.CREDENTIAL:
        return f"[muted]{row.value}[/muted]"
    return row.value


def print_value_table(rows: Iterable[BuildValue]) -> None:
    """Print resolved build values; credential rows show their record path only."""
    table = Table(title="Resolved values")
    table.add_column("Key", style="key")
    table.add_column("Type")
    table.add_column("Value")
    for row in rows:
        table.add_row(row.key, row.data_type, _display_value(row))
    console.print(table)


def print_placeholder_table(refs: Iterable[PlaceholderRef]) -> None:
    table = Table(title="Required values")
    table.add_column("Stage", style="stage", justify="right")
    table.add_column("Action")
    table.add_column("Key", style="key")
    table.add_column("Line", justify="right")
    for ref in refs:
        table.add_row(str(ref.sequence_id), ref.function_name, ref.name, str(ref.line))
    console.print(table)


def print_attributes(attributes: Mapping[str, Any]) -> None:
    """Print workflow attributes captured during a run."""
    if not attributes:
        return
    console.print("\n[bold]Workflow attributes[/bold]")
    for name, value in attributes.items():
        console.print(f"  [key]@@{name}[/key] {value}")


def is_interactive() -> bool:
    """True in a terminal session that can answer prompts; never under CI."""
    if any(os.environ.get(var) for var in CI_ENV_VARS):
        return False
    return sys.stdin.isatty() and sys.stdout.isatty()


def prompt_password(username: str) -> str:
    """Ask twice for a credential password without echoing it.

    Raises:
        InputError: If nothing was entered or the two entries differ
    """
    first = questionary.password(f"Password for {username}:", style=PROMPT_STYLE).ask()
    if not first:
        raise InputError(f"No password entered for '{username}'", details={"username": username})
    second = questionary.password("Repeat password:", style=PROMPT_STYLE).ask()
    if first != second:
        raise InputError(f"Passwords for '{username}' do not match", details={"username": username})
    return first
