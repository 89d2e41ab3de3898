"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

import sys

from rich.console import Console
from rich.table import Table

from gistsync.core.theme import get_theme
from gistsync.models.package import PackageSet


def _detect_color_system() -> str | None:
    """Use truecolor on interactive terminals, otherwise let Rich decide."""
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances (theme loaded once at import)
console = Console(theme=get_theme(), color_system=_detect_color_system())
err_console = Console(theme=get_theme(), stderr=True, color_system=_detect_color_system())

_quiet = False


def set_quiet(quiet: bool) -> None:
    """Suppress info and success messages. Warnings and errors still print."""
    global _quiet
    _quiet = quiet


def create_package_table(packages: PackageSet, title: str = "Desired Packages") -> Table:
    """Create a table listing the entries of a desired-state document.

    Args:
        packages: Packages to list, shown sorted by id.
        title: Table title.

    Returns:
        Rich Table with one row per package.
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],
    )
    table.add_column("Package", no_wrap=True)
    table.add_column("Version", style="package.version")
    table.add_column("State", justify="center")
    table.add_column("Options", style="muted")

    for record in packages.sorted():
        if record.uninstall:
            state = "[removed]uninstall[/]"
        elif record.is_pinned:
            state = "[pinned]pinned[/]"
        else:
            state = "[added]install[/]"

        options = [
            f"{name}={value}"
            for name, value in (
                ("scope", record.scope.value if record.scope else None),
                ("arch", record.architecture.value if record.architecture else None),
                ("source", record.source),
                ("custom", record.custom),
            )
            if value
        ]
        table.add_row(
            f"[package.id]{record.id}[/]",
            record.version or "-",
            state,
            " ".join(options),
        )
    return table


def print_info(message: str) -> None:
    """Print an info message."""
    if _quiet:
        return
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    if _quiet:
        return
    console.print(f"[success]{message}[/]")
