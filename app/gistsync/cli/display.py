"""Shared Rich display functions for sync plans and results.

Provides the table builders and summary printers used by the sync
command for both dry runs and applied runs.
"""

from rich.table import Table

from gistsync.core.reconcile import SyncPlan
from gistsync.models.sync import SyncResult
from gistsync.utils.formatting import console, print_error, print_success, print_warning


def create_plan_table(plan: SyncPlan, dry_run: bool = False) -> Table:
    """Create a Rich table displaying planned actions.

    Uninstalls are listed before installs, matching execution order. Pinned
    versions are shown next to the package they apply to.

    Args:
        plan: Computed sync plan.
        dry_run: Whether this is a dry-run (changes table title).

    Returns:
        Rich Table configured for plan display.
    """
    title = "Planned Actions (Dry Run)" if dry_run else "Planned Actions"

    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Action", width=11, justify="center")
    table.add_column("Package", no_wrap=True)
    table.add_column("Version", style="package.version")

    for record in plan.to_uninstall:
        table.add_row("[removed]-uninstall[/removed]", f"[removed]{record.id}[/removed]", "")
    for record in plan.to_install:
        table.add_row(
            "[added]+install[/added]",
            f"[added]{record.id}[/added]",
            record.version or "latest",
        )

    return table


def create_results_table(result: SyncResult) -> Table:
    """Create a Rich table displaying per-package results.

    Args:
        result: Result of an applied sync.

    Returns:
        Rich Table with one row per attempted package.
    """
    table = Table(
        title="Results",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Status", width=8, justify="center")
    table.add_column("Action", width=10)
    table.add_column("Package", no_wrap=True)
    table.add_column("Message")

    for package_id in result.uninstalled:
        table.add_row("[success]OK[/success]", "uninstall", package_id, "")
    for package_id in result.installed:
        table.add_row("[success]OK[/success]", "install", package_id, "")
    for package_id, error in zip(result.failed, result.errors, strict=False):
        table.add_row("[error]FAIL[/error]", "", package_id, f"[muted]{error}[/muted]")

    return table


def print_plan_summary(plan: SyncPlan) -> None:
    """Print counts of planned installs and uninstalls.

    Args:
        plan: Computed sync plan.
    """
    parts: list[str] = []
    if plan.to_install:
        parts.append(f"[added]{len(plan.to_install)} to install[/added]")
    if plan.to_uninstall:
        parts.append(f"[removed]{len(plan.to_uninstall)} to uninstall[/removed]")
    if plan.already_installed:
        parts.append(f"[muted]{len(plan.already_installed)} already installed[/muted]")
    if plan.pinned:
        parts.append(f"[pinned]{len(plan.pinned)} pinned[/pinned]")

    if parts:
        console.print(f"\nSummary: {', '.join(parts)}")


def print_result_summary(result: SyncResult) -> None:
    """Print the outcome of an applied sync.

    Args:
        result: Result of an applied sync.
    """
    applied = len(result.installed) + len(result.uninstalled)
    if result.success:
        print_success(f"Sync complete: {applied} change(s) applied.")
    else:
        console.print(
            f"\n[success]{applied} succeeded[/success], [error]{len(result.failed)} failed[/error]"
        )

    # Errors beyond the per-package ones come from an aborted run
    for error in result.errors[len(result.failed) :]:
        print_error(error)
    if result.pinned:
        console.print(f"[pinned]Pinned: {', '.join(result.pinned)}[/pinned]")
    if result.unpinned:
        console.print(f"[muted]Pins removed: {', '.join(result.unpinned)}[/muted]")
    if result.pin_failures:
        print_warning(f"Could not enforce pins for: {', '.join(result.pin_failures)}")
    if result.reboot_required:
        print_warning("A reboot is required to finish applying changes.")
