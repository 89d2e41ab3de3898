"""Reconciliation result models."""

from dataclasses import dataclass, field


@dataclass(slots=True)
class SyncResult:
    """Outcome of one reconciliation run.

    Created fresh for every run and never persisted.

    Attributes:
        installed: Ids installed successfully, in execution order.
        uninstalled: Ids uninstalled successfully, in execution order.
        failed: Ids whose install or uninstall failed.
        reboot_required: True if any applied package needs a reboot.
        reboot_packages: Ids of the applied packages that need a reboot.
        exit_code: 0 when nothing failed, 1 otherwise.
        errors: Human-readable reason for each failure.
        pinned: Ids whose pin was set to the desired version.
        unpinned: Ids whose pin was removed.
        pin_failures: Ids whose pin/unpin enforcement failed (best-effort).
    """

    installed: list[str] = field(default_factory=list)
    uninstalled: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    reboot_required: bool = False
    reboot_packages: list[str] = field(default_factory=list)
    exit_code: int = 0
    errors: list[str] = field(default_factory=list)
    pinned: list[str] = field(default_factory=list)
    unpinned: list[str] = field(default_factory=list)
    pin_failures: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Check if the run completed without failures."""
        return self.exit_code == 0

    @property
    def changed(self) -> bool:
        """Check if the run installed or uninstalled anything."""
        return bool(self.installed or self.uninstalled)

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON output."""
        return {
            "installed": list(self.installed),
            "uninstalled": list(self.uninstalled),
            "failed": list(self.failed),
            "reboot_required": self.reboot_required,
            "reboot_packages": list(self.reboot_packages),
            "exit_code": self.exit_code,
            "errors": list(self.errors),
            "pinned": list(self.pinned),
            "unpinned": list(self.unpinned),
            "pin_failures": list(self.pin_failures),
        }
