"""Abstract base class for package managers.

This module defines the PackageManager capability surface that the
reconciliation engine drives, and the value types its operations return.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from gistsync.core.errors import GistSyncError
from gistsync.models.package import PackageRecord, PackageSet

# Exit code reported when the package manager process could not be started
PASSTHROUGH_LAUNCH_FAILED = -1


@dataclass(frozen=True, slots=True)
class ActionOutcome:
    """Result of a single package action.

    Attributes:
        package_id: Identifier the action was applied to.
        success: Whether the action completed.
        exit_code: Package-manager exit code (0 on success).
        message: Human-readable failure reason, if any.
        reboot_required: True if the package manager asked for a reboot.
    """

    package_id: str
    success: bool
    exit_code: int = 0
    message: str | None = None
    reboot_required: bool = False

    @property
    def failed(self) -> bool:
        """Check if the action failed."""
        return not self.success


@dataclass(frozen=True, slots=True)
class PassthroughResult:
    """Result of running the package manager with raw arguments.

    Attributes:
        exit_code: Exit code of the child process, verbatim, or
            PASSTHROUGH_LAUNCH_FAILED if it never started.
        error: Launch failure reason, if any.
    """

    exit_code: int
    error: str | None = None

    @property
    def launched(self) -> bool:
        """Check if the child process was started."""
        return self.error is None


class FallbackRequired(GistSyncError):
    """Raised by a primary adapter that cannot serve an operation.

    Carries the operation name and its original arguments so the fallback
    adapter can be invoked with exactly what the caller supplied.
    """

    def __init__(
        self,
        operation: str,
        call_args: tuple[Any, ...] = (),
        call_kwargs: dict[str, Any] | None = None,
        reason: str = "",
    ) -> None:
        self.operation = operation
        self.call_args = call_args
        self.call_kwargs = dict(call_kwargs or {})
        self.reason = reason
        super().__init__(f"{operation} requires fallback: {reason or 'unsupported'}")


class PackageManager(ABC):
    """Abstract base class for package managers.

    Implementations report action failures through ActionOutcome rather
    than raising, so a caller can apply a batch and record each result.

    Example:
        >>> manager = FallbackPackageManager(StructuredAdapter(), CommandLineAdapter())
        >>> outcome = manager.install(PackageRecord("Git.Git"))
        >>> outcome.success
        True
    """

    @abstractmethod
    def install(self, record: PackageRecord) -> ActionOutcome:
        """Install a package with the options carried by ``record``."""

    @abstractmethod
    def uninstall(self, package_id: str) -> ActionOutcome:
        """Uninstall a package.

        The identifier is resolved against :meth:`list_installed` first so a
        partial or differently cased id addresses the exact installed package.
        """

    @abstractmethod
    def upgrade(self, package_id: str, version: str | None = None) -> ActionOutcome:
        """Upgrade a package to ``version``, or to the latest if None."""

    @abstractmethod
    def pin(self, package_id: str, version: str) -> ActionOutcome:
        """Pin a package to ``version``."""

    @abstractmethod
    def unpin(self, package_id: str) -> ActionOutcome:
        """Remove any pin from a package."""

    @abstractmethod
    def list_installed(self) -> PackageSet:
        """Return the packages currently installed on the host.

        Raises:
            PackageActionError: If the installed set cannot be determined.
        """

    @abstractmethod
    def execute_passthrough(self, args: list[str]) -> PassthroughResult:
        """Run the package manager with ``args`` unmodified.

        Never raises for a launch failure; returns PASSTHROUGH_LAUNCH_FAILED.
        """

    def resolve_installed_id(self, package_id: str) -> str | None:
        """Find the exact installed id for a user-supplied identifier.

        An exact case-insensitive match wins; otherwise the first installed
        id (in sorted order) containing ``package_id`` is returned.

        Returns:
            The installed id, or None if nothing matches.
        """
        installed = self.list_installed()
        exact = installed.get(package_id)
        if exact is not None:
            return exact.id

        needle = package_id.casefold()
        for record in installed.sorted():
            if needle in record.key:
                return record.id
        return None
