"""Reconciliation of desired and installed package state.

The engine diffs the desired package list against what is installed,
applies uninstalls then installs strictly one at a time, and finally
enforces version pins. A failing package never stops the batch.
"""

import logging
from dataclasses import dataclass, field

from gistsync.core.desired_state import DesiredStateStore
from gistsync.core.errors import PackageActionError, RemoteAccessError
from gistsync.managers.base import ActionOutcome, PackageManager
from gistsync.models.package import PackageRecord, PackageSet
from gistsync.models.sync import SyncResult

logger = logging.getLogger(__name__)

# Errors recorded per package instead of aborting the batch
PACKAGE_ERRORS = (PackageActionError, RemoteAccessError)


@dataclass(slots=True)
class RebootTracker:
    """Collects applied packages that need a reboot.

    Created fresh for every reconciliation so nothing carries over between
    runs.
    """

    # Matched case-insensitively as substrings of the package id
    KNOWN_REBOOT_PACKAGES = (
        "microsoft.visualstudio",
        "docker.dockerdesktop",
        "oracle.virtualbox",
        "vmware",
        ".net",
    )

    packages: list[str] = field(default_factory=list)

    @property
    def required(self) -> bool:
        """Check if any tracked package needs a reboot."""
        return bool(self.packages)

    def record(self, outcome: ActionOutcome) -> None:
        """Track a successful outcome that flags or implies a reboot."""
        if outcome.failed:
            return
        if outcome.reboot_required or self.is_known_reboot_package(outcome.package_id):
            self.packages.append(outcome.package_id)

    @classmethod
    def is_known_reboot_package(cls, package_id: str) -> bool:
        """Check an id against the packages known to need a reboot."""
        key = package_id.casefold()
        return any(marker in key for marker in cls.KNOWN_REBOOT_PACKAGES)


@dataclass(slots=True)
class SyncPlan:
    """Delta between desired and installed packages.

    Attributes:
        desired: Desired package set.
        actual: Installed package set.
        to_install: Desired records missing from the host.
        to_uninstall: Records marked for removal that are installed.
        already_installed: Desired records already present.
    """

    desired: PackageSet
    actual: PackageSet
    to_install: list[PackageRecord] = field(default_factory=list)
    to_uninstall: list[PackageRecord] = field(default_factory=list)
    already_installed: list[PackageRecord] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """Check if no install or uninstall is needed."""
        return not (self.to_install or self.to_uninstall)

    @property
    def pinned(self) -> list[PackageRecord]:
        """Desired (non-uninstall) records that request a version."""
        return [r for r in self.desired.sorted() if not r.uninstall and r.is_pinned]


class ReconciliationEngine:
    """Brings the host in line with the desired package list.

    Example:
        >>> engine = ReconciliationEngine(get_package_manager(), desired_store)
        >>> result = engine.run()
        >>> result.exit_code
        0
    """

    def __init__(
        self,
        package_manager: PackageManager,
        desired_store: DesiredStateStore | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            package_manager: Applies package actions.
            desired_store: Source of the desired list for :meth:`prepare` and :meth:`run`.
        """
        self._package_manager = package_manager
        self._desired_store = desired_store

    def plan(self, desired: PackageSet, actual: PackageSet) -> SyncPlan:
        """Compute the install/uninstall delta without applying it."""
        plan = SyncPlan(desired=desired, actual=actual)
        for record in desired.sorted():
            if record.uninstall:
                if record in actual:
                    plan.to_uninstall.append(record)
            elif record in actual:
                plan.already_installed.append(record)
            else:
                plan.to_install.append(record)
        return plan

    def prepare(self, desired: PackageSet | None = None) -> SyncPlan:
        """Fetch desired and installed state and compute the plan.

        Args:
            desired: Desired set to use instead of fetching it from the Gist.

        Raises:
            NotConfiguredError: If no Gist is configured.
            AuthenticationRequiredError: If no valid credential is available.
            PackageActionError: If the installed packages cannot be listed.
        """
        if desired is None:
            if self._desired_store is None:
                msg = "ReconciliationEngine.prepare() needs a DesiredStateStore"
                raise RuntimeError(msg)
            desired = self._desired_store.fetch()
        actual = self._package_manager.list_installed()
        return self.plan(desired, actual)

    def run(self, dry_run: bool = False) -> SyncResult:
        """Fetch, diff and apply in one call.

        Precondition failures are raised before any package action. With
        ``dry_run`` nothing is applied and an empty result is returned.
        """
        plan = self.prepare()
        if dry_run:
            logger.info(
                "Dry run: %d to install, %d to uninstall",
                len(plan.to_install),
                len(plan.to_uninstall),
            )
            return SyncResult()
        return self.sync(plan.desired, plan.actual)

    def sync(self, desired: PackageSet, actual: PackageSet) -> SyncResult:
        """Apply the delta between ``desired`` and ``actual``.

        Args:
            desired: Desired package set.
            actual: Installed package set.

        Returns:
            SyncResult; ``exit_code`` is 0 only if nothing failed.
        """
        result = SyncResult()
        reboot = RebootTracker()
        install_failures: set[str] = set()
        aborted = False

        try:
            plan = self.plan(desired, actual)

            for record in plan.to_uninstall:
                outcome = self._apply("uninstall", record, result)
                if outcome is not None and outcome.success:
                    result.uninstalled.append(record.id)
                    reboot.record(outcome)
                    self._release_pin(record.id)

            for record in plan.to_install:
                outcome = self._apply("install", record, result)
                if outcome is not None and outcome.success:
                    result.installed.append(record.id)
                    reboot.record(outcome)
                else:
                    install_failures.add(record.key)

            self._enforce_pins(desired, install_failures, result)
        except Exception as e:
            logger.exception("Reconciliation aborted")
            result.errors.append(f"Reconciliation aborted: {e}")
            aborted = True

        result.reboot_required = reboot.required
        result.reboot_packages = list(reboot.packages)
        result.exit_code = 1 if result.failed or aborted else 0
        return result

    def _apply(
        self,
        action: str,
        record: PackageRecord,
        result: SyncResult,
    ) -> ActionOutcome | None:
        logger.info("%s %s", action.capitalize(), record.id)
        try:
            if action == "uninstall":
                outcome = self._package_manager.uninstall(record.id)
            else:
                outcome = self._package_manager.install(record)
        except PACKAGE_ERRORS as e:
            result.failed.append(record.id)
            result.errors.append(f"Failed to {action} {record.id}: {e}")
            return None

        if outcome.failed:
            result.failed.append(record.id)
            reason = outcome.message or "unknown error"
            result.errors.append(f"Failed to {action} {record.id}: {reason}")
        return outcome

    def _release_pin(self, package_id: str) -> None:
        # An uninstalled package keeps no pin; a missing pin is fine
        try:
            outcome = self._package_manager.unpin(package_id)
        except PACKAGE_ERRORS as e:
            logger.debug("Could not remove pin of uninstalled %s: %s", package_id, e)
            return
        if outcome.failed:
            logger.debug("No pin removed for uninstalled %s: %s", package_id, outcome.message)

    def _enforce_pins(
        self,
        desired: PackageSet,
        skip: set[str],
        result: SyncResult,
    ) -> None:
        for record in desired.sorted():
            if record.uninstall or record.key in skip:
                continue
            try:
                if record.version:
                    outcome = self._package_manager.pin(record.id, record.version)
                else:
                    outcome = self._package_manager.unpin(record.id)
            except PACKAGE_ERRORS as e:
                logger.warning("Pin enforcement failed for %s: %s", record.id, e)
                result.pin_failures.append(record.id)
                continue

            if outcome.success:
                (result.pinned if record.version else result.unpinned).append(record.id)
            elif record.version:
                logger.warning("Pin enforcement failed for %s: %s", record.id, outcome.message)
                result.pin_failures.append(record.id)
            else:
                # Most unpinned packages never had a pin
                logger.debug("No pin removed for %s: %s", record.id, outcome.message)
