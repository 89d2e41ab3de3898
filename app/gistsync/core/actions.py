"""Single-package actions that keep the desired-state Gist in step.

Each action runs the package manager first and only edits the package
list once the action succeeded, so the Gist never records a change that
did not happen on this host.
"""

import logging

from gistsync.core.desired_state import DesiredStateStore
from gistsync.core.errors import PackageActionError
from gistsync.managers.base import ActionOutcome, PackageManager
from gistsync.models.package import PackageRecord, PackageSet

logger = logging.getLogger(__name__)


def _require_success(outcome: ActionOutcome, action: str) -> ActionOutcome:
    if outcome.failed:
        reason = outcome.message or f"{action} failed (exit code {outcome.exit_code})"
        raise PackageActionError(outcome.package_id, reason)
    return outcome


class PackageActions:
    """Install, uninstall, upgrade and pin packages, recording the result.

    Args:
        package_manager: Executes the package operations.
        desired_store: Reads and writes the desired package list.
    """

    def __init__(self, package_manager: PackageManager, desired_store: DesiredStateStore) -> None:
        self._package_manager = package_manager
        self._desired_store = desired_store

    def install(self, record: PackageRecord) -> ActionOutcome:
        """Install a package and add it to the package list.

        If the list already pins the package and no version is requested,
        the pinned version is installed. A requested or pinned version is
        pinned after the install.

        Raises:
            PackageActionError: If the install fails.
        """
        packages = self._desired_store.fetch_or_discover()
        existing = packages.get(record.id)
        if record.version is None and existing is not None and existing.version:
            record = record.with_changes(version=existing.version)

        outcome = _require_success(self._package_manager.install(record), "install")
        if record.version:
            self._pin_best_effort(record.id, record.version)

        base = existing or record
        packages.add(
            base.with_changes(
                id=record.id,
                version=record.version,
                uninstall=False,
                architecture=record.architecture or base.architecture,
                scope=record.scope or base.scope,
                source=record.source or base.source,
                custom=record.custom or base.custom,
            )
        )
        self._desired_store.save(packages)
        return outcome

    def uninstall(self, package_id: str) -> ActionOutcome:
        """Uninstall a package and mark it for removal in the package list.

        The entry keeps its other options but loses its version, and any
        pin on the host is removed.

        Raises:
            PackageActionError: If the uninstall fails.
        """
        outcome = _require_success(self._package_manager.uninstall(package_id), "uninstall")
        self._unpin_best_effort(package_id)

        packages = self._desired_store.fetch_or_discover()
        existing = packages.get(package_id) or PackageRecord(id=package_id)
        packages.add(existing.with_changes(uninstall=True, version=None))
        self._desired_store.save(packages)
        return outcome

    def upgrade(self, package_id: str, version: str | None = None) -> ActionOutcome:
        """Upgrade a package and keep the package list consistent.

        A pinned entry moves its pin to the upgraded version. An entry
        that was missing or marked for removal is recorded as installed.
        Unpinned entries already in the list are left untouched.

        Raises:
            PackageActionError: If the upgrade fails.
        """
        outcome = _require_success(
            self._package_manager.upgrade(package_id, version), "upgrade"
        )

        packages = self._desired_store.fetch_or_discover()
        existing = packages.get(package_id)

        if existing is not None and existing.is_pinned:
            new_version = version or existing.version
            self._pin_best_effort(package_id, new_version)
            packages.add(existing.with_changes(version=new_version, uninstall=False))
        elif existing is None or existing.uninstall:
            base = existing or PackageRecord(id=package_id)
            packages.add(base.with_changes(version=None, uninstall=False))
        else:
            logger.debug("%s is already listed without a pin; list unchanged", package_id)
            return outcome

        self._desired_store.save(packages)
        return outcome

    def pin_add(self, package_id: str, version: str) -> ActionOutcome:
        """Pin a package to a version and record the pin.

        Raises:
            PackageActionError: If the pin cannot be applied.
        """
        outcome = _require_success(self._package_manager.pin(package_id, version), "pin")

        packages = self._desired_store.fetch_or_discover()
        existing = packages.get(package_id) or PackageRecord(id=package_id)
        packages.add(existing.with_changes(version=version, uninstall=False))
        self._desired_store.save(packages)
        return outcome

    def pin_remove(self, package_id: str) -> ActionOutcome:
        """Remove a package's pin and clear its version in the list.

        A package missing from the list is not added.

        Raises:
            PackageActionError: If the pin cannot be removed.
        """
        outcome = _require_success(self._package_manager.unpin(package_id), "unpin")

        packages = self._desired_store.fetch_or_discover()
        existing = packages.get(package_id)
        if existing is None:
            logger.debug("%s is not in the package list; nothing to record", package_id)
            return outcome

        packages.add(existing.with_changes(version=None))
        self._desired_store.save(packages)
        return outcome

    def export(self) -> PackageSet:
        """Return the installed packages as a package list."""
        return self._package_manager.list_installed()

    def import_packages(self, packages: PackageSet) -> None:
        """Replace the remote package list with the given one."""
        self._desired_store.save(packages)

    def _pin_best_effort(self, package_id: str, version: str | None) -> None:
        if not version:
            return
        try:
            outcome = self._package_manager.pin(package_id, version)
        except PackageActionError as e:
            logger.warning("Could not pin %s to %s: %s", package_id, version, e)
            return
        if outcome.failed:
            logger.warning("Could not pin %s to %s: %s", package_id, version, outcome.message)

    def _unpin_best_effort(self, package_id: str) -> None:
        try:
            outcome = self._package_manager.unpin(package_id)
        except PackageActionError as e:
            logger.warning("Could not remove pin for %s: %s", package_id, e)
            return
        if outcome.failed:
            logger.debug("No pin removed for %s: %s", package_id, outcome.message)
