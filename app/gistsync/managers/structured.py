"""Structured (in-process catalog) package manager adapter.

Talks to a package catalog through a CatalogConnector instead of parsing
command output. Anything the catalog cannot serve raises FallbackRequired
with the caller's original arguments, so a FallbackPackageManager can hand
the call to the command-line adapter unchanged.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from gistsync.managers.base import (
    ActionOutcome,
    FallbackRequired,
    PackageManager,
    PassthroughResult,
)
from gistsync.models.package import PackageRecord, PackageSet

logger = logging.getLogger(__name__)


class CatalogStatus(Enum):
    """Status reported by catalog operations."""

    OK = "ok"
    ERROR = "error"
    NOT_FOUND = "not_found"


@dataclass(frozen=True, slots=True)
class CatalogPackage:
    """A package as seen by the catalog.

    Attributes:
        id: Package identifier.
        name: Display name.
        installed_version: Installed version, or None if not installed.
    """

    id: str
    name: str
    installed_version: str | None = None

    @property
    def is_installed(self) -> bool:
        """Check if the package is installed on the host."""
        return self.installed_version is not None


@dataclass(frozen=True, slots=True)
class CatalogResult:
    """Result of a catalog install, uninstall or upgrade."""

    status: CatalogStatus
    reboot_required: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Check if the operation completed."""
        return self.status is CatalogStatus.OK


class PackageCatalog(Protocol):
    """Connected package catalog.

    ``find_packages()`` lists installed packages; with a query it also
    returns available packages matching it.
    """

    def find_packages(self, query: str | None = None) -> Sequence[CatalogPackage]: ...

    def install(self, package: CatalogPackage, record: PackageRecord) -> CatalogResult: ...

    def uninstall(self, package: CatalogPackage) -> CatalogResult: ...

    def upgrade(self, package: CatalogPackage, version: str | None) -> CatalogResult: ...


class CatalogConnector(Protocol):
    """Factory for a connected PackageCatalog."""

    def connect(self) -> PackageCatalog: ...


class StructuredAdapter(PackageManager):
    """PackageManager backed by an in-process catalog.

    Without a connector every operation requires fallback, which makes the
    adapter safe to compose on hosts that have no catalog binding.

    Example:
        >>> adapter = StructuredAdapter(connector)
        >>> adapter.list_installed().ids()
        ['Git.Git', 'Microsoft.PowerToys']
    """

    def __init__(self, connector: CatalogConnector | None = None) -> None:
        """Initialize the adapter.

        Args:
            connector: Catalog connector. None means no catalog is available.
        """
        self._connector = connector

    @property
    def connector(self) -> CatalogConnector | None:
        """Catalog connector, or None if no catalog is available."""
        return self._connector

    def install(self, record: PackageRecord) -> ActionOutcome:
        """Install a package found in the catalog."""
        return self._apply("install", (record,), record.id, lambda c, p: c.install(p, record))

    def uninstall(self, package_id: str) -> ActionOutcome:
        """Uninstall the installed package resolved from ``package_id``."""
        try:
            installed_id = self.resolve_installed_id(package_id)
        except FallbackRequired as e:
            raise FallbackRequired("uninstall", (package_id,), reason=e.reason) from e
        if installed_id is None:
            raise FallbackRequired("uninstall", (package_id,), reason="no installed match")
        return self._apply("uninstall", (package_id,), installed_id, lambda c, p: c.uninstall(p))

    def upgrade(self, package_id: str, version: str | None = None) -> ActionOutcome:
        """Upgrade a package found in the catalog."""
        return self._apply(
            "upgrade",
            (package_id,),
            package_id,
            lambda c, p: c.upgrade(p, version),
            {"version": version},
        )

    def pin(self, package_id: str, version: str) -> ActionOutcome:
        """Pinning has no catalog API."""
        raise FallbackRequired("pin", (package_id, version), reason="no catalog API")

    def unpin(self, package_id: str) -> ActionOutcome:
        """Unpinning has no catalog API."""
        raise FallbackRequired("unpin", (package_id,), reason="no catalog API")

    def list_installed(self) -> PackageSet:
        """Return installed packages reported by the catalog."""
        catalog = self._connect("list_installed", ())
        try:
            found = catalog.find_packages()
        except Exception as e:
            raise FallbackRequired("list_installed", reason=str(e)) from e
        return PackageSet(PackageRecord(id=p.id) for p in found if p.is_installed)

    def execute_passthrough(self, args: list[str]) -> PassthroughResult:
        """Raw passthrough has no catalog API."""
        raise FallbackRequired("execute_passthrough", (args,), reason="no catalog API")

    def _connect(
        self,
        operation: str,
        call_args: tuple[Any, ...],
        call_kwargs: dict[str, Any] | None = None,
    ) -> PackageCatalog:
        if self._connector is None:
            raise FallbackRequired(operation, call_args, call_kwargs, reason="no catalog connector")
        try:
            return self._connector.connect()
        except Exception as e:
            reason = f"connect failed: {e}"
            raise FallbackRequired(operation, call_args, call_kwargs, reason=reason) from e

    def _apply(
        self,
        operation: str,
        call_args: tuple[Any, ...],
        package_id: str,
        action: Any,
        call_kwargs: dict[str, Any] | None = None,
    ) -> ActionOutcome:
        catalog = self._connect(operation, call_args, call_kwargs)
        try:
            package = _find(catalog, package_id)
            if package is None:
                raise FallbackRequired(operation, call_args, call_kwargs, reason="no catalog match")
            result: CatalogResult = action(catalog, package)
        except FallbackRequired:
            raise
        except Exception as e:
            raise FallbackRequired(operation, call_args, call_kwargs, reason=str(e)) from e

        if not result.ok:
            reason = result.error or result.status.value
            raise FallbackRequired(operation, call_args, call_kwargs, reason=reason)

        logger.info("Catalog %s completed for %s", operation, package.id)
        return ActionOutcome(
            package_id=package.id,
            success=True,
            reboot_required=result.reboot_required,
        )


def _find(catalog: PackageCatalog, package_id: str) -> CatalogPackage | None:
    """Resolve an id: exact case-insensitive id first, then name substring."""
    packages = list(catalog.find_packages(package_id))
    needle = package_id.casefold()
    for package in packages:
        if package.id.casefold() == needle:
            return package
    for package in packages:
        if needle in package.name.casefold():
            return package
    return None
