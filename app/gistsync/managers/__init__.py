"""Package managers for applying package actions.

This module provides the PackageManager interface, the structured and
command-line winget adapters, and the fallback composition of the two.
"""

from gistsync.managers.base import (
    PASSTHROUGH_LAUNCH_FAILED,
    ActionOutcome,
    FallbackRequired,
    PackageManager,
    PassthroughResult,
)
from gistsync.managers.cli import CommandLineAdapter
from gistsync.managers.fallback import FallbackPackageManager
from gistsync.managers.powershell import PowerShellCatalogConnector
from gistsync.managers.structured import CatalogConnector, StructuredAdapter


def get_package_manager(connector: CatalogConnector | None = None) -> PackageManager:
    """Build the default package manager: structured first, winget CLI as fallback.

    Args:
        connector: Catalog binding. Defaults to the Microsoft.WinGet.Client
            PowerShell module, which falls back when it is not installed.
    """
    if connector is None:
        connector = PowerShellCatalogConnector()
    return FallbackPackageManager(StructuredAdapter(connector), CommandLineAdapter())


__all__ = [
    "PASSTHROUGH_LAUNCH_FAILED",
    "ActionOutcome",
    "CommandLineAdapter",
    "FallbackPackageManager",
    "FallbackRequired",
    "PackageManager",
    "PassthroughResult",
    "PowerShellCatalogConnector",
    "StructuredAdapter",
    "get_package_manager",
]
