"""winget command-line argument construction.

Builds argument vectors (without the executable) for each package action.
Agreement and interactivity flags are appended by the command-line adapter,
not here, so these vectors match what a user would type.
"""

from gistsync.models.package import PackageRecord


def build_install_args(record: PackageRecord) -> list[str]:
    """Build ``winget install`` arguments for a desired-state record.

    Args:
        record: Package record; its optional fields become flags.

    Returns:
        Argument list starting with ``install``.
    """
    args = ["install", "--id", record.id, "--exact"]
    if record.version:
        args.extend(["--version", record.version])
    args.extend(_record_options(record))
    return args


def build_uninstall_args(package_id: str) -> list[str]:
    """Build ``winget uninstall`` arguments for an installed package id."""
    return ["uninstall", "--id", package_id, "--exact"]


def build_upgrade_args(package_id: str, version: str | None = None) -> list[str]:
    """Build ``winget upgrade`` arguments.

    Args:
        package_id: Package to upgrade.
        version: Target version, or None for the latest available.

    Returns:
        Argument list starting with ``upgrade``.
    """
    args = ["upgrade", "--id", package_id, "--exact"]
    if version:
        args.extend(["--version", version])
    return args


def build_pin_add_args(package_id: str, version: str, force: bool = False) -> list[str]:
    """Build ``winget pin add`` arguments.

    Args:
        package_id: Package to pin.
        version: Version to pin to.
        force: Replace an existing pin instead of failing.

    Returns:
        Argument list starting with ``pin add``.
    """
    args = ["pin", "add", "--id", package_id, "--version", version]
    if force:
        args.append("--force")
    return args


def build_pin_remove_args(package_id: str) -> list[str]:
    """Build ``winget pin remove`` arguments."""
    return ["pin", "remove", "--id", package_id]


def build_export_args(output_path: str) -> list[str]:
    """Build ``winget export`` arguments writing JSON to ``output_path``."""
    return ["export", "--output", output_path]


def _record_options(record: PackageRecord) -> list[str]:
    args: list[str] = []
    if record.scope is not None:
        args.extend(["--scope", record.scope.value])
    if record.architecture is not None:
        args.extend(["--architecture", record.architecture.value])
    if record.source:
        args.extend(["--source", record.source])
    if record.custom:
        args.extend(["--custom", record.custom])
    return args
