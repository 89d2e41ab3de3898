"""Desired-state document codec.

The remote document is a YAML mapping from package id to an object of
optional fields::

    Microsoft.PowerToys: {}
    Git.Git:
      version: 2.45.1
    Mozilla.Firefox:
      uninstall: true

Absent or null fields are omitted on write and unknown fields are ignored
on read.
"""

import logging
from typing import Any

import yaml

from gistsync.core.errors import ValidationError
from gistsync.models.package import PackageRecord, PackageSet

logger = logging.getLogger(__name__)

# Optional fields in document order
RECORD_FIELDS = ("version", "uninstall", "architecture", "scope", "source", "custom")


def parse_packages(content: str | None) -> PackageSet:
    """Parse a desired-state document into a PackageSet.

    Args:
        content: YAML text. Empty or whitespace-only content yields an empty set.

    Returns:
        PackageSet with one record per top-level key.

    Raises:
        ValidationError: If the YAML is malformed or an entry is invalid.
    """
    if content is None or not content.strip():
        return PackageSet()

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        msg = f"Invalid YAML in package document: {e}"
        raise ValidationError(msg) from e

    if data is None:
        return PackageSet()
    if not isinstance(data, dict):
        msg = f"Package document must be a mapping of package ids, got {type(data).__name__}"
        raise ValidationError(msg)

    packages = PackageSet()
    for raw_id, raw_fields in data.items():
        packages.add(_record_from_entry(str(raw_id), raw_fields))
    return packages


def serialize_packages(packages: PackageSet) -> str:
    """Serialize a PackageSet into the desired-state document format.

    Records are written sorted by id so repeated saves produce stable diffs
    in the Gist history.

    Args:
        packages: Packages to serialize.

    Returns:
        YAML text. An empty set serializes to ``{}``.
    """
    data = {record.id: record_to_dict(record) for record in packages.sorted()}
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False)


def record_to_dict(record: PackageRecord) -> dict[str, Any]:
    """Convert a PackageRecord to its document entry.

    Args:
        record: The record to convert.

    Returns:
        Dictionary with non-default fields only.
    """
    result: dict[str, Any] = {}
    if record.version:
        result["version"] = record.version
    if record.uninstall:
        result["uninstall"] = True
    if record.architecture is not None:
        result["architecture"] = record.architecture.value
    if record.scope is not None:
        result["scope"] = record.scope.value
    if record.source:
        result["source"] = record.source
    if record.custom:
        result["custom"] = record.custom
    return result


def _record_from_entry(package_id: str, raw_fields: object) -> PackageRecord:
    if raw_fields is None:
        return PackageRecord(id=package_id)
    if not isinstance(raw_fields, dict):
        msg = f"Entry for {package_id} must be a mapping, got {type(raw_fields).__name__}"
        raise ValidationError(msg)

    unknown = set(raw_fields) - set(RECORD_FIELDS)
    if unknown:
        logger.debug("Ignoring unknown fields for %s: %s", package_id, sorted(map(str, unknown)))

    return PackageRecord(
        id=package_id,
        version=_optional_str(raw_fields.get("version")),
        uninstall=_as_bool(raw_fields.get("uninstall")),
        architecture=_optional_str(raw_fields.get("architecture")),  # type: ignore[arg-type]
        scope=_optional_str(raw_fields.get("scope")),  # type: ignore[arg-type]
        source=_optional_str(raw_fields.get("source")),
        custom=_optional_str(raw_fields.get("custom")),
    )


def _optional_str(value: object) -> str | None:
    # YAML turns bare versions like 1.2 into floats
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)
