"""Package models for desired and installed package state.

This module defines the PackageRecord entry of the desired-state document
and the PackageSet collection used on both sides of a reconciliation.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TypeVar

from gistsync.core.errors import ValidationError


class Architecture(str, Enum):
    """Installer architectures accepted by winget."""

    X86 = "x86"
    X64 = "x64"
    ARM = "arm"
    ARM64 = "arm64"


class Scope(str, Enum):
    """Installation scope accepted by winget."""

    USER = "user"
    MACHINE = "machine"


E = TypeVar("E", bound=Enum)


def _coerce_enum(enum_type: type[E], value: E | str | None, package_id: str) -> E | None:
    if value is None or isinstance(value, enum_type):
        return value
    try:
        return enum_type(str(value).lower())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_type)
        kind = enum_type.__name__.lower()
        msg = f"Invalid {kind} '{value}' for {package_id} (expected one of: {allowed})"
        raise ValidationError(msg) from None


def _clean_text(value: object) -> str | None:
    # Blank and padded values are stored the way the document reads them back
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True, slots=True, eq=False)
class PackageRecord:
    """A single package entry, desired or installed.

    Identity is the package id compared case-insensitively; two records
    with the same id are the same package whatever their other fields.

    Attributes:
        id: winget package identifier (e.g., 'Microsoft.PowerToys').
        version: Version to install and pin to, if any.
        uninstall: True if the package should be absent from the host.
        architecture: Installer architecture restriction.
        scope: Installation scope restriction.
        source: winget source name (e.g., 'winget', 'msstore').
        custom: Extra installer arguments passed through with --custom.
    """

    id: str
    version: str | None = field(default=None)
    uninstall: bool = field(default=False)
    architecture: Architecture | None = field(default=None)
    scope: Scope | None = field(default=None)
    source: str | None = field(default=None)
    custom: str | None = field(default=None)

    def __post_init__(self) -> None:
        """Validate and normalize record data after initialization."""
        if not self.id or not self.id.strip():
            msg = "Package id cannot be empty"
            raise ValidationError(msg)
        object.__setattr__(self, "id", self.id.strip())
        object.__setattr__(
            self, "architecture", _coerce_enum(Architecture, self.architecture, self.id)
        )
        object.__setattr__(self, "scope", _coerce_enum(Scope, self.scope, self.id))
        for name in ("version", "source", "custom"):
            object.__setattr__(self, name, _clean_text(getattr(self, name)))
        object.__setattr__(self, "uninstall", bool(self.uninstall))

    @property
    def key(self) -> str:
        """Case-folded identity used for lookups."""
        return self.id.casefold()

    @property
    def is_pinned(self) -> bool:
        """Check if the record requests a specific version."""
        return bool(self.version)

    def with_changes(self, **changes: object) -> "PackageRecord":
        """Return a copy of this record with the given fields replaced."""
        return replace(self, **changes)  # type: ignore[arg-type]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackageRecord):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def same_fields(self, other: "PackageRecord") -> bool:
        """Compare every optional field, not just identity."""
        return self == other and (
            self.version,
            self.uninstall,
            self.architecture,
            self.scope,
            self.source,
            self.custom,
        ) == (
            other.version,
            other.uninstall,
            other.architecture,
            other.scope,
            other.source,
            other.custom,
        )


class PackageSet:
    """Collection of PackageRecord with unique, case-insensitive ids.

    Adding a record whose id is already present replaces the existing
    record. Iteration follows insertion order; use :meth:`sorted` for the
    deterministic projection used in display and diffing.

    Example:
        >>> packages = PackageSet([PackageRecord("Git.Git")])
        >>> "git.git" in packages
        True
    """

    def __init__(self, records: Iterable[PackageRecord] = ()) -> None:
        self._records: dict[str, PackageRecord] = {}
        for record in records:
            self.add(record)

    def add(self, record: PackageRecord) -> None:
        """Insert a record, replacing any record with the same id."""
        self._records[record.key] = record

    def remove(self, package_id: str) -> PackageRecord | None:
        """Remove a record by id.

        Returns:
            The removed record, or None if it was not present.
        """
        return self._records.pop(package_id.casefold(), None)

    def get(self, package_id: str) -> PackageRecord | None:
        """Look up a record by case-insensitive id."""
        return self._records.get(package_id.casefold())

    def ids(self) -> list[str]:
        """Return the ids of all records in sorted order."""
        return [record.id for record in self.sorted()]

    def sorted(self) -> list[PackageRecord]:
        """Return records sorted by id, ignoring case."""
        return sorted(self._records.values(), key=lambda r: (r.key, r.id))

    def __contains__(self, item: object) -> bool:
        if isinstance(item, PackageRecord):
            return item.key in self._records
        if isinstance(item, str):
            return item.casefold() in self._records
        return False

    def __iter__(self) -> Iterator[PackageRecord]:
        return iter(list(self._records.values()))

    def __len__(self) -> int:
        return len(self._records)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackageSet):
            return NotImplemented
        if self._records.keys() != other._records.keys():
            return False
        return all(record.same_fields(other._records[key]) for key, record in self._records.items())

    def __repr__(self) -> str:
        return f"PackageSet({self.ids()!r})"
