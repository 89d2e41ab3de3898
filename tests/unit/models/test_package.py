"""Unit tests for package models.

Tests for PackageRecord identity and validation, and PackageSet.
"""

import pytest
from gistsync.core.errors import ValidationError
from gistsync.models.package import Architecture, PackageRecord, PackageSet, Scope


class TestPackageRecord:
    """Tests for PackageRecord dataclass."""

    def test_minimal_record(self) -> None:
        """Record can be created with only an id."""
        record = PackageRecord(id="Git.Git")
        assert record.id == "Git.Git"
        assert record.version is None
        assert record.uninstall is False
        assert record.architecture is None
        assert record.scope is None
        assert record.is_pinned is False

    def test_strips_id(self) -> None:
        """Surrounding whitespace is removed from the id."""
        assert PackageRecord(id="  Git.Git ").id == "Git.Git"

    def test_normalizes_optional_text(self) -> None:
        """Optional text fields are stripped and blank values become None."""
        record = PackageRecord(id="Git.Git", version=" 1.0", source="", custom="  /S")
        assert record.version == "1.0"
        assert record.source is None
        assert record.custom == "/S"
        assert record.is_pinned is True

    @pytest.mark.parametrize("package_id", ["", "   "])
    def test_empty_id_rejected(self, package_id: str) -> None:
        """Empty or blank ids raise ValidationError."""
        with pytest.raises(ValidationError, match="cannot be empty"):
            PackageRecord(id=package_id)

    def test_equality_ignores_case(self) -> None:
        """Records with ids differing only in case are equal."""
        assert PackageRecord(id="Git.Git") == PackageRecord(id="git.git")
        assert hash(PackageRecord(id="Git.Git")) == hash(PackageRecord(id="GIT.GIT"))

    def test_equality_ignores_other_fields(self) -> None:
        """Identity is the id alone."""
        assert PackageRecord(id="Git.Git", version="1.0") == PackageRecord(id="Git.Git")

    def test_same_fields_compares_everything(self) -> None:
        """same_fields detects differences beyond the id."""
        a = PackageRecord(id="Git.Git", version="1.0")
        assert a.same_fields(PackageRecord(id="git.git", version="1.0"))
        assert not a.same_fields(PackageRecord(id="Git.Git", version="2.0"))

    def test_enum_coercion(self) -> None:
        """String architecture and scope are coerced case-insensitively."""
        record = PackageRecord(
            id="Git.Git",
            architecture="X64",  # type: ignore[arg-type]
            scope="machine",  # type: ignore[arg-type]
        )
        assert record.architecture is Architecture.X64
        assert record.scope is Scope.MACHINE

    def test_invalid_scope_rejected(self) -> None:
        """Unknown scope values raise ValidationError naming the package."""
        with pytest.raises(ValidationError, match="Invalid scope 'global' for Git.Git"):
            PackageRecord(id="Git.Git", scope="global")  # type: ignore[arg-type]

    def test_is_frozen(self) -> None:
        """Records are immutable."""
        record = PackageRecord(id="Git.Git")
        with pytest.raises(AttributeError):
            record.version = "1.0"  # type: ignore[misc]

    def test_with_changes(self) -> None:
        """with_changes returns a modified copy."""
        record = PackageRecord(id="Git.Git", version="1.0", source="winget")
        changed = record.with_changes(version=None, uninstall=True)
        assert changed.version is None
        assert changed.uninstall is True
        assert changed.source == "winget"
        assert record.version == "1.0"


class TestPackageSet:
    """Tests for PackageSet collection."""

    def test_add_replaces_same_id(self) -> None:
        """Adding a record with an existing id replaces it."""
        packages = PackageSet([PackageRecord(id="Git.Git")])
        packages.add(PackageRecord(id="GIT.git", version="2.0"))

        assert len(packages) == 1
        record = packages.get("git.git")
        assert record is not None
        assert record.version == "2.0"

    def test_contains_by_id_and_record(self) -> None:
        """Membership works for ids and records regardless of case."""
        packages = PackageSet([PackageRecord(id="Git.Git")])
        assert "git.git" in packages
        assert PackageRecord(id="GIT.GIT") in packages
        assert "Other.Package" not in packages
        assert 42 not in packages

    def test_remove(self) -> None:
        """remove returns the removed record or None."""
        packages = PackageSet([PackageRecord(id="Git.Git")])
        removed = packages.remove("GIT.GIT")
        assert removed is not None
        assert removed.id == "Git.Git"
        assert packages.remove("Git.Git") is None
        assert len(packages) == 0

    def test_sorted_is_case_insensitive(self) -> None:
        """sorted orders records by id ignoring case."""
        packages = PackageSet(
            [PackageRecord(id="b.pkg"), PackageRecord(id="A.pkg"), PackageRecord(id="c.pkg")]
        )
        assert packages.ids() == ["A.pkg", "b.pkg", "c.pkg"]

    def test_iteration_follows_insertion_order(self) -> None:
        """Iteration keeps insertion order."""
        packages = PackageSet([PackageRecord(id="b"), PackageRecord(id="a")])
        assert [record.id for record in packages] == ["b", "a"]

    def test_equality_compares_fields(self) -> None:
        """Sets are equal only if every record has the same fields."""
        a = PackageSet([PackageRecord(id="Git.Git", version="1.0")])
        b = PackageSet([PackageRecord(id="git.git", version="1.0")])
        c = PackageSet([PackageRecord(id="Git.Git")])
        assert a == b
        assert a != c
        assert a != PackageSet()

    def test_empty_set_is_falsy(self) -> None:
        """An empty set has length zero."""
        assert not PackageSet()
