"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

from collections.abc import Iterator
from pathlib import Path

import pytest
from gistsync.core.store import KeyFile, SecureConfigStore
from gistsync.models.config import Credential, DesiredStateDocument
from gistsync.models.package import PackageRecord, PackageSet
from gistsync.utils.formatting import set_quiet


@pytest.fixture(autouse=True)
def isolated_config_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG_CONFIG_HOME at a temporary directory for every test."""
    config_home = tmp_path / "config"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    monkeypatch.delenv("GISTSYNC_WINGET", raising=False)
    return config_home


@pytest.fixture(autouse=True)
def reset_quiet() -> Iterator[None]:
    """Restore normal output after tests that pass --quiet."""
    yield
    set_quiet(False)


@pytest.fixture
def key_file(tmp_path: Path) -> KeyFile:
    """Store key in a temporary directory."""
    return KeyFile(tmp_path / "store.key")


@pytest.fixture
def gist_store(tmp_path: Path, key_file: KeyFile) -> SecureConfigStore[DesiredStateDocument]:
    """Encrypted pointer store in a temporary directory."""
    return SecureConfigStore(tmp_path / "gist.dat", DesiredStateDocument, key_file)


@pytest.fixture
def credential_store(tmp_path: Path, key_file: KeyFile) -> SecureConfigStore[Credential]:
    """Encrypted credential store in a temporary directory."""
    return SecureConfigStore(tmp_path / "credential.dat", Credential, key_file)


@pytest.fixture
def credential() -> Credential:
    """A stored GitHub credential."""
    return Credential(principal="octocat", secret="gho_secrettoken123")


@pytest.fixture
def sample_yaml() -> str:
    """Desired-state document with install, pinned and uninstall entries."""
    return """Microsoft.PowerToys: {}
Git.Git:
  version: 2.45.1
Mozilla.Firefox:
  uninstall: true
"""


@pytest.fixture
def sample_packages() -> PackageSet:
    """PackageSet matching ``sample_yaml``."""
    return PackageSet(
        [
            PackageRecord(id="Microsoft.PowerToys"),
            PackageRecord(id="Git.Git", version="2.45.1"),
            PackageRecord(id="Mozilla.Firefox", uninstall=True),
        ]
    )
