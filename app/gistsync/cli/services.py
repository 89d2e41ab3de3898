"""Service construction shared by CLI commands.

Commands obtain their collaborators through these functions so tests can
patch a single seam per command module.
"""

from gistsync.auth.device_flow import AuthenticationBroker
from gistsync.core.actions import PackageActions
from gistsync.core.desired_state import DesiredStateStore
from gistsync.core.reconcile import ReconciliationEngine
from gistsync.managers import get_package_manager
from gistsync.managers.base import PackageManager


def get_broker() -> AuthenticationBroker:
    """Build the broker over the default encrypted credential store."""
    return AuthenticationBroker()


def get_desired_store(broker: AuthenticationBroker | None = None) -> DesiredStateStore:
    """Build the desired-state store over the default pointer file."""
    return DesiredStateStore(broker or get_broker())


def get_manager() -> PackageManager:
    """Build the default package manager (structured with winget CLI fallback)."""
    return get_package_manager()


def get_engine(desired_store: DesiredStateStore | None = None) -> ReconciliationEngine:
    """Build a reconciliation engine wired to the default collaborators."""
    return ReconciliationEngine(get_manager(), desired_store or get_desired_store())


def get_actions() -> PackageActions:
    """Build single-package actions wired to the default collaborators."""
    return PackageActions(get_manager(), get_desired_store())
