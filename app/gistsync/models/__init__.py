"""Data models for gistsync.

This module exports the core data structures used throughout the application.
"""

from gistsync.models.config import Credential, DesiredStateDocument
from gistsync.models.package import Architecture, PackageRecord, PackageSet, Scope
from gistsync.models.sync import SyncResult

__all__ = [
    "Architecture",
    "Credential",
    "DesiredStateDocument",
    "PackageRecord",
    "PackageSet",
    "Scope",
    "SyncResult",
]
