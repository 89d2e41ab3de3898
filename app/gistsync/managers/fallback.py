"""Primary/fallback composition of package managers."""

import logging
from typing import Any

from gistsync.managers.base import (
    ActionOutcome,
    FallbackRequired,
    PackageManager,
    PassthroughResult,
)
from gistsync.models.package import PackageRecord, PackageSet

logger = logging.getLogger(__name__)


class FallbackPackageManager(PackageManager):
    """Try ``primary`` first and delegate to ``fallback`` on FallbackRequired.

    The fallback receives the arguments carried by the FallbackRequired
    signal, which are the caller's original arguments. There is no retry
    beyond this single hand-off.
    """

    def __init__(self, primary: PackageManager, fallback: PackageManager) -> None:
        self._primary = primary
        self._fallback = fallback

    @property
    def primary(self) -> PackageManager:
        return self._primary

    @property
    def fallback(self) -> PackageManager:
        return self._fallback

    def install(self, record: PackageRecord) -> ActionOutcome:
        try:
            return self._primary.install(record)
        except FallbackRequired as e:
            return self._delegate(e)

    def uninstall(self, package_id: str) -> ActionOutcome:
        try:
            return self._primary.uninstall(package_id)
        except FallbackRequired as e:
            return self._delegate(e)

    def upgrade(self, package_id: str, version: str | None = None) -> ActionOutcome:
        try:
            return self._primary.upgrade(package_id, version)
        except FallbackRequired as e:
            return self._delegate(e)

    def pin(self, package_id: str, version: str) -> ActionOutcome:
        try:
            return self._primary.pin(package_id, version)
        except FallbackRequired as e:
            return self._delegate(e)

    def unpin(self, package_id: str) -> ActionOutcome:
        try:
            return self._primary.unpin(package_id)
        except FallbackRequired as e:
            return self._delegate(e)

    def list_installed(self) -> PackageSet:
        try:
            return self._primary.list_installed()
        except FallbackRequired as e:
            return self._delegate(e)

    def execute_passthrough(self, args: list[str]) -> PassthroughResult:
        try:
            return self._primary.execute_passthrough(args)
        except FallbackRequired as e:
            return self._delegate(e)

    def _delegate(self, signal: FallbackRequired) -> Any:
        logger.debug("Falling back for %s: %s", signal.operation, signal.reason)
        handler = getattr(self._fallback, signal.operation)
        return handler(*signal.call_args, **signal.call_kwargs)
