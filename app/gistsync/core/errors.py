"""Exception taxonomy shared across gistsync.

Every error raised deliberately by the core derives from GistSyncError so
the CLI can turn it into a single explanatory message and exit code 1.
"""


class GistSyncError(Exception):
    """Base exception for gistsync errors."""


class ValidationError(GistSyncError):
    """Raised for a malformed package id, file name or document."""


class NotConfiguredError(GistSyncError):
    """Raised when no desired-state document pointer has been persisted yet."""


class AmbiguousTargetError(GistSyncError):
    """Raised when more than one remote document matches the target."""

    def __init__(self, count: int) -> None:
        self.count = count
        super().__init__(
            f"Multiple Gists match the criteria ({count} found). "
            "Please specify the target Gist explicitly with 'gistsync gist set --id'."
        )


class AuthenticationRequiredError(GistSyncError):
    """Raised when an operation needs a valid GitHub credential."""


class RemoteAccessError(GistSyncError):
    """Raised on network or API failure talking to GitHub."""


class StoreUnreadableError(GistSyncError):
    """Raised when a local encrypted store cannot be decrypted or parsed."""


class PackageActionError(GistSyncError):
    """Raised when the package manager reports a failed action."""

    def __init__(self, package_id: str, reason: str) -> None:
        self.package_id = package_id
        self.reason = reason
        super().__init__(f"{package_id}: {reason}")
