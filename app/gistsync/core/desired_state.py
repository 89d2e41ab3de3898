"""Desired-state document access.

The desired package list lives in one YAML file of one Gist. The local
pointer to that file (Gist id and file name) is kept encrypted in
``gist.dat``; the GitHub token comes from the AuthenticationBroker.
"""

import logging
from collections.abc import Callable

from pydantic import ValidationError as PydanticValidationError

from gistsync.auth.device_flow import AuthenticationBroker
from gistsync.core.constants import DEFAULT_GIST_DESCRIPTION, DEFAULT_GIST_FILE_NAME
from gistsync.core.document import parse_packages, serialize_packages
from gistsync.core.errors import AmbiguousTargetError, NotConfiguredError, ValidationError
from gistsync.core.paths import get_gist_config_path
from gistsync.core.store import SecureConfigStore
from gistsync.models.config import DesiredStateDocument
from gistsync.models.package import PackageSet
from gistsync.remote.gist import Gist, GistClient

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")


def select_target(gists: list[Gist], file_name: str, description: str) -> Gist | None:
    """Pick the Gist holding the desired-state document.

    A Gist matches when it contains ``file_name`` or its description equals
    ``description``.

    Returns:
        The single matching Gist, or None if nothing matches.

    Raises:
        AmbiguousTargetError: If more than one Gist matches.
    """
    matches = [g for g in gists if file_name in g.files or g.description == description]
    if len(matches) > 1:
        raise AmbiguousTargetError(len(matches))
    return matches[0] if matches else None


def resolve_file_name(gist: Gist, file_name: str) -> str | None:
    """Return ``file_name`` if present, else the first YAML file of the Gist."""
    if file_name in gist.files:
        return file_name
    for name in sorted(gist.files):
        if name.lower().endswith(YAML_SUFFIXES):
            return name
    return None


class DesiredStateStore:
    """Reads and writes the desired package list in a Gist.

    Example:
        >>> desired = DesiredStateStore(broker)
        >>> desired.configure("aa5a315d61ae9438b18d", "GistGet.yaml")
        >>> desired.fetch().ids()
        ['Git.Git', 'Microsoft.PowerToys']
    """

    def __init__(
        self,
        broker: AuthenticationBroker,
        store: SecureConfigStore[DesiredStateDocument] | None = None,
        client_factory: Callable[[str | None], GistClient] = GistClient,
        *,
        file_name: str = DEFAULT_GIST_FILE_NAME,
        description: str = DEFAULT_GIST_DESCRIPTION,
    ) -> None:
        """Initialize the store.

        Args:
            broker: Source of the GitHub credential.
            store: Pointer store. Defaults to the encrypted ``gist.dat``.
            client_factory: Builds an API client for a token.
            file_name: Target file name used for discovery and creation.
            description: Target Gist description used for discovery and creation.
        """
        if store is None:
            store = SecureConfigStore(get_gist_config_path(), DesiredStateDocument)
        self._broker = broker
        self._store = store
        self._client_factory = client_factory
        self._file_name = file_name
        self._description = description

    def is_configured(self) -> bool:
        """Check whether a readable pointer is persisted."""
        return self._store.is_configured()

    def pointer(self) -> DesiredStateDocument | None:
        """Return the persisted pointer, if any."""
        return self._store.load()

    def configure(self, document_id: str, file_name: str | None = None) -> DesiredStateDocument:
        """Point gistsync at a specific Gist file.

        Args:
            document_id: Gist identifier.
            file_name: File inside the Gist. Defaults to the target file name.

        Returns:
            The persisted pointer.

        Raises:
            ValidationError: If the id or file name is empty.
            AuthenticationRequiredError: If no credential is stored.
            RemoteAccessError: If the Gist does not exist or cannot be read.
        """
        try:
            document = DesiredStateDocument(
                document_id=document_id,
                file_name=file_name or self._file_name,
            )
        except PydanticValidationError as e:
            msg = f"Invalid Gist configuration: {e.errors()[0]['msg']}"
            raise ValidationError(msg) from e

        with self._client() as client:
            gist = client.get(document.document_id)
        if document.file_name not in gist.files:
            logger.info(
                "Gist %s has no file %s yet; it will be created on save",
                gist.id,
                document.file_name,
            )

        self._store.save(document)
        logger.info("Configured gist %s (%s)", document.document_id, document.file_name)
        return document

    def fetch(self) -> PackageSet:
        """Read the desired package list from the configured Gist.

        Raises:
            NotConfiguredError: If no pointer is persisted.
            ValidationError: If the document is malformed.
            AuthenticationRequiredError: If no valid credential is available.
            RemoteAccessError: If GitHub cannot be reached.
        """
        document = self._require_pointer()
        with self._client() as client:
            packages = self._read(client, document)
        document.touch()
        self._store.save(document)
        return packages

    def fetch_url(self, url: str) -> PackageSet:
        """Read a desired package list published at ``url``.

        No credential is needed or sent, so any public raw Gist URL works.

        Raises:
            ValidationError: If the URL is not http(s) or the document is malformed.
            RemoteAccessError: If the URL cannot be downloaded.
        """
        if not url.lower().startswith(("https://", "http://")):
            msg = f"Package list URL must be http or https: {url}"
            raise ValidationError(msg)
        with self._client_factory(None) as client:
            content = client.fetch_text(url)
        logger.debug("Fetched %d bytes of package list from %s", len(content), url)
        return parse_packages(content)

    def fetch_or_discover(self) -> PackageSet:
        """Read the configured document, or a discovered one, or nothing.

        Used by commands that edit the list and will save it back.
        """
        if self.is_configured():
            return self.fetch()
        document = self.discover()
        if document is None:
            return PackageSet()
        with self._client() as client:
            return self._read(client, document)

    def save(self, packages: PackageSet) -> DesiredStateDocument:
        """Write the desired package list.

        Edits the configured Gist if there is one; otherwise selects the
        matching Gist by file name or description, creating one if none
        matches. The resulting pointer is persisted.

        Raises:
            AmbiguousTargetError: If several Gists match.
            AuthenticationRequiredError: If no valid credential is available.
            RemoteAccessError: If GitHub cannot be reached.
        """
        content = serialize_packages(packages)
        document = self._store.load()

        with self._client() as client:
            if document is not None:
                client.edit(document.document_id, {document.file_name: content})
            else:
                target = select_target(client.get_all(), self._file_name, self._description)
                file_name = self._file_name
                if target is not None:
                    file_name = resolve_file_name(target, self._file_name) or self._file_name
                    gist = client.edit(target.id, {file_name: content})
                else:
                    gist = client.create(self._description, {file_name: content})
                document = DesiredStateDocument(document_id=gist.id, file_name=file_name)

        document.touch()
        self._store.save(document)
        logger.info("Saved %d packages to gist %s", len(packages), document.document_id)
        return document

    def discover(self) -> DesiredStateDocument | None:
        """Find the desired-state Gist without a persisted pointer.

        Returns:
            An unsaved pointer to the matching Gist, or None if none matches.

        Raises:
            AmbiguousTargetError: If several Gists match.
        """
        with self._client() as client:
            target = select_target(client.get_all(), self._file_name, self._description)
        if target is None:
            return None
        file_name = resolve_file_name(target, self._file_name) or self._file_name
        return DesiredStateDocument(document_id=target.id, file_name=file_name)

    def clear(self) -> None:
        """Forget the configured Gist. Succeeds if none is configured."""
        self._store.delete()

    def _require_pointer(self) -> DesiredStateDocument:
        document = self._store.load()
        if document is None:
            msg = "No Gist configured. Run 'gistsync gist set' first."
            raise NotConfiguredError(msg)
        return document

    def _read(self, client: GistClient, document: DesiredStateDocument) -> PackageSet:
        gist = client.get(document.document_id)
        file_name = resolve_file_name(gist, document.file_name)
        if file_name is None:
            logger.info("Gist %s has no package document yet", gist.id)
            return PackageSet()
        return parse_packages(gist.files[file_name].content)

    def _client(self) -> GistClient:
        return self._client_factory(self._broker.require_credential().secret)
