"""Encrypted, concurrency-safe persistence of small configuration documents.

A SecureConfigStore holds exactly one Pydantic document in one file. The
document is serialized to TOML, encrypted with a per-user Fernet key and
written atomically. Every operation goes through a lock owned by the store
instance, and writes land with a single rename, so a load always observes
either the previous or the current document, never a mix.
"""

import logging
import os
import threading
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any, Generic, TypeVar

import tomli_w
from cryptography.fernet import Fernet, InvalidToken
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from gistsync.core.errors import StoreUnreadableError, ValidationError
from gistsync.core.paths import get_store_key_path

logger = logging.getLogger(__name__)

DocumentT = TypeVar("DocumentT", bound=BaseModel)


def _write_atomic(path: Path, data: bytes, mode: int = 0o600, exclusive: bool = False) -> bool:
    """Write bytes to ``path`` via a temporary file.

    The temporary file lands with ``os.replace``, or with ``os.link`` when
    ``exclusive`` is set so an existing file is never overwritten.

    Returns:
        False if ``exclusive`` is set and ``path`` already existed.

    Raises:
        OSError: If the file cannot be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(mode="wb", dir=path.parent, delete=False, suffix=".tmp") as f:
            tmp_path = Path(f.name)
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_path, mode)
        if not exclusive:
            os.replace(tmp_path, path)
            return True
        try:
            os.link(tmp_path, path)
        except FileExistsError:
            return False
        finally:
            tmp_path.unlink()
        return True
    except OSError:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise


class KeyFile:
    """Per-user Fernet key kept in a file only the owner can read.

    The key is generated on first use. Callers in one process share a
    single instance per path (see :func:`shared_key_file`), whose lock
    serializes first use; across processes the key is published without
    overwriting, so every caller ends up with the first key written.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path if path is not None else get_store_key_path()
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        """Location of the key file."""
        return self._path

    def cipher(self) -> Fernet:
        """Return a Fernet cipher, creating the key if needed.

        Raises:
            StoreUnreadableError: If an existing key file is not a valid key.
            OSError: If the key file cannot be read or created.
        """
        with self._lock:
            if not self._path.exists():
                logger.debug("Generating new store key at %s", self._path)
                if not _write_atomic(self._path, Fernet.generate_key(), exclusive=True):
                    logger.debug("Store key at %s was created concurrently", self._path)
            key = self._path.read_bytes().strip()
        try:
            return Fernet(key)
        except ValueError as e:
            msg = f"Store key {self._path} is corrupted: {e}"
            raise StoreUnreadableError(msg) from e


_key_files: dict[Path, KeyFile] = {}
_key_files_lock = threading.Lock()


def shared_key_file(path: Path | None = None) -> KeyFile:
    """Return the process-wide KeyFile for ``path`` (default: the user key)."""
    resolved = (path if path is not None else get_store_key_path()).resolve()
    with _key_files_lock:
        key_file = _key_files.get(resolved)
        if key_file is None:
            key_file = _key_files[resolved] = KeyFile(resolved)
        return key_file


class SecureConfigStore(Generic[DocumentT]):
    """Encrypted single-document store.

    Example:
        >>> store = SecureConfigStore(path, DesiredStateDocument)
        >>> store.save(DesiredStateDocument(document_id="abc", file_name="GistGet.yaml"))
        >>> store.load().document_id
        'abc'
    """

    def __init__(
        self,
        path: Path,
        model: type[DocumentT],
        key_file: KeyFile | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            path: File holding the encrypted document.
            model: Pydantic model type of the document.
            key_file: Key source. Defaults to the per-user key in the config dir.
        """
        self._path = path
        self._model = model
        self._key_file = key_file if key_file is not None else shared_key_file()
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        """Location of the encrypted document."""
        return self._path

    def save(self, document: DocumentT) -> None:
        """Encrypt and atomically persist ``document``.

        Creates the containing directory if it does not exist.

        Raises:
            ValidationError: If the document fails model validation.
            OSError: If the file cannot be written.
        """
        try:
            validated = self._model.model_validate(document.model_dump())
        except PydanticValidationError as e:
            msg = f"Invalid {self._model.__name__}: {e}"
            raise ValidationError(msg) from e

        payload = tomli_w.dumps(_to_toml(validated.model_dump(mode="json"))).encode("utf-8")
        token = self._key_file.cipher().encrypt(payload)

        with self._lock:
            _write_atomic(self._path, token)
        logger.debug("Saved %s to %s", self._model.__name__, self._path)

    def load(self) -> DocumentT | None:
        """Load and decrypt the stored document.

        Returns:
            The document, or None if the file does not exist.

        Raises:
            StoreUnreadableError: If the file cannot be read, decrypted or parsed.
        """
        with self._lock:
            if not self._path.exists():
                return None
            try:
                token = self._path.read_bytes()
            except OSError as e:
                msg = f"Failed to read {self._path}: {e}"
                raise StoreUnreadableError(msg) from e

        try:
            payload = self._key_file.cipher().decrypt(token)
        except InvalidToken as e:
            msg = (
                f"Failed to decrypt {self._path}. The file may be corrupted "
                "or was created by a different user."
            )
            raise StoreUnreadableError(msg) from e

        try:
            data = tomllib.loads(payload.decode("utf-8"))
            return self._model.model_validate(data)
        except (UnicodeDecodeError, tomllib.TOMLDecodeError, PydanticValidationError) as e:
            msg = f"Invalid {self._model.__name__} data in {self._path}: {e}"
            raise StoreUnreadableError(msg) from e

    def is_configured(self) -> bool:
        """Check whether a readable document is stored.

        This is the one place where an unreadable store is reported as
        "not configured" instead of raising.
        """
        try:
            return self.load() is not None
        except StoreUnreadableError as e:
            logger.warning("Treating unreadable store as not configured: %s", e)
            return False

    def delete(self) -> None:
        """Remove the stored document. Deleting an absent file succeeds.

        Raises:
            OSError: If an existing file cannot be removed.
        """
        with self._lock:
            self._path.unlink(missing_ok=True)
        logger.debug("Deleted %s", self._path)


def _to_toml(data: dict[str, Any]) -> dict[str, Any]:
    # TOML has no null; drop None values
    return {key: value for key, value in data.items() if value is not None}
