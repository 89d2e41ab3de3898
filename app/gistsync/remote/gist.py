"""GitHub Gist REST client.

A thin synchronous httpx wrapper exposing the handful of Gist and user
endpoints gistsync needs. HTTP 401 maps to AuthenticationRequiredError;
every other HTTP or transport failure maps to RemoteAccessError.
"""

import logging
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any

import httpx

from gistsync.core.constants import GITHUB_API_URL, USER_AGENT
from gistsync.core.errors import AuthenticationRequiredError, RemoteAccessError

logger = logging.getLogger(__name__)

API_VERSION = "2022-11-28"


@dataclass(frozen=True, slots=True)
class GistFile:
    """A file inside a Gist.

    Attributes:
        filename: File name.
        content: File content, or None when only listed (not fetched).
        raw_url: URL of the raw content.
        truncated: True if the API truncated ``content``.
    """

    filename: str
    content: str | None = None
    raw_url: str | None = None
    truncated: bool = False


@dataclass(frozen=True, slots=True)
class Gist:
    """A Gist and its files.

    Attributes:
        id: Gist identifier.
        description: Gist description (may be empty).
        files: Files keyed by file name.
        public: Whether the Gist is public.
    """

    id: str
    description: str = ""
    files: dict[str, GistFile] = field(default_factory=dict)
    public: bool = False

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Gist":
        """Build a Gist from a REST API response object."""
        files = {
            name: GistFile(
                filename=entry.get("filename") or name,
                content=entry.get("content"),
                raw_url=entry.get("raw_url"),
                truncated=bool(entry.get("truncated", False)),
            )
            for name, entry in (data.get("files") or {}).items()
            if entry is not None
        }
        return cls(
            id=str(data["id"]),
            description=data.get("description") or "",
            files=files,
            public=bool(data.get("public", False)),
        )


class GistClient:
    """Synchronous GitHub Gist API client.

    Example:
        >>> with GistClient(token) as client:
        ...     gist = client.get("aa5a315d61ae9438b18d")
        ...     gist.files["GistGet.yaml"].content
    """

    def __init__(
        self,
        token: str | None,
        *,
        base_url: str = GITHUB_API_URL,
        transport: httpx.BaseTransport | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the client.

        Args:
            token: OAuth token. None allows only unauthenticated endpoints.
            base_url: API root.
            transport: httpx transport override (tests use MockTransport).
            timeout: Request timeout in seconds.
        """
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": USER_AGENT,
            "X-GitHub-Api-Version": API_VERSION,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(
            base_url=base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout, connect=10.0),
            transport=transport,
        )

    def __enter__(self) -> "GistClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        self._client.close()

    def get_all(self) -> list[Gist]:
        """List every Gist owned by the authenticated user.

        Follows pagination. File contents are not included.
        """
        gists: list[Gist] = []
        url: str | None = "/gists"
        params: dict[str, Any] | None = {"per_page": 100}
        while url:
            response = self._request("GET", url, params=params)
            items = _json(response)
            if not isinstance(items, list):
                msg = "GitHub returned an unexpected Gist listing"
                raise RemoteAccessError(msg)
            gists.extend(_gist(item) for item in items)
            url = response.links.get("next", {}).get("url")
            params = None
        logger.debug("Listed %d gists", len(gists))
        return gists

    def get(self, gist_id: str) -> Gist:
        """Fetch a Gist with full file contents.

        Truncated files are completed from their raw URL.
        """
        gist = _gist(_json(self._request("GET", f"/gists/{gist_id}")))
        if not any(f.truncated for f in gist.files.values()):
            return gist

        files = dict(gist.files)
        for name, gist_file in gist.files.items():
            if gist_file.truncated and gist_file.raw_url:
                content = self._request("GET", gist_file.raw_url).text
                files[name] = GistFile(name, content, gist_file.raw_url, truncated=False)
        return Gist(id=gist.id, description=gist.description, files=files, public=gist.public)

    def create(self, description: str, files: dict[str, str], public: bool = False) -> Gist:
        """Create a Gist.

        Args:
            description: Gist description.
            files: File contents keyed by file name.
            public: Create a public Gist instead of a secret one.
        """
        payload = {
            "description": description,
            "public": public,
            "files": {name: {"content": content} for name, content in files.items()},
        }
        gist = _gist(_json(self._request("POST", "/gists", json=payload)))
        logger.info("Created gist %s", gist.id)
        return gist

    def edit(self, gist_id: str, files: dict[str, str], description: str | None = None) -> Gist:
        """Replace file contents of an existing Gist."""
        payload: dict[str, Any] = {
            "files": {name: {"content": content} for name, content in files.items()},
        }
        if description is not None:
            payload["description"] = description
        gist = _gist(_json(self._request("PATCH", f"/gists/{gist_id}", json=payload)))
        logger.info("Updated gist %s", gist.id)
        return gist

    def current_user(self) -> str:
        """Return the login name of the authenticated user.

        Raises:
            RemoteAccessError: If the reply carries no login name.
        """
        data = _json(self._request("GET", "/user"))
        login = data.get("login") if isinstance(data, dict) else None
        if not login:
            msg = "GitHub user reply has no login name"
            raise RemoteAccessError(msg)
        return str(login)

    def token_scopes(self) -> list[str]:
        """Return the OAuth scopes granted to the token."""
        header = self._request("GET", "/user").headers.get("X-OAuth-Scopes", "")
        return [scope.strip() for scope in header.split(",") if scope.strip()]

    def fetch_text(self, url: str) -> str:
        """Download a document by absolute URL, such as a raw Gist file."""
        return self._request("GET", url).text

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            msg = f"GitHub request failed: {e}"
            raise RemoteAccessError(msg) from e

        if response.status_code == httpx.codes.UNAUTHORIZED:
            msg = "GitHub rejected the stored credential. Run 'gistsync auth login'."
            raise AuthenticationRequiredError(msg)
        if response.status_code == httpx.codes.NOT_FOUND:
            msg = f"GitHub resource not found: {url}"
            raise RemoteAccessError(msg)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            msg = f"GitHub API error {response.status_code}: {_error_message(response)}"
            raise RemoteAccessError(msg) from e
        return response


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.reason_phrase
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.reason_phrase


def _json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as e:
        msg = f"GitHub returned a non-JSON reply for {response.request.url}"
        raise RemoteAccessError(msg) from e


def _gist(data: object) -> Gist:
    if not isinstance(data, dict):
        msg = "GitHub returned an unexpected Gist object"
        raise RemoteAccessError(msg)
    try:
        return Gist.from_api(data)
    except (KeyError, AttributeError, TypeError) as e:
        msg = f"GitHub returned a malformed Gist: {e}"
        raise RemoteAccessError(msg) from e
