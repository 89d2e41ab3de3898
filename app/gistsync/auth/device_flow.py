"""GitHub OAuth device-flow login.

A login runs through a fixed state machine::

    IDLE -> CODE_REQUESTED -> AWAITING_USER_ACTION -> POLLING
         -> AUTHENTICATED | EXPIRED | DENIED | FAILED

Each poll response is classified into a closed set of outcomes and matched
exhaustively. Terminal states are reported as a LoginOutcome; they are
never raised.
"""

import logging
import time
import webbrowser
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, assert_never

import httpx

from gistsync.core.constants import (
    ACCESS_TOKEN_URL,
    DEVICE_CODE_URL,
    DEVICE_GRANT_TYPE,
    OAUTH_CLIENT_ID,
    OAUTH_SCOPES,
    SLOW_DOWN_INCREMENT,
    USER_AGENT,
)
from gistsync.core.errors import AuthenticationRequiredError, GistSyncError, RemoteAccessError
from gistsync.core.paths import get_credential_path
from gistsync.core.store import SecureConfigStore
from gistsync.models.config import Credential
from gistsync.remote.gist import GistClient
from gistsync.utils.formatting import console

logger = logging.getLogger(__name__)


class LoginState(Enum):
    """States of a device-flow login."""

    IDLE = "idle"
    CODE_REQUESTED = "code_requested"
    AWAITING_USER_ACTION = "awaiting_user_action"
    POLLING = "polling"
    AUTHENTICATED = "authenticated"
    EXPIRED = "expired"
    DENIED = "denied"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Check if no further transition is possible."""
        return not _TRANSITIONS[self]


_TRANSITIONS: dict[LoginState, frozenset[LoginState]] = {
    LoginState.IDLE: frozenset({LoginState.CODE_REQUESTED}),
    LoginState.CODE_REQUESTED: frozenset({LoginState.AWAITING_USER_ACTION, LoginState.FAILED}),
    LoginState.AWAITING_USER_ACTION: frozenset({LoginState.POLLING}),
    LoginState.POLLING: frozenset(
        {LoginState.AUTHENTICATED, LoginState.EXPIRED, LoginState.DENIED, LoginState.FAILED}
    ),
    LoginState.AUTHENTICATED: frozenset(),
    LoginState.EXPIRED: frozenset(),
    LoginState.DENIED: frozenset(),
    LoginState.FAILED: frozenset(),
}


@dataclass(frozen=True, slots=True)
class DeviceCode:
    """Device authorization response.

    Attributes:
        device_code: Opaque code used when polling.
        user_code: Code the user enters at ``verification_uri``.
        verification_uri: Page where the user approves the login.
        expires_in: Seconds until the codes expire.
        interval: Minimum seconds between polls.
    """

    device_code: str
    user_code: str
    verification_uri: str
    expires_in: int
    interval: int


# Poll outcomes. PollOutcome is closed: every consumer matches all six.


@dataclass(frozen=True, slots=True)
class Pending:
    """The user has not approved the login yet."""


@dataclass(frozen=True, slots=True)
class SlowDown:
    """Polling too fast; the interval must grow."""


@dataclass(frozen=True, slots=True)
class Expired:
    """The device code expired."""


@dataclass(frozen=True, slots=True)
class Denied:
    """The user declined the login."""


@dataclass(frozen=True, slots=True)
class Success:
    """The login was approved."""

    token: str


@dataclass(frozen=True, slots=True)
class OtherError:
    """Any other error code returned by the token endpoint."""

    code: str


PollOutcome = Pending | SlowDown | Expired | Denied | Success | OtherError


def classify_poll_response(data: dict[str, Any]) -> PollOutcome:
    """Classify a token-endpoint response body.

    Args:
        data: Decoded JSON response.

    Returns:
        The matching PollOutcome.
    """
    token = data.get("access_token")
    if token:
        return Success(token=str(token))

    error = data.get("error")
    if error == "authorization_pending":
        return Pending()
    if error == "slow_down":
        return SlowDown()
    if error == "expired_token":
        return Expired()
    if error == "access_denied":
        return Denied()
    return OtherError(code=str(error or "invalid_response"))


@dataclass(frozen=True, slots=True)
class LoginOutcome:
    """Terminal result of a login attempt.

    Attributes:
        state: Terminal LoginState.
        credential: Persisted credential, when AUTHENTICATED.
        error: Failure detail (raw error code or message), if any.
    """

    state: LoginState
    credential: Credential | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        """Check if the login ended authenticated."""
        return self.state is LoginState.AUTHENTICATED


@dataclass(frozen=True, slots=True)
class AuthStatus:
    """Display information about the stored credential."""

    principal: str
    scopes: list[str]
    masked_token: str


class DeviceFlowClient:
    """HTTP client for the device authorization and token endpoints."""

    def __init__(
        self,
        client_id: str = OAUTH_CLIENT_ID,
        scopes: tuple[str, ...] = OAUTH_SCOPES,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client_id = client_id
        self._scopes = scopes
        self._transport = transport

    def request_code(self) -> DeviceCode:
        """Request a device and user code.

        Raises:
            RemoteAccessError: If the request fails or the response is malformed.
        """
        data = self._post(
            DEVICE_CODE_URL,
            {"client_id": self._client_id, "scope": " ".join(self._scopes)},
        )
        try:
            return DeviceCode(
                device_code=str(data["device_code"]),
                user_code=str(data["user_code"]),
                verification_uri=str(data["verification_uri"]),
                expires_in=int(data["expires_in"]),
                interval=int(data.get("interval", 5)),
            )
        except (KeyError, TypeError, ValueError) as e:
            msg = f"Malformed device code response: {data.get('error', e)}"
            raise RemoteAccessError(msg) from e

    def poll(self, device_code: str) -> PollOutcome:
        """Submit one token exchange and classify the response."""
        try:
            data = self._post(
                ACCESS_TOKEN_URL,
                {
                    "client_id": self._client_id,
                    "device_code": device_code,
                    "grant_type": DEVICE_GRANT_TYPE,
                },
            )
        except RemoteAccessError as e:
            return OtherError(code=str(e))
        return classify_poll_response(data)

    def _post(self, url: str, form: dict[str, str]) -> dict[str, Any]:
        headers = {"Accept": "application/json", "User-Agent": USER_AGENT}
        try:
            with httpx.Client(transport=self._transport, timeout=30.0) as client:
                response = client.post(url, data=form, headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            msg = f"GitHub login request failed: {e}"
            raise RemoteAccessError(msg) from e
        except ValueError as e:
            msg = f"GitHub login response is not JSON: {e}"
            raise RemoteAccessError(msg) from e
        if not isinstance(data, dict):
            msg = "GitHub login response is not a JSON object"
            raise RemoteAccessError(msg)
        return data


def print_device_code(code: DeviceCode) -> None:
    """Show the one-time code and where to enter it."""
    console.print(f"First copy your one-time code: [bold]{code.user_code}[/bold]")
    console.print(f"Then open [info]{code.verification_uri}[/info] in your browser to continue.")


def _open_browser(url: str) -> None:
    try:
        webbrowser.open(url)
    except webbrowser.Error as e:
        logger.debug("Could not open browser: %s", e)


class DeviceLogin:
    """One run of the device-flow state machine.

    Example:
        >>> login = DeviceLogin(DeviceFlowClient(), on_success=broker.complete_login)
        >>> outcome = login.run()
        >>> outcome.state
        <LoginState.AUTHENTICATED: 'authenticated'>
    """

    def __init__(
        self,
        flow_client: DeviceFlowClient,
        on_success: Callable[[str], Credential],
        *,
        prompt: Callable[[DeviceCode], None] = print_device_code,
        open_browser: Callable[[str], None] = _open_browser,
        clock: Callable[[], float] = time.monotonic,
        sleeper: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize a login.

        Args:
            flow_client: Device authorization and token endpoints.
            on_success: Turns an access token into a persisted Credential.
            prompt: Presents the user code and verification URI.
            open_browser: Best-effort browser launcher; failures are ignored.
            clock: Monotonic time source in seconds.
            sleeper: Sleeps for the given number of seconds.
        """
        self._flow_client = flow_client
        self._on_success = on_success
        self._prompt = prompt
        self._open_browser = open_browser
        self._clock = clock
        self._sleeper = sleeper
        self._state = LoginState.IDLE
        self.poll_count = 0
        self.intervals: list[float] = []

    @property
    def state(self) -> LoginState:
        """Current state."""
        return self._state

    def transition(self, new_state: LoginState) -> None:
        """Move to ``new_state``.

        Raises:
            RuntimeError: If the transition is not allowed from the current state.
        """
        if new_state not in _TRANSITIONS[self._state]:
            msg = f"Illegal login transition {self._state.value} -> {new_state.value}"
            raise RuntimeError(msg)
        logger.debug("Login state %s -> %s", self._state.value, new_state.value)
        self._state = new_state

    def run(self) -> LoginOutcome:
        """Drive the login to a terminal state."""
        self.transition(LoginState.CODE_REQUESTED)
        try:
            code = self._flow_client.request_code()
        except RemoteAccessError as e:
            return self._finish(LoginState.FAILED, error=str(e))

        self.transition(LoginState.AWAITING_USER_ACTION)
        self._prompt(code)
        try:
            self._open_browser(code.verification_uri)
        except Exception as e:
            logger.debug("Browser launch failed: %s", e)

        self.transition(LoginState.POLLING)
        return self._poll(code)

    def _poll(self, code: DeviceCode) -> LoginOutcome:
        interval = float(code.interval)
        deadline = self._clock() + code.expires_in

        while self._clock() < deadline:
            self._sleeper(interval)
            self.intervals.append(interval)
            self.poll_count += 1
            outcome = self._flow_client.poll(code.device_code)

            match outcome:
                case Success(token=token):
                    return self._complete(token)
                case Pending():
                    continue
                case SlowDown():
                    interval += SLOW_DOWN_INCREMENT
                    logger.debug("Slowing down polling to %.0fs", interval)
                case Expired():
                    return self._finish(LoginState.EXPIRED, error="expired_token")
                case Denied():
                    return self._finish(LoginState.DENIED, error="access_denied")
                case OtherError(code=error_code):
                    return self._finish(LoginState.FAILED, error=error_code)
                case _:
                    assert_never(outcome)

        return self._finish(LoginState.EXPIRED, error="expired_token")

    def _complete(self, token: str) -> LoginOutcome:
        try:
            credential = self._on_success(token)
        except (GistSyncError, OSError) as e:
            return self._finish(LoginState.FAILED, error=str(e))
        return self._finish(LoginState.AUTHENTICATED, credential=credential)

    def _finish(
        self,
        state: LoginState,
        credential: Credential | None = None,
        error: str | None = None,
    ) -> LoginOutcome:
        self.transition(state)
        return LoginOutcome(state=state, credential=credential, error=error)


class AuthenticationBroker:
    """Owns the stored GitHub credential and the login that produces it.

    Example:
        >>> broker = AuthenticationBroker()
        >>> if not broker.is_authenticated():
        ...     broker.login()
    """

    def __init__(
        self,
        store: SecureConfigStore[Credential] | None = None,
        flow_client: DeviceFlowClient | None = None,
        client_factory: Callable[[str], GistClient] = GistClient,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleeper: Callable[[float], None] = time.sleep,
        open_browser: Callable[[str], None] = _open_browser,
    ) -> None:
        """Initialize the broker.

        Args:
            store: Credential store. Defaults to the encrypted credential file.
            flow_client: Device-flow HTTP client.
            client_factory: Builds an API client for a token (identity check).
            clock: Monotonic time source used for the login deadline.
            sleeper: Sleep function used between polls.
            open_browser: Browser launcher for the verification page.
        """
        if store is None:
            store = SecureConfigStore(get_credential_path(), Credential)
        self._store = store
        self._flow_client = flow_client or DeviceFlowClient()
        self._client_factory = client_factory
        self._clock = clock
        self._sleeper = sleeper
        self._open_browser = open_browser

    def login(self, prompt: Callable[[DeviceCode], None] = print_device_code) -> LoginOutcome:
        """Run a device-flow login and persist the credential on success.

        Args:
            prompt: Presents the user code and verification URI.

        Returns:
            Terminal LoginOutcome.
        """
        login = DeviceLogin(
            self._flow_client,
            self._persist_token,
            prompt=prompt,
            open_browser=self._open_browser,
            clock=self._clock,
            sleeper=self._sleeper,
        )
        outcome = login.run()
        if outcome.success and outcome.credential is not None:
            logger.info("Logged in as %s", outcome.credential.principal)
        else:
            logger.info("Login ended in state %s", outcome.state.value)
        return outcome

    def is_authenticated(self) -> bool:
        """Check for a stored credential that GitHub still accepts.

        Never raises: network failures, a rejected token, a malformed reply
        and an unreadable store or key file all report False.
        """
        try:
            credential = self._store.load()
            if credential is None:
                return False
            with self._client_factory(credential.secret) as client:
                client.current_user()
        except (GistSyncError, OSError) as e:
            logger.debug("Credential check failed: %s", e)
            return False
        return True

    def logout(self) -> None:
        """Delete the stored credential. Succeeds if none is stored."""
        self._store.delete()

    def require_credential(self) -> Credential:
        """Return the stored credential.

        Raises:
            AuthenticationRequiredError: If no credential is stored.
            StoreUnreadableError: If the credential file cannot be decrypted.
        """
        credential = self._store.load()
        if credential is None:
            msg = "Not logged in. Run 'gistsync auth login' first."
            raise AuthenticationRequiredError(msg)
        return credential

    def status(self) -> AuthStatus | None:
        """Describe the stored credential, or None if not logged in.

        Raises:
            AuthenticationRequiredError: If GitHub rejects the token.
            RemoteAccessError: If GitHub cannot be reached.
        """
        credential = self._store.load()
        if credential is None:
            return None
        with self._client_factory(credential.secret) as client:
            principal = client.current_user()
            scopes = client.token_scopes()
        return AuthStatus(principal=principal, scopes=scopes, masked_token=credential.masked_secret)

    def _persist_token(self, token: str) -> Credential:
        with self._client_factory(token) as client:
            principal = client.current_user()
        credential = Credential(principal=principal, secret=token)
        self._store.save(credential)
        return credential
