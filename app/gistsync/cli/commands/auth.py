"""Authentication commands.

Log in to GitHub with the OAuth device flow, log out, and show the stored
credential's status.
"""

import typer

from gistsync.auth.device_flow import LoginState, print_device_code
from gistsync.cli.services import get_broker
from gistsync.core.errors import GistSyncError
from gistsync.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Manage GitHub authentication.",
    no_args_is_help=True,
)

_FAILURE_MESSAGES = {
    LoginState.EXPIRED: "The login code expired before it was approved.",
    LoginState.DENIED: "The login was denied.",
}


@app.command()
def login() -> None:
    """Log in to GitHub using the device flow."""
    broker = get_broker()
    outcome = broker.login(prompt=print_device_code)

    if outcome.success and outcome.credential is not None:
        print_success(f"Logged in as {outcome.credential.principal}")
        return

    message = _FAILURE_MESSAGES.get(outcome.state, f"Login failed: {outcome.error or 'unknown'}")
    print_error(message)
    raise typer.Exit(code=1)


@app.command()
def logout() -> None:
    """Remove the stored GitHub credential."""
    try:
        get_broker().logout()
    except OSError as e:
        print_error(f"Failed to remove credential: {e}")
        raise typer.Exit(code=1) from e
    print_info("Logged out")


@app.command()
def status() -> None:
    """Show the logged-in account and token scopes."""
    try:
        auth_status = get_broker().status()
    except GistSyncError as e:
        print_error(f"Failed to retrieve status from GitHub: {e}")
        raise typer.Exit(code=1) from e

    if auth_status is None:
        print_info("You are not logged in.")
        return

    scopes = ", ".join(f"'{scope}'" for scope in auth_status.scopes) or "none"
    console.print("github.com")
    account = auth_status.principal
    console.print(f"  [success]✓[/success] Logged in to github.com account {account}")
    console.print(f"  - Token: {auth_status.masked_token}")
    console.print(f"  - Token scopes: {scopes}")
