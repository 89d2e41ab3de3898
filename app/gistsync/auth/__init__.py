"""GitHub authentication (OAuth device flow)."""

from gistsync.auth.device_flow import (
    AuthenticationBroker,
    DeviceCode,
    DeviceFlowClient,
    LoginOutcome,
    LoginState,
)

__all__ = [
    "AuthenticationBroker",
    "DeviceCode",
    "DeviceFlowClient",
    "LoginOutcome",
    "LoginState",
]
