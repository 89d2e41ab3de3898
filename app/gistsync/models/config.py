"""Locally persisted configuration models.

These Pydantic models are what the encrypted SecureConfigStore files hold:
the pointer to the remote desired-state document and the GitHub credential.
"""

from datetime import UTC, datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DesiredStateDocument(BaseModel):
    """Pointer to the Gist that holds the declarative package list.

    Attributes:
        document_id: Gist identifier.
        file_name: Name of the YAML file inside the Gist.
        created_at: When the pointer was first configured.
        last_accessed_at: When the document was last read or written.
    """

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    document_id: Annotated[str, Field(description="Gist identifier")]
    file_name: Annotated[str, Field(description="YAML file name inside the Gist")]
    created_at: Annotated[datetime, Field(default_factory=_utcnow)]
    last_accessed_at: Annotated[datetime, Field(default_factory=_utcnow)]

    @field_validator("document_id", "file_name")
    @classmethod
    def validate_not_blank(cls, v: str, info: ValidationInfo) -> str:
        """Reject empty or whitespace-only identifiers."""
        if not v or not v.strip():
            msg = f"{info.field_name} cannot be empty"
            raise ValueError(msg)
        return v.strip()

    def touch(self) -> None:
        """Record an access to the remote document."""
        self.last_accessed_at = _utcnow()


class Credential(BaseModel):
    """GitHub OAuth credential obtained through device-flow login.

    The secret is excluded from ``repr`` so it never ends up in logs or
    tracebacks; use :attr:`masked_secret` for display.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    principal: Annotated[str, Field(description="GitHub login name")]
    secret: Annotated[str, Field(description="OAuth access token", repr=False, min_length=1)]
    created_at: Annotated[datetime, Field(default_factory=_utcnow)]

    @property
    def masked_secret(self) -> str:
        """Display-safe representation of the token."""
        if self.secret.startswith("gho_"):
            return "gho_**********"
        if len(self.secret) > 4:
            return self.secret[:4] + "**********"
        return "**********"
