"""Identity claims accepted from a verified SSO token."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TrustedClaims(BaseModel):
    """Claims that passed signature, schema, issuer and expiry checks.

    Only the claim validator constructs these; everything downstream may
    rely on ``sub`` and ``email`` being present and well formed.
    """

    model_config = ConfigDict(frozen=True)

    sub: str = Field(description="Stable subject identifier")
    iss: str = Field(description="Token issuer")
    email: str = Field(description="Verified email address")
    iat: int = Field(description="Issued-at timestamp")
    exp: int = Field(description="Expiry timestamp")
    name: str | None = Field(default=None, description="Display name, when asserted")
    phone: str | None = Field(default=None, description="Phone number")
    role: str | None = Field(default=None, description="Role claimed by the partner")
    session_id: str | None = Field(default=None, description="Partner session id")
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Other well-formed optional claims"
    )

    @property
    def display_name(self) -> str:
        """Name for a new account: asserted name, else email local part."""
        if self.name and self.name.strip():
            return self.name.strip()
        local_part = self.email.split("@", 1)[0].strip()
        return local_part or "User"
