"""User domain entity."""

from pydantic import Field

from src.sso_bridge.entities.core._base import Entity


class User(Entity):
    """Local user account.

    Users provisioned through SSO use the partner's subject identifier as
    their id, so the same person always maps to the same row.
    """

    name: str = Field(description="Display name")
    email: str = Field(description="Email address, unique across users")
    email_verified: bool = Field(
        default=False, description="Whether the email was verified upstream"
    )
    phone: str | None = Field(default=None, description="User's phone number")
