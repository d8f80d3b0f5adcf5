"""Account domain entity."""

from pydantic import Field

from src.sso_bridge.entities.core._base import Entity

CREDENTIAL_PROVIDER = "credential"


class Account(Entity):
    """Sign-in method attached to a user.

    SSO users get a ``credential`` account holding the hash of their
    derived credential.
    """

    user_id: str = Field(description="Owning user")
    provider_id: str = Field(
        default=CREDENTIAL_PROVIDER, description="Sign-in method identifier"
    )
    account_id: str = Field(description="Identifier of the user at the provider")
    password_hash: str | None = Field(
        default=None, description="Credential hash for password based accounts"
    )
