"""Account database table model."""

from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from src.sso_bridge.entities.core._base import EntityTable


class AccountTable(EntityTable, table=True):
    """Database persistence model for accounts."""

    __table_args__ = (
        UniqueConstraint("provider_id", "user_id", name="uq_account_provider_user"),
    )

    user_id: str = Field(foreign_key="usertable.id", index=True)
    provider_id: str = Field(max_length=64)
    account_id: str = Field(max_length=512)
    password_hash: str | None = None
