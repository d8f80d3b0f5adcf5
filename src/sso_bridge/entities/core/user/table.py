"""User database table model."""

from sqlalchemy import Column, String
from sqlmodel import Field

from src.sso_bridge.entities.core._base import EntityTable


class UserTable(EntityTable, table=True):
    """Database persistence model for users.

    The unique email column and the primary key together settle races
    between concurrent first-time sign-ins for the same person.
    """

    name: str
    email: str = Field(sa_column=Column(String(320), nullable=False, unique=True))
    email_verified: bool = False
    phone: str | None = None
