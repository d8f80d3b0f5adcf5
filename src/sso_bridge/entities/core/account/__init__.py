"""Credential account entity module."""

from .entity import CREDENTIAL_PROVIDER, Account
from .repository import AccountRepository
from .table import AccountTable

__all__ = ["Account", "AccountTable", "AccountRepository", "CREDENTIAL_PROVIDER"]
