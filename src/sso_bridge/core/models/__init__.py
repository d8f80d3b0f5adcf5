"""Session and identity models."""

from .claims import TrustedClaims
from .session import UserSession

__all__ = ["TrustedClaims", "UserSession"]
