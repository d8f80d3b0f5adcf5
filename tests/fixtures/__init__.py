"""Shared pytest fixtures and helpers for SSO tests."""

from .core import *  # noqa: F401,F403
from .services import *  # noqa: F401,F403
