"""Test configuration for the SSO bridge."""

from tests.fixtures import *  # noqa: F401,F403
