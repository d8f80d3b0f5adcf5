"""Load config.yaml with ``${VAR}`` placeholders resolved from the environment."""

import os
import re
from pathlib import Path

import yaml
from loguru import logger
from pydantic import ValidationError

from src.sso_bridge.runtime.config.config_data import ConfigData

# ${NAME}, ${NAME:-default} or ${NAME:?message}
_PLACEHOLDER = re.compile(
    r"\$\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)"
    r"(?::(?P<op>[-?])(?P<arg>[^}]*))?\}"
)


def _resolve(match: re.Match) -> str:
    name, op, arg = match.group("name", "op", "arg")
    value = os.getenv(name)
    if value is not None:
        return value
    if op == "-":
        return arg
    if op == "?":
        raise ValueError(f"Required environment variable {name}: {arg}")
    raise ValueError(f"Required environment variable {name} not set")


def substitute_env_vars(text: str) -> str:
    """Replace ``${NAME}``, ``${NAME:-default}`` and ``${NAME:?message}`` in ``text``.

    Raises:
        ValueError: If a variable without a default is not set
    """
    return _PLACEHOLDER.sub(_resolve, text)


def _apply_environment_overrides(environment: str) -> None:
    """Copy ``<ENVIRONMENT>_NAME`` variables onto ``NAME``.

    Only variable names are logged; the values are usually secrets.
    """
    prefix = f"{environment.upper()}_"
    overridden = []
    for name, value in list(os.environ.items()):
        if name.startswith(prefix) and len(name) > len(prefix):
            os.environ[name[len(prefix):]] = value
            overridden.append(name)
    if overridden:
        logger.info(f"Applied environment-specific overrides: {sorted(overridden)}")


def load_templated_yaml(file_path: Path) -> ConfigData:
    """Read ``file_path`` and validate its ``config:`` section.

    Raises:
        ValueError: On missing variables, malformed YAML, invalid settings,
            or expired-token acceptance enabled in production
    """
    environment = os.getenv("APP_ENVIRONMENT", "development")
    logger.info(f"Loading configuration for environment: {environment}")
    _apply_environment_overrides(environment)

    text = substitute_env_vars(Path(file_path).read_text())
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML: {e}") from e
    if not isinstance(document, dict):
        raise ValueError(f"{file_path} does not contain a mapping")

    try:
        config = ConfigData.model_validate(document.get("config") or {})
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e

    if config.app.environment not in ("development", "test"):
        if config.sso.allow_expired_tokens:
            raise ValueError("sso.allow_expired_tokens cannot be enabled in production")
        if config.sso.clock_skew_seconds:
            raise ValueError("sso.clock_skew_seconds must be 0 in production")

    return config
