"""Process-wide configuration held in a context variable.

Tests and the CLI swap configuration through ``set_config`` or the
``with_context`` manager instead of mutating the environment.
"""

from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, replace
from pathlib import Path

from loguru import logger

from src.sso_bridge.runtime.config.config_data import AppConfig, ConfigData
from src.sso_bridge.runtime.config.config_template import load_templated_yaml
from src.sso_bridge.runtime.settings import EnvironmentVariables


@dataclass
class AppContext:
    config: ConfigData


def load_config() -> ConfigData:
    """Load config.yaml (or $APP_CONFIG_FILE), falling back to built-in defaults."""
    env = EnvironmentVariables()
    config_path = Path(env.config_file)
    if config_path.exists():
        return load_templated_yaml(config_path)

    logger.warning(f"Configuration file {config_path} not found; using defaults")
    return ConfigData(app=AppConfig(environment=env.environment))


_app_context: ContextVar[AppContext] = ContextVar(
    "app_context", default=AppContext(config=load_config())
)


def get_context() -> AppContext:
    return _app_context.get()


def set_context(context: AppContext) -> Token[AppContext]:
    return _app_context.set(context)


def _deep_merge(base: dict, override: dict) -> dict:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def merge_config(base: ConfigData, override: ConfigData) -> ConfigData:
    """Apply the fields explicitly set on ``override`` on top of ``base``."""
    merged = _deep_merge(base.model_dump(), override.model_dump(exclude_unset=True))
    return ConfigData.model_validate(merged)


@contextmanager
def with_context(config_override: ConfigData | None = None):
    """Temporarily override part of the current configuration.

    Example:
        override = ConfigData(sso=SSOConfig(expected_issuer="roundtable"))
        with with_context(override):
            assert get_config().sso.expected_issuer == "roundtable"
    """
    if config_override is None:
        yield
        return

    if not isinstance(config_override, ConfigData):
        raise ValueError(
            f"config_override must be ConfigData, or None, got {type(config_override)}"
        )

    context = get_context()
    token = set_context(replace(context, config=merge_config(context.config, config_override)))
    try:
        yield
    finally:
        _app_context.reset(token)


def set_config(config: ConfigData) -> None:
    """Replace the entire current configuration with the provided one."""
    set_context(replace(get_context(), config=config))


def get_config() -> ConfigData:
    return get_context().config
