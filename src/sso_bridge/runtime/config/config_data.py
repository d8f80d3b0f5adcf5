"""Typed view of the ``config:`` section of config.yaml."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, computed_field


class CORSConfig(BaseModel):
    """CORS configuration for the application."""

    origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:3001"]
    )
    allow_credentials: bool = True
    allow_methods: list[str] = Field(default=["GET", "POST", "OPTIONS"])
    allow_headers: list[str] = Field(default=["*"])


class RedisConfig(BaseModel):
    """Redis configuration model."""

    enabled: bool = Field(default=False, description="Enable Redis session storage")
    url: str = Field(default="", description="Redis connection URL")
    password: str | None = Field(
        default=None, description="Password for Redis authentication"
    )
    decode_responses: bool = Field(
        default=True, description="Decode Redis responses to strings"
    )

    @computed_field
    @property
    def connection_string(self) -> str:
        """Construct the Redis connection string with password if provided."""
        if self.password:
            if "@" in self.url:
                # URL already has auth info
                return self.url
            parts = self.url.split("://", 1)
            if len(parts) == 2:
                scheme, rest = parts
                return f"{scheme}://:{self.password}@{rest}"
        return self.url


class LoggingConfig(BaseModel):
    """Logging configuration model."""

    level: str = Field(default="INFO", description="Logging level")
    format: Literal["json", "plain"] = Field(default="json", description="Log format")
    file: str | None = Field(default="logs/app.log", description="Log file path")
    max_size_mb: int = Field(default=10, description="Maximum log file size in MB")
    backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )


class DatabaseConfig(BaseModel):
    """User store connection settings.

    SQLite needs no further settings. For PostgreSQL the password may be kept
    out of the URL and supplied through ``password`` (``DATABASE_PASSWORD``).
    """

    url: str = Field(
        default="sqlite:///./database.db",
        description="Database connection URL",
    )
    password: str | None = Field(
        default=None, description="Password replacing the one in the URL"
    )
    pool_size: int = Field(default=20, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum pool overflow")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    pool_recycle: int = Field(default=1800, description="Pool recycle time in seconds")

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def connection_string(self) -> str:
        """URL handed to the engine, with ``password`` applied when set."""
        if self.is_sqlite or not self.password:
            return self.url

        from sqlalchemy.engine import make_url

        # render_as_string keeps the password; str() would mask it
        return make_url(self.url).set(password=self.password).render_as_string(
            hide_password=False
        )


class AppConfig(BaseModel):
    """Application configuration model."""

    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    host: str = Field(default="localhost", description="Application host")
    port: int = Field(default=8000, description="Application port")
    public_base_url: str | None = Field(
        default=None,
        description="Public base URL used for redirects (request origin when unset)",
    )
    session_max_age: int = Field(
        default=3600, description="Session maximum age in seconds"
    )
    session_cookie_name: str = Field(
        default="sso_bridge_session", description="Name of the session cookie"
    )
    cors: CORSConfig = Field(
        default_factory=CORSConfig, description="CORS configuration"
    )


class SecurityConfig(BaseModel):
    """Security configuration for session cookies."""

    secure_cookies: bool = Field(
        default=True, description="Force secure cookies in production"
    )
    cookie_samesite: Literal["lax", "strict", "none"] = Field(
        default="lax", description="SameSite cookie attribute"
    )


class SSOConfig(BaseModel):
    """Single sign-on token exchange configuration."""

    token_format: Literal["jwt", "signed_payload"] = Field(
        default="jwt",
        description="Token shape issued by the partner: 'jwt' (header.payload.sig) "
        "or 'signed_payload' (payload.sig)",
    )
    signing_secret: str | None = Field(
        default=None, description="Shared HMAC-SHA256 secret used to sign tokens"
    )
    expected_issuer: str = Field(
        default="supabase", description="Exact 'iss' value accepted from the partner"
    )
    credential_secret: str | None = Field(
        default=None,
        description="Server secret used to derive per-subject local credentials",
    )
    allow_expired_tokens: bool = Field(
        default=False,
        description="Accept expired tokens (development and test only)",
    )
    clock_skew_seconds: int = Field(
        default=0, ge=0, description="Leeway applied to the 'exp' check"
    )
    collaborator_timeout_seconds: float = Field(
        default=8.0,
        ge=1.0,
        le=30.0,
        description="Timeout for each user store and session service call",
    )
    max_token_length: int = Field(
        default=2048, description="Maximum accepted token length"
    )
    redirect_path: str = Field(
        default="/dashboard/billing/plans", description="Path of the success redirect"
    )


class ConfigData(BaseModel):
    """Root configuration model that matches the config.yaml structure."""

    redis: RedisConfig = Field(
        default_factory=RedisConfig, description="Redis configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
    app: AppConfig = Field(
        default_factory=AppConfig, description="Application configuration"
    )
    security: SecurityConfig = Field(
        default_factory=SecurityConfig, description="Security configuration"
    )
    sso: SSOConfig = Field(
        default_factory=SSOConfig, description="SSO token exchange configuration"
    )
