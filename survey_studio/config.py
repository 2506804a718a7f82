"""Application configuration management using Pydantic Settings.

This module loads and validates environment variables using Pydantic Settings.
All configuration is loaded from environment variables or a .env file.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Attributes:
        database_url: SQLAlchemy connection string
        database_pool_size: Number of connections to maintain in pool
        database_max_overflow: Maximum overflow connections beyond pool_size
        environment: Application environment (development, staging, production)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        git_commit_sha: Git commit SHA reported at startup
        auth_jwt_secret: Shared secret used to verify identity provider tokens
        auth_jwt_algorithm: JWT signing algorithm
        auth_issuer: Expected token issuer (optional)
        auth_audience: Expected token audience (optional)
        auth_allowed_tenant_id: Expected tenant claim (optional)
        allowed_email_domain: Only identities from this domain may sign in
        admin_bootstrap_emails: Emails provisioned as admins on first sign in
        site_url: Base URL used to build participant invite links
        invite_message_template: Jinja2 template for the invite message
        completion_webhook_url: URL notified after each submission (optional)
        rate_limit_*: Fixed-window limits for participant actions
        revoke_invites_on_archive: Expire open invites when archiving a survey
        version_insert_retries: Attempts to allocate a version number
        allowed_origins: List of allowed CORS origins
    """

    # Database Configuration
    database_url: str = Field(
        description="SQLAlchemy connection string"
    )
    database_pool_size: int = Field(
        default=5,
        description="Number of database connections in pool"
    )
    database_max_overflow: int = Field(
        default=10,
        description="Maximum overflow connections beyond pool size"
    )

    # Application Configuration
    environment: str = Field(
        default="development",
        description="Application environment"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    git_commit_sha: str = Field(
        default="local",
        description="Git commit SHA for versioning"
    )

    # Authentication Configuration
    auth_jwt_secret: str = Field(
        description="Secret used to verify identity provider tokens"
    )
    auth_jwt_algorithm: str = Field(
        default="HS256",
        description="Signing algorithm of identity provider tokens"
    )
    auth_issuer: Optional[str] = Field(
        default=None,
        description="Expected token issuer"
    )
    auth_audience: Optional[str] = Field(
        default=None,
        description="Expected token audience"
    )
    auth_allowed_tenant_id: Optional[str] = Field(
        default=None,
        description="Expected tenant (tid claim)"
    )
    allowed_email_domain: str = Field(
        default="example.org",
        description="Email domain allowed to sign in"
    )
    admin_bootstrap_emails: str = Field(
        default="",
        description="Comma-separated emails provisioned as admins"
    )

    # Invites and Participants
    site_url: str = Field(
        default="http://localhost:8000",
        description="Base URL for participant links"
    )
    invite_message_template: str = Field(
        default=(
            "You have been invited to complete \"{{ title }}\". "
            "Open {{ link }} to start."
            "{% if expires_at %} This link expires on {{ expires_at }}.{% endif %}"
        ),
        description="Jinja2 template for invite messages"
    )
    completion_webhook_url: Optional[str] = Field(
        default=None,
        description="URL notified when a participant submits"
    )
    completion_webhook_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for the completion webhook call"
    )

    # Rate Limiting
    rate_limit_window_seconds: int = Field(
        default=60,
        ge=1,
        description="Fixed window length in seconds"
    )
    rate_limit_load: int = Field(default=120, ge=1, description="Loads per window per invite")
    rate_limit_draft: int = Field(default=30, ge=1, description="Draft saves per window per invite")
    rate_limit_submit: int = Field(default=10, ge=1, description="Submits per window per invite")

    # Survey Lifecycle
    revoke_invites_on_archive: bool = Field(
        default=False,
        description="Expire open invites when a survey is archived"
    )
    version_insert_retries: int = Field(
        default=3,
        ge=1,
        description="Attempts to allocate a survey version number"
    )

    # Security Configuration
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:8000",
        description="Comma-separated list of allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is one of the allowed values."""
        allowed = {"development", "staging", "production"}
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of {allowed}")
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"Log level must be one of {allowed}")
        return v_upper

    @field_validator("allowed_email_domain")
    @classmethod
    def validate_email_domain(cls, v: str) -> str:
        """Strip a leading @ and lowercase the domain."""
        return v.strip().lstrip("@").lower()

    def get_allowed_origins_list(self) -> List[str]:
        """Parse allowed_origins string into a list."""
        return [origin.strip() for origin in self.allowed_origins.split(",")]

    def get_admin_bootstrap_emails(self) -> List[str]:
        """Parse admin_bootstrap_emails into a lowercase list."""
        return [
            email.strip().lower()
            for email in self.admin_bootstrap_emails.split(",")
            if email.strip()
        ]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings singleton

    Note:
        Uses lru_cache to ensure settings are only loaded once
        and shared across the application.
    """
    return Settings()
