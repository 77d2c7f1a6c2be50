"""
Application Configuration - Pydantic Settings for type-safe config.

NO DICTIONARIES - All configuration is strongly typed.
FAIL FAST - Critical config is validated at startup.
"""

import sys

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when critical configuration is missing or invalid."""

    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration - NO DEFAULT for production safety
    database_url: str = ""
    database_pool_size: int = 10
    database_max_overflow: int = 5
    database_pool_timeout: int = 30
    database_pool_recycle: int = 3600
    run_migrations: bool = False

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_title: str = "CSEC Formula Calculator API"
    api_version: str = "0.1.0"
    api_description: str = "Token-metered formula calculator backend"
    cors_origins: str = "*"  # Comma-separated list of allowed origins
    forwarded_allow_ips: str = "*"  # Proxies trusted for X-Forwarded-Proto

    # Users service (OAuth + session microservice)
    users_service_api_url: str = ""
    users_service_api_key: str = ""
    users_service_timeout: float = 10.0

    # Session cookie
    session_cookie_name: str = "session_token"
    session_cookie_max_age: int = 60 * 24 * 60 * 60  # 60 days

    # Admins bypass token accounting
    admin_emails: str = ""  # Comma-separated allow-list

    @property
    def admin_email_list(self) -> list[str]:
        """Get normalized list of admin emails."""
        emails: list[str] = []
        for email in self.admin_emails.split(","):
            email = email.strip().lower()
            if email and email not in emails:
                emails.append(email)
        return emails

    @property
    def cors_origin_list(self) -> list[str]:
        """Get list of allowed CORS origins."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    # Token accounting
    daily_token_allowance: int = 25
    admin_token_sentinel: int = 999999

    # Payment Provider - PayPal
    paypal_client_id: str = ""
    paypal_client_secret: str = ""
    paypal_api_base: str = "https://api-m.paypal.com"
    paypal_currency: str = "USD"
    paypal_timeout: float = 15.0

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # json or console

    # Observability - Metrics
    metrics_enabled: bool = True

    # Observability - Tracing
    tracing_enabled: bool = True
    otlp_endpoint: str = "http://otel-collector:4317"
    otlp_insecure: bool = True
    tracing_sample_ratio: float = 1.0
    service_name: str = "csec-calculator-api"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_critical_config(self) -> "Settings":
        """
        FAIL FAST: Validate critical configuration at startup.

        The app MUST NOT start if critical config is missing.
        """
        errors: list[str] = []

        if not self.database_url:
            errors.append("DATABASE_URL is required but empty or missing")
        elif not self.database_url.startswith(("postgresql", "postgres")):
            errors.append(
                f"DATABASE_URL must be a PostgreSQL URL, got: {self.database_url[:20]}..."
            )

        if self.daily_token_allowance <= 0:
            errors.append(
                f"DAILY_TOKEN_ALLOWANCE must be positive, got: {self.daily_token_allowance}"
            )

        if not 0.0 <= self.tracing_sample_ratio <= 1.0:
            errors.append(
                f"TRACING_SAMPLE_RATIO must be between 0 and 1, got: {self.tracing_sample_ratio}"
            )

        if self.log_format not in ("json", "console"):
            errors.append(f"LOG_FORMAT must be 'json' or 'console', got: {self.log_format}")

        if errors:
            error_msg = "\n".join(
                [
                    "",
                    "=" * 60,
                    "CRITICAL CONFIGURATION ERROR - APPLICATION CANNOT START",
                    "=" * 60,
                    *[f"  ✗ {e}" for e in errors],
                    "=" * 60,
                    "",
                ]
            )
            print(error_msg, file=sys.stderr)
            raise ConfigurationError(error_msg)

        return self


# Global settings instance - validates at import time
settings = Settings()
