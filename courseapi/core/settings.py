"""
Application settings and configuration management.
"""
from typing import List
from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite:///./courseapi.db"
    database_echo: bool = False
    auto_create_tables: bool = True

    # JWT Configuration (tokens are minted by the auth service, verified here)
    jwt_secret: str
    jwt_expiration_hours: int = 24
    jwt_algorithm: str = "HS256"

    # Payment Configuration
    payment_provider: str = "stripe"  # "stripe" or "mock"
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_webhook_tolerance: int = 300  # seconds

    # Fallback price when no course is active (minor units)
    course_price_cents: int = 500
    course_currency: str = "USD"

    # Application Settings
    environment: str = "development"
    app_version: str = "1.0.0"

    # CORS Settings
    allowed_origins: str = "http://localhost:3000,http://localhost:5000"

    # Logging
    log_level: str = "INFO"

    # Monitoring & Observability
    sentry_dsn: str = ""
    sentry_traces_sample_rate: float = 0.1
    release_version: str = "v1.0.0"
    enable_metrics: bool = True

    @field_validator("allowed_origins")
    def validate_origins(cls, v):
        """Convert comma-separated origins string to list."""
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    @field_validator("payment_provider")
    def validate_payment_provider(cls, v):
        """Only the Stripe and in-memory mock providers are supported."""
        provider = v.strip().lower()
        if provider not in ("stripe", "mock"):
            raise ValueError(f"Unsupported payment provider: {v}")
        return provider

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    def validate_production_config(self) -> List[str]:
        """Validate production configuration and return list of issues."""
        issues = []

        if self.is_production:
            if self.payment_provider == "mock":
                issues.append("Payment provider should be 'stripe' in production")

            if not self.stripe_secret_key:
                issues.append("Stripe secret key is not configured")

            if not self.stripe_webhook_secret:
                issues.append("Stripe webhook secret is not configured")

            if "localhost" in str(self.allowed_origins):
                issues.append("Localhost origins should be removed in production")

            if len(self.jwt_secret) < 32:
                issues.append("JWT secret should be at least 32 characters long")

            if self.database_url.startswith("sqlite"):
                issues.append("SQLite should not be used in production")

        return issues

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
