"""
shopshap/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (Twilio credentials, OTP policy, DB URI)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, Literal


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # Twilio WhatsApp gateway
    TWILIO_ACCOUNT_SID: Optional[str] = Field(
        default=None,
        description="Twilio account SID"
    )
    TWILIO_AUTH_TOKEN: Optional[str] = Field(
        default=None,
        description="Twilio auth token"
    )
    TWILIO_WHATSAPP_FROM: str = Field(
        default="whatsapp:+14155238886",
        description="Sender identifier (Twilio sandbox number by default)"
    )
    TWILIO_API_BASE_URL: str = Field(
        default="https://api.twilio.com/2010-04-01",
        description="Twilio REST API base URL"
    )
    TWILIO_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Twilio request timeout in seconds"
    )

    # OTP policy
    OTP_CODE_EXPIRY_MINUTES: int = Field(
        default=10,
        description="Lifetime of a verification code in minutes"
    )
    OTP_MAX_ATTEMPTS: int = Field(
        default=3,
        description="Wrong guesses allowed before a code is discarded"
    )
    RATE_LIMIT_WINDOW_MINUTES: int = Field(
        default=15,
        description="Length of the send rate-limit window in minutes"
    )
    RATE_LIMIT_MAX_REQUESTS: int = Field(
        default=3,
        description="Maximum code requests per phone number per window"
    )
    OTP_SWEEP_INTERVAL_SECONDS: int = Field(
        default=0,
        description="Interval of the background expiry sweep (0 disables it)"
    )

    # MongoDB (optional, used to link verified profiles)
    MONGODB_URL: Optional[str] = Field(
        default=None,
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: str = Field(
        default="shopshap",
        description="MongoDB database name"
    )
    PROFILES_COLLECTION: str = Field(
        default="profiles",
        description="Collection holding verified user profiles"
    )

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="",
        description="API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    @field_validator("OTP_CODE_EXPIRY_MINUTES", "OTP_MAX_ATTEMPTS", "RATE_LIMIT_WINDOW_MINUTES", "RATE_LIMIT_MAX_REQUESTS")
    @classmethod
    def validate_positive(cls, v):
        """OTP policy values must be strictly positive."""
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


# Global settings instance
settings = Settings()


def validate_settings():
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    errors = []

    if not settings.TWILIO_WHATSAPP_FROM:
        errors.append("TWILIO_WHATSAPP_FROM is required")

    # Production-specific validations
    if settings.is_production:
        if not settings.TWILIO_ACCOUNT_SID:
            errors.append("TWILIO_ACCOUNT_SID is required in production")
        if not settings.TWILIO_AUTH_TOKEN:
            errors.append("TWILIO_AUTH_TOKEN is required in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
