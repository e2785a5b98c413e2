"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (DB URI, Twilio credentials, booking constants)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, Literal


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # Persistence
    STORE_BACKEND: Literal["mongo", "memory"] = Field(
        default="mongo",
        description="Backing store for sessions, users and bookings"
    )
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: str = Field(
        default="cabbot",
        description="MongoDB database name"
    )

    # Twilio WhatsApp
    TWILIO_ACCOUNT_SID: Optional[str] = Field(
        default=None,
        description="Twilio account SID"
    )
    TWILIO_AUTH_TOKEN: Optional[str] = Field(
        default=None,
        description="Twilio auth token"
    )
    TWILIO_WHATSAPP_NUMBER: str = Field(
        default="whatsapp:+14155238886",
        description="Sandbox or business WhatsApp sender number"
    )
    TWILIO_API_BASE_URL: str = Field(
        default="https://api.twilio.com/2010-04-01",
        description="Twilio REST API base URL"
    )
    TWILIO_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Timeout for outbound Twilio calls in seconds"
    )

    # Booking
    BOOKING_ID_PREFIX: str = Field(
        default="CAB",
        description="Prefix for generated booking identifiers"
    )
    BOOKING_FARE: int = Field(
        default=20,
        description="Fixed fare applied to every booking"
    )
    CURRENCY_SYMBOL: str = Field(
        default="₹",
        description="Currency symbol shown next to the fare"
    )
    RECENT_BOOKINGS_LIMIT: int = Field(
        default=5,
        description="How many bookings 'my bookings' shows"
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
        default="/api/v1",
        description="API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    @field_validator("TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN", mode="after")
    @classmethod
    def validate_twilio_credentials(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        """Ensure Twilio credentials are set in production."""
        if info.data.get("ENVIRONMENT") == "production" and not v:
            raise ValueError(f"{info.field_name} is required in production environment")
        return v

    @field_validator("BOOKING_FARE", "RECENT_BOOKINGS_LIMIT")
    @classmethod
    def validate_positive(cls, v: int) -> int:
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

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        env_file_encoding="utf-8",
        validate_default=True,
    )


# Global settings instance
settings = Settings()


def validate_settings():
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    errors = []

    if settings.STORE_BACKEND == "mongo" and not settings.MONGODB_URL:
        errors.append("MONGODB_URL is required when STORE_BACKEND is 'mongo'")

    if not settings.BOOKING_ID_PREFIX:
        errors.append("BOOKING_ID_PREFIX must not be empty")

    # Production-specific validations
    if settings.is_production:
        if settings.STORE_BACKEND == "memory":
            errors.append("STORE_BACKEND 'memory' is not allowed in production")
        if not settings.TWILIO_ACCOUNT_SID or not settings.TWILIO_AUTH_TOKEN:
            errors.append("Twilio credentials are required in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
