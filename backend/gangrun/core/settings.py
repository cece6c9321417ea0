# backend/gangrun/core/settings.py
"""
GangRun Pricing - Configuration Management with pydantic-settings

- Loads from environment and root .env
- Validates and normalizes values
- Cached singleton via get_settings()
"""
import json
from functools import lru_cache
from pathlib import Path
from typing import Optional, List, Dict, Any
from decimal import Decimal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# backend/gangrun/core/settings.py -> <repo>/.env
_ENV_FILE = Path(__file__).resolve().parent.parent.parent.parent / ".env"


class Settings(BaseSettings):
    """
    Application settings with validation.

    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===================
    # Application Settings
    # ===================
    PROJECT_NAME: str = "GangRun Pricing API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = Field(default=False, description="Enable debug mode")
    ENVIRONMENT: str = Field(default="development", description="Deployment environment")

    # ===================
    # Database Settings
    # ===================
    DB_HOST: str = Field(default="localhost", description="PostgreSQL host")
    DB_PORT: int = Field(default=5432, description="PostgreSQL port")
    DB_NAME: str = Field(default="gangrun", description="Database name")
    DB_USER: str = Field(default="postgres", description="Database user")
    DB_PASSWORD: str = Field(default="postgres", description="Database password")
    DATABASE_URL: Optional[str] = Field(
        default=None, description="Full database URL (overrides DB_* settings)"
    )

    @property
    def database_url(self) -> str:
        """Build PostgreSQL database URL from components or use explicit URL."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    # ===================
    # CORS Settings
    # ===================
    ALLOWED_ORIGINS: List[str] = Field(
        default=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        description="Allowed CORS origins",
    )

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    FRONTEND_URL: str = Field(
        default="http://localhost:3000", description="Storefront URL"
    )

    @model_validator(mode="after")
    def add_frontend_url_to_cors(self):
        """Ensure FRONTEND_URL is allowed for CORS."""
        if self.FRONTEND_URL and self.FRONTEND_URL not in self.ALLOWED_ORIGINS:
            self.ALLOWED_ORIGINS = list(self.ALLOWED_ORIGINS) + [self.FRONTEND_URL]
        return self

    # ===================
    # Logging
    # ===================
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json or console
    LOG_FILE: Optional[str] = None

    # ===================
    # Pricing
    # ===================
    CURRENCY_DECIMAL_PLACES: int = Field(default=2, ge=0, le=4)
    UNIT_PRICE_DECIMAL_PLACES: int = Field(default=4, ge=0, le=8)

    # Custom quantities above the threshold must be a multiple of the increment
    CUSTOM_QUANTITY_INCREMENT_THRESHOLD: int = 5000
    CUSTOM_QUANTITY_INCREMENT: int = 5000

    # Custom width/height grid, in inches
    CUSTOM_SIZE_INCREMENT: float = 0.25

    # Double-sided printing on text ("exception") papers
    EXCEPTION_PAPER_DOUBLE_SIDED_MULTIPLIER: float = 1.75

    # Broker discount map key used when no category-specific entry exists
    BROKER_DEFAULT_DISCOUNT_KEY: str = "_default"

    # ===================
    # Orders
    # ===================
    TAX_RATE: float = Field(default=0.0, ge=0, le=1, description="Sales tax rate (0.0825 = 8.25%)")
    ORDER_NUMBER_PREFIX: str = "GRP"

    # JSON-like knobs from env; allow string or parsed object
    CARRIER_DEFAULTS: Optional[Any] = Field(
        default=None,
        description="JSON: {'FEDEX': {'markup_percentage': 10, 'enabled': true}, ...}",
    )

    @field_validator("CARRIER_DEFAULTS", mode="before")
    @classmethod
    def parse_json_string(cls, v):
        """Accept JSON string or already-parsed object."""
        if v is None or v == "":
            return None
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return None
        return v

    @property
    def custom_size_increment(self) -> Decimal:
        return Decimal(str(self.CUSTOM_SIZE_INCREMENT))

    @property
    def exception_paper_multiplier(self) -> Decimal:
        return Decimal(str(self.EXCEPTION_PAPER_DOUBLE_SIDED_MULTIPLIER))

    @property
    def tax_rate(self) -> Decimal:
        return Decimal(str(self.TAX_RATE))

    @property
    def carrier_defaults(self) -> Dict[str, Dict[str, Any]]:
        if self.CARRIER_DEFAULTS and isinstance(self.CARRIER_DEFAULTS, dict):
            return self.CARRIER_DEFAULTS  # type: ignore[return-value]
        return {
            "FEDEX": {"markup_percentage": 0, "enabled": True, "service_area": []},
            "UPS": {"markup_percentage": 0, "enabled": True, "service_area": []},
            "SOUTHWEST_CARGO": {"markup_percentage": 0, "enabled": False, "service_area": []},
        }

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Singleton settings loader (cached)."""
    return Settings()


# Convenience alias
settings = get_settings()
