"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from decimal import Decimal, InvalidOperation

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    log_file: str | None = Field(
        default="logs/commission_engine.log",
        description="Rotating log file path (empty to disable file logging)",
    )

    # Commission pool
    commission_total_pool: Decimal = Field(
        default=Decimal("800"),
        gt=0,
        description="Fixed commission pool distributed per onboarding event",
    )
    commission_level_amounts: str = Field(
        default="500,100,100,100",
        description="Comma-separated amount per hierarchy level, level 1 first",
    )
    commission_max_levels: int = Field(
        default=4,
        ge=1,
        le=10,
        description="Hard cap on hierarchy hops walked per distribution",
    )
    commission_procedure_name: str = Field(
        default="distribute_affiliate_commission",
        pattern=r"^[a-z_][a-z0-9_]*$",
        description="Stored procedure implementing the atomic distribution",
    )
    commission_fallback_enabled: bool = Field(
        default=True,
        description=(
            "Allow the non-atomic fallback path when the stored procedure "
            "is unreachable"
        ),
    )

    # Pins
    pin_request_max_quantity: int = Field(
        default=1000,
        gt=0,
        description="Maximum pins a promoter may request at once",
    )

    # Redis (commission summary cache)
    redis_host: str | None = None
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0
    wallet_cache_ttl_seconds: int = Field(
        default=300,
        ge=0,
        description="TTL of cached commission summaries (0 disables caching)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("commission_level_amounts")
    @classmethod
    def validate_level_amounts(cls, v: str) -> str:
        """Validate every level amount parses as a positive decimal."""
        parts = [p.strip() for p in v.split(",") if p.strip()]
        if not parts:
            raise ValueError("COMMISSION_LEVEL_AMOUNTS must not be empty")
        for part in parts:
            try:
                amount = Decimal(part)
            except InvalidOperation as e:
                raise ValueError(
                    f"Invalid commission level amount: {part!r}"
                ) from e
            if amount <= 0:
                raise ValueError(
                    f"Commission level amounts must be positive, got {part}"
                )
        return ",".join(parts)

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(
            ("postgresql://", "postgresql+asyncpg://", "sqlite+aiosqlite://")
        ):
            raise ValueError(
                "DATABASE_URL must start with postgresql+asyncpg:// "
                "(or sqlite+aiosqlite:// for local testing)"
            )
        if v.startswith("postgresql://"):
            v = v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    @model_validator(mode="after")
    def validate_schedule(self) -> "Settings":
        """The level schedule must exactly exhaust the pool."""
        amounts = self.get_level_amounts()
        if len(amounts) != self.commission_max_levels:
            raise ValueError(
                f"COMMISSION_LEVEL_AMOUNTS defines {len(amounts)} levels but "
                f"COMMISSION_MAX_LEVELS is {self.commission_max_levels}"
            )
        if sum(amounts) != self.commission_total_pool:
            raise ValueError(
                f"Commission level amounts sum to {sum(amounts)}, "
                f"expected pool of {self.commission_total_pool}"
            )
        return self

    @model_validator(mode="after")
    def validate_production(self) -> "Settings":
        """Validate production-specific requirements."""
        if self.environment == "production":
            if self.debug:
                raise ValueError(
                    "DEBUG must be False in production environment. "
                    "Set DEBUG=false in your .env file."
                )
            if self.database_url.startswith("sqlite"):
                raise ValueError(
                    "SQLite cannot host the atomic distribution procedure; "
                    "use PostgreSQL in production."
                )
            if not self.commission_fallback_enabled:
                logger.warning(
                    "Commission fallback path disabled: distributions will "
                    "fail outright while the stored procedure is unreachable"
                )
        return self

    def get_level_amounts(self) -> list[Decimal]:
        """Parse the level schedule into decimals (level 1 first)."""
        return [
            Decimal(part.strip())
            for part in self.commission_level_amounts.split(",")
            if part.strip()
        ]

    @property
    def redis_enabled(self) -> bool:
        """Whether a Redis cache is configured."""
        return bool(self.redis_host) and self.wallet_cache_ttl_seconds > 0


# Global settings instance
settings = Settings()
