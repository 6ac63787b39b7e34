"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from urllib.parse import unquote, urlparse

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from nearme.config.business_constants import (
    EXPIRY_BATCH_SIZE,
    EXPIRY_SWEEP_INTERVAL_SECONDS,
    PAYMENT_REQUEST_TTL_SECONDS,
)
from nearme.config.constants import (
    COMMIT_MAX_ATTEMPTS,
    DEFAULT_COMMITMENT,
    DEVNET_RPC_URL,
    LEDGER_MAX_RETRIES,
    LEDGER_RETRY_BACKOFF_BASE,
    LEDGER_TIMEOUT,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Solana ledger
    solana_rpc_url: str = DEVNET_RPC_URL
    solana_commitment: str = DEFAULT_COMMITMENT
    ledger_timeout_seconds: float = Field(
        default=LEDGER_TIMEOUT, gt=0, description="Per-attempt ledger lookup timeout"
    )
    ledger_max_retries: int = Field(
        default=LEDGER_MAX_RETRIES, ge=1, le=10, description="Ledger lookup attempts"
    )
    ledger_retry_backoff_base: float = Field(
        default=LEDGER_RETRY_BACKOFF_BASE,
        ge=0,
        description="Base delay in seconds for exponential backoff between lookups",
    )

    # Payment requests
    payment_request_ttl_seconds: int = Field(
        default=PAYMENT_REQUEST_TTL_SECONDS, gt=0, description="Payment request lifetime"
    )
    commit_max_attempts: int = Field(
        default=COMMIT_MAX_ATTEMPTS, ge=1, description="Settlement commit attempts on store conflicts"
    )

    # Expiry sweep
    expiry_sweep_interval_seconds: int = Field(
        default=EXPIRY_SWEEP_INTERVAL_SECONDS, ge=1, description="Expiry sweep cadence"
    )
    expiry_batch_size: int = Field(
        default=EXPIRY_BATCH_SIZE, ge=1, le=1000, description="Max requests expired per sweep"
    )

    # Redis (Dramatiq broker)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    api_host: str = "0.0.0.0"
    api_port: int = Field(default=8080, ge=1, le=65535, description="Payments API port")
    health_check_port: int = Field(
        default=8081, ge=1, le=65535, description="Scheduler health check HTTP server port"
    )
    caller_identity_header: str = "X-Caller-Identity"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("solana_commitment")
    @classmethod
    def validate_commitment(cls, v: str) -> str:
        """Only commitments that getTransaction accepts."""
        if v not in ("confirmed", "finalized"):
            raise ValueError("SOLANA_COMMITMENT must be 'confirmed' or 'finalized'")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize log level name."""
        level = v.upper()
        if level not in ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown LOG_LEVEL: {v}")
        return level

    @model_validator(mode="after")
    def validate_production(self) -> "Settings":
        """Validate production-specific requirements."""
        if self.environment == "production":
            if self.debug:
                raise ValueError(
                    "DEBUG must be False in production environment. "
                    "Set DEBUG=false in your .env file."
                )

            if "devnet" in self.solana_rpc_url:
                logger.warning(
                    "SOLANA_RPC_URL points at devnet in production environment. "
                    "Settlements will be verified against devnet."
                )

            try:
                parsed = urlparse(self.database_url)
                if parsed.password:
                    password = unquote(parsed.password).lower()
                    username = unquote(parsed.username or "").lower()
                    if password in ("password", "changeme", "admin", "root"):
                        logger.warning(
                            f'DATABASE_URL uses insecure password "{password}". '
                            "Please change it in .env file for production security."
                        )
                    elif username and password == username:
                        logger.warning(
                            "DATABASE_URL password is the same as username. "
                            "Please change it in .env file for production security."
                        )
            except ValueError as e:
                logger.warning(
                    f"Could not parse DATABASE_URL for password validation: {e}. "
                    "Skipping insecure password check."
                )

        return self


settings = Settings()
