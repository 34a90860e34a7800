from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Eventbrite settings
    # Personal OAuth token, see "Authenticating Your Access to the Eventbrite API"
    EVENTBRITE_API_TOKEN: str | None = None
    EVENTBRITE_API_BASE_URL: str = "https://www.eventbriteapi.com/v3"
    EVENTBRITE_REQUEST_TIMEOUT: float = 30.0

    # CRM database settings
    CRM_DB_URL: str = "postgresql://localhost:5432/crm"

    # Redis settings (per-attendee lock; unset disables locking)
    REDIS_URL: str | None = None
    ATTENDEE_LOCK_TTL_S: int = 300

    # Source tag written on contacts and participants we create
    CONTACT_SOURCE_LABEL: str = "Eventbrite Integration"

    # =================================================================
    # DATABASE POOL SETTINGS
    # =================================================================
    DB_POOL_MIN_SIZE: int = 1
    DB_POOL_MAX_SIZE: int = 4
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def lock_enabled(self) -> bool:
        """Per-attendee locking needs a Redis server."""
        return bool(self.REDIS_URL)

    def get_db_pool_config(self) -> dict:
        """
        Get database pool configuration.
        Adjust environment-specific settings based on self.environment.
        """
        config = {
            "min_size": self.DB_POOL_MIN_SIZE,
            "max_size": self.DB_POOL_MAX_SIZE,
            "timeout": self.DB_POOL_TIMEOUT,
            "max_idle": self.DB_POOL_MAX_IDLE,
            "max_lifetime": self.DB_POOL_MAX_LIFETIME,
        }

        if self.environment == "development":
            # A single worker process never needs more than a couple
            config.update(
                {
                    "min_size": 1,
                    "max_size": 2,
                    "timeout": 15.0,
                }
            )

        return config


settings = Settings()
