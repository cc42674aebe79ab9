"""Application Settings - Central Configuration"""
from datetime import date
from functools import lru_cache
from typing import List
from dateutil import parser as date_parser
from pydantic_settings import BaseSettings, SettingsConfigDict


# Colombian public holidays carried over from the legacy help desk.
# Deployments are expected to override TICKETFLOW_HOLIDAYS every year.
DEFAULT_HOLIDAYS = ",".join([
    "2025-01-01", "2025-01-06", "2025-03-24", "2025-04-17", "2025-04-18",
    "2025-05-01", "2025-06-02", "2025-06-23", "2025-06-30", "2025-07-20",
    "2025-08-07", "2025-08-18", "2025-10-13", "2025-11-03", "2025-11-17",
    "2025-12-08", "2025-12-25",
])


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_prefix="TICKETFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # MongoDB
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "ticketflow_dev"
    mongo_timeout_ms: int = 5000

    # Auth (tokens are issued by the external auth service)
    jwt_secret: str = "change-me-in-production-please-32b"
    jwt_algorithm: str = "HS256"

    # Business calendar
    holidays: str = DEFAULT_HOLIDAYS

    # Permission cache
    permission_cache_preload: bool = True

    # Logging
    logs_path: str = "./logs"
    log_level: str = "INFO"

    # CORS - set to "*" to allow all origins
    cors_origins: str = "*"

    # Environment
    environment: str = "development"
    debug: bool = True

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins string to list"""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def holidays_list(self) -> List[date]:
        """Parse holiday string to a list of dates"""
        return [
            date_parser.isoparse(value.strip()).date()
            for value in self.holidays.split(",")
            if value.strip()
        ]

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.environment.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
