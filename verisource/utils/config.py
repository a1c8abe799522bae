"""
Configuration Management

Uses Pydantic Settings for environment-based configuration.
Loads from .env file automatically.
"""

from typing import List, Optional
from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Application Settings
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Detection engine (external)
    DETECTION_ENGINE_URL: str = "http://localhost:9000/v1/analyze"
    DETECTION_ENGINE_API_KEY: Optional[str] = None
    DETECTION_ENGINE_TIMEOUT: float = 60.0

    # HTTP surface
    CORS_ALLOW_ORIGINS: str = "*"
    EXPOSE_ERROR_DETAILS: Optional[bool] = None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra fields in .env file
        case_sensitive = False  # Allow both UPPERCASE and lowercase

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def expose_error_details(self) -> bool:
        """Error details are shown to callers everywhere except production, unless overridden."""
        if self.EXPOSE_ERROR_DETAILS is not None:
            return self.EXPOSE_ERROR_DETAILS
        return not self.is_production

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ALLOW_ORIGINS.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get or create cached settings instance."""
    return Settings()
