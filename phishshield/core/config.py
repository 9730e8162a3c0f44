"""
Configuration settings using Pydantic
Loads environment variables from .env file
"""

from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field

APP_VERSION = "1.0.0"

class Settings(BaseSettings):
    """Application settings"""

    # Server configuration
    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=8000, description="Server port")
    DEBUG: bool = Field(default=False, description="Debug mode")
    LOG_LEVEL: str = Field(default="info", description="Uvicorn log level")

    # Threat intelligence configuration
    THREAT_INTEL_CACHE_TTL_HOURS: int = Field(default=24, description="Domain/sender reputation cache time-to-live in hours")
    THREAT_INTEL_LOOKUP_TIMEOUT_SECONDS: float = Field(default=5.0, description="Timeout for a single reputation lookup")
    THREAT_INTEL_RANDOM_SEED: Optional[int] = Field(default=None, description="Seed for the mock reputation providers (optional)")

    # Indicator configuration
    INDICATOR_CONFIG_FILE: Optional[str] = Field(default=None, description="JSON file extending keyword families and the denylist")

    # Request limits
    MAX_CONTENT_LENGTH: int = Field(default=50000, description="Maximum characters accepted for a text scan")
    RATE_LIMIT_ENABLED: bool = Field(default=True, description="Enable per-IP rate limiting")
    SCAN_RATE_LIMIT: str = Field(default="30/minute", description="Rate limit for scan endpoints")

    # Scan history
    HISTORY_DEFAULT_DAYS: int = Field(default=30, description="Default window for message statistics")

    @property
    def SERVER_URL(self) -> str:
        """Get the server URL"""
        return f"http://{self.HOST if self.HOST != '0.0.0.0' else 'localhost'}:{self.PORT}"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env file


# Global settings instance
settings = Settings()
