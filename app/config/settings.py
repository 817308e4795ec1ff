"""Application settings and configuration."""

from enum import Enum
from typing import List, Optional, Tuple

from pydantic_settings import BaseSettings
from pydantic import Field, field_validator


class Environment(str, Enum):
    """Environment types for deployment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Application settings."""

    # Environment
    ENVIRONMENT: Environment = Environment.DEVELOPMENT

    # Application
    APP_NAME: str = "content-intake"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # Redis - direct connection
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379

    # Redis - sentinel discovery (comma separated host:port list)
    REDIS_SENTINEL_HOSTS: str = ""
    REDIS_MASTER_NAME: str = "mymaster"

    # Redis - credentials and transport
    REDIS_USERNAME: Optional[str] = None
    REDIS_PASSWORD: Optional[str] = None
    REDIS_TLS_ENABLED: bool = False
    REDIS_SOCKET_TIMEOUT: float = 2.0

    # Reconnect backoff: delay = min(attempt * base, max)
    REDIS_RETRY_BASE_DELAY: float = 0.05
    REDIS_RETRY_MAX_DELAY: float = 2.0

    # Cache TTLs (seconds)
    ANALYSIS_CACHE_TTL: int = 60
    REDIRECT_CACHE_TTL: int = 86400  # 24 hours

    # Redirect resolution
    REDIRECT_MAX_HOPS: int = 10
    REDIRECT_TIMEOUT_MS: int = 2000
    REDIRECT_USER_AGENT: str = (
        "Mozilla/5.0 (compatible; ContentIntakeBot/1.0; +https://intake.example.com/bot)"
    )

    # Extraction
    PHONE_DEFAULT_REGION: str = "BE"
    MAX_CONTENT_LENGTH: int = 2000

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Optional[str] = Field(
        default=None,
        description="console or json; defaults to console in development"
    )
    LOG_FILE_PATH: Optional[str] = None

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalise and validate the log level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported LOG_LEVEL: {v}")
        return level

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        fmt = v.lower()
        if fmt not in {"console", "json"}:
            raise ValueError("LOG_FORMAT must be 'console' or 'json'")
        return fmt

    @field_validator("REDIS_SENTINEL_HOSTS")
    @classmethod
    def validate_sentinel_hosts(cls, v: str) -> str:
        """Each sentinel entry must look like host:port."""
        for entry in filter(None, (part.strip() for part in v.split(","))):
            host, _, port = entry.rpartition(":")
            if not host or not port.isdigit():
                raise ValueError(f"Invalid sentinel address '{entry}', expected host:port")
        return v

    def is_production(self) -> bool:
        """Check if running in production."""
        return self.ENVIRONMENT == Environment.PRODUCTION

    def is_development(self) -> bool:
        """Check if running in development."""
        return self.ENVIRONMENT == Environment.DEVELOPMENT

    @property
    def sentinel_hosts(self) -> List[Tuple[str, int]]:
        """Parsed sentinel discovery endpoints, empty in direct mode."""
        hosts = []
        for entry in filter(None, (part.strip() for part in self.REDIS_SENTINEL_HOSTS.split(","))):
            host, _, port = entry.rpartition(":")
            hosts.append((host, int(port)))
        return hosts

    @property
    def log_format(self) -> str:
        if self.LOG_FORMAT:
            return self.LOG_FORMAT
        return "console" if self.is_development() else "json"

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "extra": "ignore"  # Ignore extra environment variables
    }


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings
