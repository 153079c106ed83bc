import logging
from logging.config import dictConfig
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Application
    ENVIRONMENT: str = "local"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./queueup.db"

    # Redis
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: str = ""

    # JWT (tokens are minted by the chat adapter)
    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"

    # Rate limiting
    RATE_LIMIT_REQUESTS: int = 100
    RATE_LIMIT_WINDOW: int = 60

    # Session defaults, overridable per tenant
    PER_ROLE_CAPACITY: int = 2
    VOTE_THRESHOLD: int = 6
    MEMBER_WAIT_TIMEOUT: float = 300.0
    CAPTAIN_VOTE_TIMEOUT: float = 60.0
    DRAFT_TURN_TIMEOUT: float = 30.0
    RESULT_VOTE_TIMEOUT: float = 7200.0
    ROLE_PICK_TIMEOUT: float = 30.0
    PRESENCE_DEBOUNCE: float = 1.5
    ACK_TTL_SHORT: float = 2.0
    ACK_TTL_MEDIUM: float = 5.0
    CLEANUP_DELAY: float = 10.0
    ROOM_RETRY_ATTEMPTS: int = 3
    ROOM_RETRY_BASE_DELAY: float = 0.5

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/app.log"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def REDIS_URL(self) -> str:
        auth = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
        return f"redis://{auth}{self.REDIS_HOST}:{self.REDIS_PORT}/0"


Config = Settings()

# Ensure logs directory exists
log_dir = Path(Config.LOG_FILE).parent
log_dir.mkdir(parents=True, exist_ok=True)


def configure_logging():
    """Configure logging for the application."""
    component_logger = {
        "handlers": ["console", "file"],
        "level": Config.LOG_LEVEL,
        "propagate": False,
    }
    log_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            },
            "detailed": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(module)s - %(funcName)s - %(lineno)d - %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "level": Config.LOG_LEVEL,
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "detailed",
                "filename": Config.LOG_FILE,
                "maxBytes": 10485760,  # 10MB
                "backupCount": 5,
                "level": Config.LOG_LEVEL,
            },
        },
        "loggers": {
            "app": component_logger,
            "sqlalchemy.engine": {
                "handlers": ["console", "file"],
                "level": "WARNING",
                "propagate": False,
            },
        },
        "root": {
            "handlers": ["console", "file"],
            "level": Config.LOG_LEVEL,
        },
    }
    dictConfig(log_config)
    return logging.getLogger("app")


# Initialize logger
logger = configure_logging()
