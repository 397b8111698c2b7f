"""Application configuration settings"""

import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    # Runtime
    TESTING = os.getenv("TESTING", "false").lower() in {"1", "true", "yes", "on"}
    DEBUG = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes", "on"}

    # Thread resolution
    # Single bounded wait before re-fetching a conversation id that was not found
    RESOLVE_RETRY_DELAY_MS: int = int(os.getenv("RESOLVE_RETRY_DELAY_MS", "200"))
    RESOLVE_RETRY_DELAY_SECONDS: float = RESOLVE_RETRY_DELAY_MS / 1000.0

    # Navigation
    MESSAGES_PATH_PREFIX: str = os.getenv("MESSAGES_PATH_PREFIX", "/messages")
    SUPPORTED_LOCALES = os.getenv("SUPPORTED_LOCALES", "ja,en").split(",")
    DEFAULT_LOCALE: str = os.getenv("DEFAULT_LOCALE", "ja")

    # Auth
    SERVICE_AUTH_SECRET = os.getenv("SERVICE_AUTH_SECRET", "")
    SERVICE_AUTH_ISSUER = os.getenv("SERVICE_AUTH_ISSUER", "appexit-backend")
    SERVICE_AUTH_AUDIENCE = os.getenv("SERVICE_AUTH_AUDIENCE", "appexit-messages")

    # Thread API client (used by the messaging surfaces)
    API_BASE_URL: str = os.getenv("API_BASE_URL", "http://localhost:8080")
    API_TIMEOUT: float = float(os.getenv("API_TIMEOUT", "10"))

    # Redis settings
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    THREAD_EVENTS_CHANNEL: str = os.getenv("THREAD_EVENTS_CHANNEL", "dm:thread-events")
    THREAD_EVENTS_RELAY_ENABLED = os.getenv(
        "THREAD_EVENTS_RELAY_ENABLED", "true"
    ).lower() in {"1", "true", "yes", "on"}

    # Postgresql Database settings
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")
    CONVERSATION_MESSAGE_LIMIT: int = int(
        os.getenv("CONVERSATION_MESSAGE_LIMIT", "200")
    )
    CONVERSATION_USER_LIMIT: int = int(os.getenv("CONVERSATION_USER_LIMIT", "50"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_PATH: str | None = os.getenv("LOG_PATH") or None
    LOG_FORMAT: str = os.getenv(
        "LOG_FORMAT",
        "%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s",
    )


class DevelopmentConfig(Config):
    """Development configuration"""

    DEBUG = True


class TestingConfig(Config):
    """Testing configuration"""

    TESTING = True


class ProductionConfig(Config):
    """Production configuration"""

    pass


# Configuration dictionary
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}


def get_config(env=None):
    """Get configuration based on environment"""
    if env is None:
        env = os.getenv("APP_ENV", "development")
    return config.get(env, config["default"])
