"""
Configuration settings for the Prototype Engine
"""
import os
import logging
from typing import Optional
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()

# Configure basic logger for config module
logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings"""

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # API Keys
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", os.getenv("API_KEY", ""))

    # Gemini Models
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-pro")

    # Generation Settings
    TEMPERATURE: float = 0.4
    TOP_P: float = 0.95
    TOP_K: int = 40

    # Storage - redis, file or memory
    STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "redis")
    STORAGE_FILE: str = os.getenv("STORAGE_FILE", "run/storage.json")
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    REDIS_ENABLED: bool = True

    PROJECTS_STORAGE_KEY: str = "big-elephant-projects"
    IMAGE_CACHE_KEY: str = "big-elephant-image-cache"
    IMAGE_CACHE_TTL: int = int(os.getenv("IMAGE_CACHE_TTL", "86400"))  # seconds

    # Image embedding
    IMAGE_FETCH_TIMEOUT: float = 30.0
    IMAGE_FALLBACK_URL: str = "https://via.placeholder.com/800x600.png?text=Image+Load+Error"

    # Themes
    DEFAULT_THEME: str = "Material Design"

    # Rate limits
    RATE_LIMIT_ENABLED: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
    GENERATION_RATE_LIMIT: str = os.getenv("GENERATION_RATE_LIMIT", "10/minute")
    CREATE_RATE_LIMIT: str = os.getenv("CREATE_RATE_LIMIT", "5/minute")

    # Monitoring
    SENTRY_DSN: Optional[str] = os.getenv("SENTRY_DSN")
    SENTRY_ENVIRONMENT: str = os.getenv("SENTRY_ENVIRONMENT", "development")
    SENTRY_TRACES_SAMPLE_RATE: float = float(
        os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1")
    )

    # CORS - comma-separated list of allowed origins
    CORS_ORIGINS: str = os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173"
    )

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()


def get_redis_client():
    """Get Redis client with error handling"""
    if not settings.REDIS_ENABLED:
        return None

    try:
        import redis
        client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2
        )
        # Test connection
        client.ping()
        return client
    except Exception as e:
        logger.warning(f"Redis connection failed: {e}. Falling back to file storage.")
        settings.REDIS_ENABLED = False
        return None


def validate_required_config():
    """Validate required configuration on startup"""
    errors = []

    if not settings.GEMINI_API_KEY:
        errors.append("GEMINI_API_KEY must be configured")

    if settings.STORAGE_BACKEND not in ("redis", "file", "memory"):
        errors.append(f"Unknown STORAGE_BACKEND: {settings.STORAGE_BACKEND}")

    if errors:
        for error in errors:
            logger.error(f"Configuration error: {error}")
        if settings.ENVIRONMENT == "production":
            raise ValueError(f"Missing required configuration: {', '.join(errors)}")

    return len(errors) == 0
