"""
Application configuration.

All configuration is loaded from environment variables.
Never hardcode secrets or connection strings in code.
"""

import os
from functools import lru_cache

from dotenv import load_dotenv

# Load .env file into environment variables
load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Top-up Storefront"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))

    # Database
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "postgresql://localhost:5432/topup_store"
    )
    ATOMIC_MAX_RETRIES: int = int(os.getenv("ATOMIC_MAX_RETRIES", "2"))

    # Identity
    JWT_SECRET: str = os.getenv("JWT_SECRET", "dev-secret-change-me-before-deploying")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    ADMIN_USER_IDS: frozenset[str] = frozenset(
        uid.strip()
        for uid in os.getenv("ADMIN_USER_IDS", "").split(",")
        if uid.strip()
    )

    # Orders
    GIFT_EXPIRATION_HOURS: int = int(os.getenv("GIFT_EXPIRATION_HOURS", "72"))
    MAX_ORDER_QUANTITY: int = int(os.getenv("MAX_ORDER_QUANTITY", "5"))
    MAX_PRODUCT_PRICE: int = int(os.getenv("MAX_PRODUCT_PRICE", "500000"))

    # Username lookup proxy
    USERNAME_LOOKUP_URL: str = os.getenv(
        "USERNAME_LOOKUP_URL",
        "https://order-sg.codashop.com/validate"
    )
    USERNAME_LOOKUP_TIMEOUT: float = float(
        os.getenv("USERNAME_LOOKUP_TIMEOUT", "10")
    )
    USERNAME_CACHE_TTL_SECONDS: int = int(
        os.getenv("USERNAME_CACHE_TTL_SECONDS", "86400")
    )
    USERNAME_CACHE_MAX_ENTRIES: int = int(
        os.getenv("USERNAME_CACHE_MAX_ENTRIES", "10000")
    )

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")


@lru_cache()
def get_settings() -> Settings:
    """
    Return cached settings instance.

    The Settings object is created once and reused for all
    subsequent calls.
    """
    return Settings()
