# controller-ui/config.py
"""
Application Configuration
Uses pydantic-settings for environment variable management
"""

from pathlib import Path
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables
    Create a .env file for local development
    """

    # === Application ===
    APP_NAME: str = "Network Controller UI"
    APP_VERSION: str = "1.0.0"
    ENV: str = "development"  # development, staging, production
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # === API ===
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 3000
    API_PREFIX: str = "/api/v1"

    # CORS
    CORS_ORIGINS: List[str] = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True

    # === Annotation store ===
    DATABASE_URL: str = "sqlite:///./annotations.db"
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    # === Security ===
    ADMIN_SECRET: str = "change-me-admin-secret"

    # === Network controller ===
    CONTROLLER_URL: str = "http://127.0.0.1:9993"
    CONTROLLER_TOKEN: Optional[str] = None
    # Read when CONTROLLER_TOKEN is unset
    CONTROLLER_TOKEN_FILE: str = "/var/lib/zerotier-one/authtoken.secret"
    CONTROLLER_TIMEOUT: float = 10.0  # seconds

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.ENV.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.ENV.lower() == "development"

    def controller_token(self) -> Optional[str]:
        """
        Resolve the controller API token

        An explicit CONTROLLER_TOKEN wins; otherwise the controller's
        authtoken file is read. Returns None when neither is available.
        """
        if self.CONTROLLER_TOKEN:
            return self.CONTROLLER_TOKEN.strip()

        token_path = Path(self.CONTROLLER_TOKEN_FILE)
        try:
            return token_path.read_text(encoding="utf-8").strip() or None
        except OSError:
            return None


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings instance
    Use this to get settings throughout the application
    """
    return Settings()


# Singleton instance for backward compatibility
settings = get_settings()
