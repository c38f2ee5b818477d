"""
Control panel configuration and settings management.
"""
import os

from finder.pricing import DEFAULT_REPAIR_COST
from finder.utils import user_data_dir


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


class Config:
    """Application configuration."""

    # Storage
    DATA_DIR: str = os.getenv("MPF_DATA_DIR", user_data_dir())
    COOKIES_PATH: str = os.getenv("MPF_COOKIES", "cookies.json")
    PROFILE_DIR: str = os.getenv("MPF_PROFILE_DIR", "")

    # Server
    HOST: str = os.getenv("HOST", "127.0.0.1")
    PORT: int = int(os.getenv("PORT", "8020"))

    # API settings
    API_TITLE: str = "Marketplace Finder"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Local control panel for the marketplace deal finder"

    # CORS settings
    CORS_ORIGINS: list = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: list = ["*"]
    CORS_ALLOW_HEADERS: list = ["*"]

    # Scraping
    HEADLESS: bool = _env_bool("HEADLESS", "true")
    REPAIR_COST: float = float(os.getenv("REPAIR_COST", str(DEFAULT_REPAIR_COST)))
    LOGIN_TIMEOUT: float = float(os.getenv("LOGIN_TIMEOUT", "1200"))

    # Server-sent events
    KEEPALIVE_SECONDS: float = 30.0

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE: str = os.getenv("LOG_FILE_PATH", "panel.log")

    def profile_dir(self) -> str:
        """Persistent browser profile shared by the login window and scrapes."""
        return self.PROFILE_DIR or os.path.join(self.DATA_DIR, "browser-data")

    def validate(self) -> None:
        """Validate configuration on startup."""
        os.makedirs(self.DATA_DIR, exist_ok=True)
        if self.REPAIR_COST < 0:
            raise ValueError(f"REPAIR_COST must not be negative: {self.REPAIR_COST}")

# Global config instance
config = Config()
