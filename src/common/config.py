"""
Configuration loader for the intent signal pipeline.

Loads credentials and connection settings from environment variables (.env file).
Validates required settings per batch job and provides type-safe access.
Run parameters (keywords, delays, policies) live in src.common.intent_config.
"""

import os
from typing import Dict, List

from dotenv import load_dotenv

# Load environment variables from .env / .env.local
load_dotenv()
load_dotenv(".env.local")


class Config:
    """
    Centralized credentials for all pipeline components.

    All values loaded from environment variables - NO SECRETS IN CODE.
    """

    # ===== MongoDB =====
    MONGODB_URI: str = os.getenv("MONGODB_URI", "")
    MONGODB_DATABASE: str = os.getenv("MONGODB_DATABASE", "company_intel")

    # ===== Web Search =====
    SERPER_API_KEY: str = os.getenv("SERPER_API_KEY", "")

    # ===== Logging =====
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "simple")

    # Required settings per batch job
    _REQUIRED: Dict[str, List[str]] = {
        "crawl": ["MONGODB_URI"],
        "fetch": ["MONGODB_URI", "SERPER_API_KEY"],
        "maintenance": ["MONGODB_URI"],
    }

    @classmethod
    def reload(cls) -> None:
        """Re-read settings from the current environment."""
        cls.MONGODB_URI = os.getenv("MONGODB_URI", "")
        cls.MONGODB_DATABASE = os.getenv("MONGODB_DATABASE", "company_intel")
        cls.SERPER_API_KEY = os.getenv("SERPER_API_KEY", "")
        cls.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
        cls.LOG_FORMAT = os.getenv("LOG_FORMAT", "simple")

    @classmethod
    def validate_for(cls, job: str) -> None:
        """
        Validate that the settings required by a batch job are present.

        Args:
            job: One of "crawl", "fetch", "maintenance"

        Raises:
            ValueError: If critical settings are missing or the job is unknown
        """
        if job not in cls._REQUIRED:
            raise ValueError(f"Unknown job '{job}'. Expected one of: {', '.join(cls._REQUIRED)}")

        missing = [name for name in cls._REQUIRED[job] if not getattr(cls, name)]
        if missing:
            raise ValueError(
                f"Missing required configuration: {', '.join(missing)}. "
                f"Please check your .env file."
            )

    @classmethod
    def summary(cls) -> str:
        """Return a summary of the current configuration (safe for logging)."""
        return f"""
Configuration Summary:
  MongoDB: {'✓ Configured' if cls.MONGODB_URI else '✗ Missing'} (db={cls.MONGODB_DATABASE})
  Serper: {'✓ Configured' if cls.SERPER_API_KEY else '✗ Missing'}
  Logging: {cls.LOG_LEVEL} ({cls.LOG_FORMAT})
        """.strip()
