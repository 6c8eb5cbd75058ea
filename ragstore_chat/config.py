# ragstore_chat/config.py
"""
Centralized configuration module.

Loads environment variables and provides configuration settings
for the application.
"""

# imports built-in modules
import logging
import os
import sys
from typing import List, Optional

# imports third-party modules
from dotenv import load_dotenv

# Use basic logger here to avoid circular import with ragstore_chat.utils.logger
logger = logging.getLogger(__name__)

# Load environment variables from .env file
load_dotenv()


def _split_extensions(raw: str) -> List[str]:
    """Normalize a comma separated extension list to lower-case ``.ext`` form."""
    extensions = []
    for item in raw.split(","):
        item = item.strip().lower()
        if not item:
            continue
        if not item.startswith("."):
            item = f".{item}"
        extensions.append(item)
    return extensions


class Config:
    """Application configuration loaded from environment variables."""

    # Google Gemini API
    GOOGLE_API_KEY: Optional[str] = os.getenv("GOOGLE_API_KEY")

    # Gemini Model Configuration
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

    # Remote listing
    STORE_PAGE_SIZE: int = int(os.getenv("STORE_PAGE_SIZE", "100"))
    DOCUMENT_PAGE_SIZE: int = int(os.getenv("DOCUMENT_PAGE_SIZE", "100"))

    # Long-running operations
    OPERATION_POLL_INTERVAL: float = float(os.getenv("OPERATION_POLL_INTERVAL", "3"))
    REGISTER_PAUSE: float = float(os.getenv("REGISTER_PAUSE", "0.8"))

    # File Upload
    MAX_FILE_SIZE_MB: int = int(os.getenv("MAX_FILE_SIZE_MB", "20"))
    UPLOAD_TIMEOUT: int = int(os.getenv("UPLOAD_TIMEOUT", "180"))
    ALLOWED_EXTENSIONS: List[str] = _split_extensions(
        os.getenv("ALLOWED_EXTENSIONS", ".pdf,.txt,.md")
    )

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    GATEWAY_LOG_LEVEL: str = os.getenv("GATEWAY_LOG_LEVEL", LOG_LEVEL)
    SESSION_LOG_LEVEL: str = os.getenv("SESSION_LOG_LEVEL", LOG_LEVEL)

    # Paths
    LOGS_DIR: str = os.getenv("LOGS_DIR", "logs")
    SAMPLES_DIR: str = os.getenv("SAMPLES_DIR", "samples")

    @classmethod
    def validate(cls) -> bool:
        """Validate configuration values.

        A missing ``GOOGLE_API_KEY`` is not an error: the credential gate
        reports it as "no credential selected" and the user can supply one
        at runtime.

        Returns
        -------
        bool
            True if the configuration is usable.
        """
        errors = []

        if not cls.GOOGLE_API_KEY:
            logger.warning("⚠️ GOOGLE_API_KEY not set, a key must be selected at runtime")

        if cls.OPERATION_POLL_INTERVAL < 0:
            errors.append("OPERATION_POLL_INTERVAL must not be negative")

        if cls.STORE_PAGE_SIZE <= 0 or cls.DOCUMENT_PAGE_SIZE <= 0:
            errors.append("STORE_PAGE_SIZE and DOCUMENT_PAGE_SIZE must be positive")

        if not cls.ALLOWED_EXTENSIONS:
            errors.append("ALLOWED_EXTENSIONS must list at least one extension")

        if errors:
            for error in errors:
                logger.error(f"❌ Configuration Error: {error}")
            return False

        return True

    @classmethod
    def validate_or_exit(cls) -> None:
        """Validate configuration and exit if invalid."""
        if not cls.validate():
            sys.exit(1)


# Create a singleton instance for easy access
config = Config()
