"""
Configuration settings for the HLS downloader.
"""

import os

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Configuration class for downloader settings."""

    # Output Configuration
    DEFAULT_OUTPUT: str = os.getenv("DEFAULT_OUTPUT", "./output")
    DEFAULT_THREADS: int = int(os.getenv("DEFAULT_THREADS", "3"))
    MAX_THREADS: int = 255

    # File Processing Configuration
    CHUNK_SIZE: int = int(os.getenv("CHUNK_SIZE", "1048576"))  # 1MB

    # Logging Configuration
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Timeouts (in seconds)
    INDEX_TIMEOUT: int = int(os.getenv("INDEX_TIMEOUT", "30"))
    SEGMENT_TIMEOUT: int = int(os.getenv("SEGMENT_TIMEOUT", "30"))
    DOWNLOAD_DEADLINE: int = int(os.getenv("DOWNLOAD_DEADLINE", "0"))  # 0 disables

    # Retry Configuration
    SEGMENT_RETRIES: int = int(os.getenv("SEGMENT_RETRIES", "-1"))  # negative retries forever
    RETRY_BACKOFF: float = float(os.getenv("RETRY_BACKOFF", "0.5"))
    RETRY_BACKOFF_MAX: float = float(os.getenv("RETRY_BACKOFF_MAX", "30"))
    RETRY_BODY_ERRORS: bool = _env_bool("RETRY_BODY_ERRORS", "false")
    FAIL_ON_MISSING: bool = _env_bool("FAIL_ON_MISSING", "false")

    @classmethod
    def validate(cls) -> bool:
        """Validate configuration parameters."""
        errors = []

        if not 1 <= cls.DEFAULT_THREADS <= cls.MAX_THREADS:
            errors.append(f"DEFAULT_THREADS must be between 1 and {cls.MAX_THREADS}")
        if cls.CHUNK_SIZE <= 0:
            errors.append("CHUNK_SIZE must be positive")
        for field in ('INDEX_TIMEOUT', 'SEGMENT_TIMEOUT'):
            if getattr(cls, field) <= 0:
                errors.append(f"{field} must be positive")
        if cls.DOWNLOAD_DEADLINE < 0:
            errors.append("DOWNLOAD_DEADLINE must not be negative")
        if cls.RETRY_BACKOFF < 0 or cls.RETRY_BACKOFF_MAX < 0:
            errors.append("RETRY_BACKOFF values must not be negative")

        if errors:
            raise ValueError(f"Invalid configuration: {'; '.join(errors)}")

        return True
