"""Application settings from environment variables.

Centralized environment variable parsing and validation. Command-line
flags take precedence over these values.
"""

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """Run defaults from environment.

    Handles parsing, validation, and defaults for all HERD_* env vars.
    """

    # Dispatch
    concurrency: int = field(default=10)
    retries: int = field(default=0)
    retry_delay: float = field(default=0.0)

    # Timeouts (seconds)
    timeout: float = field(default=30.0)
    connect_timeout: float | None = field(default=None)

    # SSH
    user: str = field(default="root")
    known_hosts: str | None = field(default=None)
    strict_host_key_checking: bool = field(default=False)

    # Logging
    log_level: str = field(default="WARNING")
    log_colors: bool = field(default=True)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables.

        Returns:
            Settings instance with values from environment
        """
        timeout = cls._get_float("HERD_TIMEOUT", 30.0)
        connect_timeout = cls._get_float("HERD_CONNECT_TIMEOUT", 0.0)
        return cls(
            concurrency=cls._get_int("HERD_CONCURRENCY", 10),
            retries=cls._get_int("HERD_RETRIES", 0),
            retry_delay=cls._get_float("HERD_RETRY_DELAY", 0.0),
            timeout=timeout,
            connect_timeout=connect_timeout or None,
            user=os.getenv("HERD_USER", "root"),
            known_hosts=os.getenv("HERD_KNOWN_HOSTS") or None,
            strict_host_key_checking=cls._get_bool(
                "HERD_STRICT_HOST_KEY_CHECKING", False
            ),
            log_level=os.getenv("HERD_LOG_LEVEL", "WARNING").upper(),
            log_colors=cls._get_bool("HERD_LOG_COLORS", True),
        )

    @staticmethod
    def _get_int(key: str, default: int) -> int:
        """Get integer from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Integer value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid int for %s: %s, using default %d", key, value, default)
            return default

    @staticmethod
    def _get_float(key: str, default: float) -> float:
        """Get float from environment, falling back on invalid values."""
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return float(value)
        except ValueError:
            logger.warning("Invalid number for %s: %s, using default %s", key, value, default)
            return default

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        """Get boolean from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Boolean value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("1", "true", "yes", "on")
