"""SSH host key verification.

Resolves which known_hosts file asyncssh should check server keys against.
"""

import logging
import os
from pathlib import Path

from herd.exceptions import ConfigError

logger = logging.getLogger(__name__)


class HostKeyVerifier:
    """SSH host key verification manager.

    Handles known_hosts configuration for MITM prevention.
    """

    def __init__(
        self,
        known_hosts_path: str | None = None,
        strict_checking: bool = True,
    ):
        """Initialize host key verifier.

        Args:
            known_hosts_path: Path to known_hosts file or 'none' to disable
            strict_checking: Fail when the known_hosts file is missing

        Raises:
            ConfigError: If strict mode and file missing
        """
        self.strict_checking = strict_checking
        self._known_hosts = self._resolve_known_hosts(known_hosts_path)

    def _resolve_known_hosts(self, value: str | None) -> str | None:
        """Resolve known_hosts path.

        Returns:
            Path to known_hosts file or None to disable verification

        Raises:
            ConfigError: If strict mode and file missing
        """
        # Explicit disable
        if value and value.lower() == "none":
            logger.warning(
                "SSH host key verification disabled; only use this on trusted networks"
            )
            return None

        path = (
            Path(os.path.expanduser(value))
            if value
            else Path.home() / ".ssh" / "known_hosts"
        )
        if path.exists():
            return str(path)

        if self.strict_checking:
            raise ConfigError(
                f"SSH host key verification required but known_hosts file "
                f"not found: {path}\n"
                f"Add host keys with: ssh-keyscan <hostname> >> {path}"
            )
        logger.warning(
            "known_hosts not found at %s, host key verification disabled", path
        )
        return None

    def get_known_hosts_path(self) -> str | None:
        """Get path to known_hosts file.

        Returns:
            Path string or None if verification disabled
        """
        return self._known_hosts

    def is_enabled(self) -> bool:
        return self._known_hosts is not None
