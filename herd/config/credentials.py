"""Credential assembly.

Builds the ordered authentication candidate list from command-line input.
"""

import logging
import os
from pathlib import Path

from herd.exceptions import ConfigError
from herd.models import AuthCandidate, Credentials

logger = logging.getLogger(__name__)

# Probed in order when no key file is given explicitly.
DEFAULT_KEY_NAMES = ("id_ed25519", "id_rsa", "id_ecdsa")


def find_default_key(ssh_dir: Path | None = None) -> Path | None:
    """Return the first existing default private key, if any."""
    ssh_dir = ssh_dir or Path.home() / ".ssh"
    for name in DEFAULT_KEY_NAMES:
        candidate = ssh_dir / name
        if candidate.is_file():
            logger.debug("Using default key: %s", candidate)
            return candidate
    return None


def build_credentials(
    user: str,
    private_key: str | Path | None = None,
    password: str | None = None,
    use_agent: bool = True,
    ssh_dir: Path | None = None,
) -> Credentials:
    """Assemble credentials for a run.

    Key file, agent, and password candidates are all offered when
    available; the server sees them in that priority order.

    Args:
        user: Remote login name
        private_key: Explicit private key path (default keys probed if None)
        password: Password to fall back on
        use_agent: Offer ssh-agent identities when SSH_AUTH_SOCK is set
        ssh_dir: Directory probed for default keys (default ~/.ssh)

    Returns:
        Credentials with candidates in priority order

    Raises:
        ConfigError: If an explicit key file does not exist or user is empty
    """
    if not user:
        raise ConfigError("User must not be empty")

    candidates = []
    if private_key is not None:
        key_path = Path(private_key).expanduser()
        if not key_path.is_file():
            raise ConfigError(f"SSH key not found: {key_path}")
        candidates.append(AuthCandidate.key_file(key_path))
    else:
        default_key = find_default_key(ssh_dir)
        if default_key is not None:
            candidates.append(AuthCandidate.key_file(default_key))

    if use_agent and os.getenv("SSH_AUTH_SOCK"):
        candidates.append(AuthCandidate.agent())

    if password is not None:
        candidates.append(AuthCandidate.password(password))

    if not candidates:
        logger.warning(
            "No key file, agent or password available; authentication will fail"
        )

    return Credentials(user=user, candidates=tuple(candidates))
