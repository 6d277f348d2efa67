"""Configuration module for herd.

Provides focused helpers for different configuration concerns:
- Settings: Environment variable defaults
- HostKeyVerifier: known_hosts resolution
- resolve_inventory: Host list and inventory file parsing
- build_credentials: Authentication candidate assembly
"""

from herd.config.credentials import build_credentials, find_default_key
from herd.config.host_keys import HostKeyVerifier
from herd.config.inventory import resolve_inventory
from herd.config.settings import Settings

__all__ = [
    "HostKeyVerifier",
    "Settings",
    "build_credentials",
    "find_default_key",
    "resolve_inventory",
]
