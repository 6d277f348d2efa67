"""Utility modules for herd."""

from herd.utils.console import ColorfulFormatter, configure_logging
from herd.utils.duration import parse_duration

__all__ = [
    "ColorfulFormatter",
    "configure_logging",
    "parse_duration",
]
