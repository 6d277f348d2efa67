"""herd: run one shell command across a fleet of SSH hosts."""

__version__ = "0.4.0"
