"""Authentication data models."""

from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path


class AuthKind(IntEnum):
    """Authentication method, ordered by priority (lowest tried first)."""

    KEY_FILE = 1
    AGENT = 2
    PASSWORD = 3


@dataclass(frozen=True)
class AuthCandidate:
    """One authentication method to offer the server.

    ``payload`` is the key file path for KEY_FILE, the agent socket path
    (or None for ``$SSH_AUTH_SOCK``) for AGENT and the password for
    PASSWORD.
    """

    kind: AuthKind
    payload: str | None = field(default=None, repr=False)

    @classmethod
    def key_file(cls, path: str | Path) -> "AuthCandidate":
        return cls(AuthKind.KEY_FILE, str(Path(path).expanduser()))

    @classmethod
    def agent(cls, socket_path: str | None = None) -> "AuthCandidate":
        return cls(AuthKind.AGENT, socket_path)

    @classmethod
    def password(cls, secret: str) -> "AuthCandidate":
        return cls(AuthKind.PASSWORD, secret)

    def describe(self) -> str:
        """Loggable description that never includes a secret."""
        if self.kind is AuthKind.KEY_FILE:
            return f"key file {self.payload}"
        if self.kind is AuthKind.AGENT:
            return "ssh-agent"
        return "password"


@dataclass(frozen=True)
class Credentials:
    """Login user plus authentication candidates in priority order.

    Candidates are sorted key file, agent, password whatever order they
    were supplied in; the relative order of same-kind candidates is kept.
    """

    user: str
    candidates: tuple[AuthCandidate, ...] = ()

    def __post_init__(self) -> None:
        ordered = tuple(sorted(self.candidates, key=lambda c: c.kind))
        object.__setattr__(self, "candidates", ordered)

    def of_kind(self, kind: AuthKind) -> list[AuthCandidate]:
        """Return candidates of one kind, in priority order."""
        return [c for c in self.candidates if c.kind is kind]

    @property
    def password(self) -> str | None:
        """First password candidate, if any."""
        passwords = self.of_kind(AuthKind.PASSWORD)
        return passwords[0].payload if passwords else None
