"""Run configuration data models."""

from dataclasses import dataclass
from enum import Enum

from herd.exceptions import ConfigError
from herd.models.result import RECORD_FIELDS


class OutputMode(Enum):
    """How results are rendered."""

    TEXT = "text"
    JSON_STREAM = "json"
    JSON_PRETTY = "pretty-json"


@dataclass(frozen=True)
class RunConfig:
    """Validated, immutable parameters of one run.

    Timeouts are in seconds. ``retry_delay`` is the base pause between
    attempts on the same target (0 retries immediately).
    """

    command: str
    concurrency_limit: int = 10
    connect_timeout: float = 30.0
    io_timeout: float = 30.0
    max_retries: int = 0
    output_mode: OutputMode = OutputMode.TEXT
    field_filter: frozenset[str] | None = None
    retry_delay: float = 0.0
    known_hosts: str | None = None

    def __post_init__(self) -> None:
        if not self.command.strip():
            raise ConfigError("Command must not be empty")
        if self.concurrency_limit < 1:
            raise ConfigError(
                f"concurrency_limit must be >= 1, got {self.concurrency_limit}"
            )
        if self.connect_timeout <= 0 or self.io_timeout <= 0:
            raise ConfigError("Timeouts must be positive")
        if self.max_retries < 0:
            raise ConfigError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.retry_delay < 0:
            raise ConfigError(f"retry_delay must be >= 0, got {self.retry_delay}")
        if self.field_filter is not None:
            if not self.field_filter:
                raise ConfigError("Field filter must name at least one field")
            unknown = sorted(set(self.field_filter) - set(RECORD_FIELDS))
            if unknown:
                raise ConfigError(
                    f"Unknown field(s): {', '.join(unknown)} "
                    f"(valid: {', '.join(RECORD_FIELDS)})"
                )
            object.__setattr__(self, "field_filter", frozenset(self.field_filter))
