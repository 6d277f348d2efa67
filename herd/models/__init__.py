"""Data models for herd."""

from herd.models.credentials import AuthCandidate, AuthKind, Credentials
from herd.models.result import (
    RECORD_FIELDS,
    CommandResult,
    ExecutionResult,
    FailureInfo,
    RunSummary,
)
from herd.models.run import OutputMode, RunConfig
from herd.models.target import DEFAULT_SSH_PORT, Target

__all__ = [
    "AuthCandidate",
    "AuthKind",
    "CommandResult",
    "Credentials",
    "DEFAULT_SSH_PORT",
    "ExecutionResult",
    "FailureInfo",
    "OutputMode",
    "RECORD_FIELDS",
    "RunConfig",
    "RunSummary",
    "Target",
]
