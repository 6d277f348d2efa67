"""Command module base classes.

A module turns its own arguments into one shell command. Modules are
interchangeable with a plain user-typed command: both satisfy the
CommandSource protocol.
"""

import shlex
from abc import ABC, abstractmethod
from collections.abc import Sequence

from herd.exceptions import ConfigError


def bash_script(script: str) -> str:
    """Wrap a multi-line script as a single ``bash -c`` command."""
    return f"bash -c {shlex.quote(script)}"


class ShellCommand:
    """A user-typed command, passed through verbatim."""

    def __init__(self, words: Sequence[str]) -> None:
        self.words = list(words)

    def build(self) -> str:
        command = " ".join(self.words).strip()
        if not command:
            raise ConfigError("No module or command provided. Use '--help' for usage.")
        return command


class CommandModule(ABC):
    """Base class for built-in command modules.

    Subclasses set ``name`` and ``usage``, parse their arguments in
    ``__init__`` and render the remote command in ``build``.
    """

    name: str = ""
    usage: str = ""

    def __init__(self, args: Sequence[str]) -> None:
        self.args = list(args)

    @abstractmethod
    def build(self) -> str:
        """Render the command to run on every target."""

    def fail(self, message: str) -> ConfigError:
        """Build a usage error for this module."""
        hint = f"\nUsage: {self.usage}" if self.usage else ""
        return ConfigError(f"{self.name}: {message}{hint}")

    @classmethod
    def get_description(cls) -> str:
        """First line of the module docstring, shown in --help."""
        doc = (cls.__doc__ or "").strip()
        return doc.splitlines()[0] if doc else f"{cls.name} module"
