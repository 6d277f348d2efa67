"""Command module registry.

Maps module names to CommandModule classes and turns the trailing
command-line words into a CommandSource.
"""

import logging
from collections.abc import Sequence

from herd.modules.base import CommandModule, ShellCommand
from herd.protocols import CommandSource

logger = logging.getLogger(__name__)


class ModuleRegistry:
    """Registry for command modules."""

    def __init__(self) -> None:
        self.modules: dict[str, type[CommandModule]] = {}

    def register(self, module: type[CommandModule]) -> None:
        """Register a module class under its ``name``.

        Raises:
            ValueError: If the name is empty or already taken
        """
        if not module.name:
            raise ValueError(f"{module.__name__} has no name")
        if module.name in self.modules:
            raise ValueError(f"Module already registered: {module.name}")
        self.modules[module.name] = module
        logger.debug("Registered command module: %s", module.name)

    def names(self) -> list[str]:
        return sorted(self.modules)

    def resolve(self, words: Sequence[str]) -> CommandSource:
        """Pick the command source for the trailing command-line words.

        A first word naming a registered module selects that module with
        the remaining words as its arguments; anything else is a plain
        shell command.

        Raises:
            ConfigError: If a module rejects its arguments
        """
        if words and words[0] in self.modules:
            module = self.modules[words[0]](words[1:])
            logger.debug("Using module %s", module.name)
            return module
        return ShellCommand(words)
