"""Built-in command modules.

Each module builds a single shell command from its own arguments; the
dispatcher treats the result exactly like a user-typed command.
"""

from collections.abc import Sequence

from herd.modules.base import CommandModule, ShellCommand, bash_script
from herd.modules.collect_facts import CollectFactsModule
from herd.modules.os_update import OsUpdateModule
from herd.modules.reboot_wait import RebootWaitModule
from herd.modules.registry import ModuleRegistry
from herd.modules.sudo import SudoModule
from herd.protocols import CommandSource


def default_registry() -> ModuleRegistry:
    """Registry holding every built-in module."""
    registry = ModuleRegistry()
    for module in (CollectFactsModule, OsUpdateModule, RebootWaitModule, SudoModule):
        registry.register(module)
    return registry


def resolve_command_source(words: Sequence[str]) -> CommandSource:
    """Resolve command-line words against the built-in modules."""
    return default_registry().resolve(words)


__all__ = [
    "CollectFactsModule",
    "CommandModule",
    "ModuleRegistry",
    "OsUpdateModule",
    "RebootWaitModule",
    "ShellCommand",
    "SudoModule",
    "bash_script",
    "default_registry",
    "resolve_command_source",
]
