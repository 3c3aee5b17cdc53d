"""Runtime engine exports."""

from .commands import Command, CommandError, parse_command
from .loop import RuntimeBootstrap, RuntimeEngine

__all__ = [
    "Command",
    "CommandError",
    "RuntimeBootstrap",
    "RuntimeEngine",
    "parse_command",
]
