"""Adapters for the external tools: drush and git."""

from .runner import CommandResult, CommandRunner, ToolPaths, locate_tool
from .drush import DrushClient
from .git import GitClient

__all__ = [
    "CommandResult",
    "CommandRunner",
    "ToolPaths",
    "locate_tool",
    "DrushClient",
    "GitClient",
]
