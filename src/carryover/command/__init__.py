"""CLI command modules for carryover."""

from carryover.command.apply import ApplyCommand
from carryover.command.remotes import RemotesCommand

__all__ = ["ApplyCommand", "RemotesCommand"]
