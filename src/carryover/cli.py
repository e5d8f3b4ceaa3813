#!/usr/bin/env python3
"""carryover CLI - rebase a downstream fork onto a new upstream."""

import asyncio
import sys

from pydantic_settings import CliApp, CliSubCommand, get_subcommand

from carryover.command.apply import ApplyCommand
from carryover.command.remotes import RemotesCommand
from carryover.core.config import State


class CliState(State):
    """Rebase a long-lived fork onto a new upstream release.

    Commits on the fork declare their fate with an
    "UPSTREAM: <action>:" marker: <carry> commits are replayed,
    <drop> commits are discarded. Carries that conflict are rebuilt
    from pre-recorded resolution patches named after their hash.

    Configuration sources (in priority order):
    1. Command-line arguments (--config.git.upstream_ref value)
    2. carryover.yaml in the current directory, and --include files
    3. .env file
    4. Environment variables (CARRYOVER_CONFIG__GIT__UPSTREAM_REF=value)
    """

    apply: CliSubCommand[ApplyCommand]
    remotes: CliSubCommand[RemotesCommand]

    def cli_cmd(self):
        """Dispatch to the active subcommand, or show help."""
        subcommand = get_subcommand(self, is_required=False)

        if subcommand is None:
            CliApp.run(CliState, cli_args=['--help'])
            sys.exit(1)

        with self.config:
            exit_code = asyncio.run(subcommand.run_workflow(self))
        raise SystemExit(exit_code)


def main():
    """Entry point for the carryover console script."""
    CliApp.run(CliState)


if __name__ == "__main__":
    main()
