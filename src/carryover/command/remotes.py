"""Remotes command - validate the fork's remote configuration."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field
from pydantic_settings import CliPositionalArg

from carryover.core.errors import BackendFailure
from carryover.core.log import logger
from carryover.git.repository import GitRepository

if TYPE_CHECKING:
    from carryover.core.config import State


class RemotesCommand(BaseModel):
    """Check that every expected remote fetches from the right place.

    Expected remotes come from config.remotes.expected.
    """

    repository: CliPositionalArg[Path] = Field(
        description="Path to the fork's local repository"
    )

    async def run_workflow(self, state: State) -> int:
        state.runtime.global_.current_command = "remotes"
        try:
            repository = GitRepository.open(
                self.repository, state.config.git_commands()
            )
            repository.check_remotes(state.config.remotes.expected)
        except BackendFailure as e:
            logger.error("Remote check failed: {error}", error=str(e))
            return 1
        return 0
