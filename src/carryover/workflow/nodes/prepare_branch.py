"""PrepareBranch node - create the dated rebase branch."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pydantic_graph import BaseNode, GraphRunContext

from carryover.core.config import State
from carryover.core.errors import BackendFailure
from carryover.core.log import logger
from carryover.workflow.deps import RebaseDeps
from carryover.workflow.nodes.collect_commits import CollectCommits


def branch_name(prefix: str, now: datetime | None = None) -> str:
    """Name of the working branch, e.g. rebase-2024-05-17."""
    return f"{prefix}-{(now or datetime.now()).strftime('%Y-%m-%d')}"


@dataclass
class PrepareBranch(BaseNode[State, RebaseDeps]):
    """Branch from upstream and merge the fork into it.

    The merge records the fork's history on the new branch before
    any carry is replayed.
    """

    async def run(
        self, ctx: GraphRunContext[State, RebaseDeps]
    ) -> CollectCommits:
        config = ctx.state.config
        session = ctx.state.runtime.rebase
        repository = ctx.deps.repository

        if config.remotes.verify:
            repository.check_remotes(config.remotes.expected)

        name = branch_name(config.git.branch_prefix)
        try:
            repository.create_branch(name, config.git.upstream_ref)
            repository.merge(
                config.git.downstream_ref, config.git.merge_strategy
            )
        except BackendFailure as e:
            raise e.wrap("Error creating rebase branch") from e

        session.branch = name
        session.status = "branch-prepared"
        logger.info(
            "Rebase branch {branch} prepared",
            branch=name,
            upstream=config.git.upstream_ref,
            downstream=config.git.downstream_ref,
        )
        return CollectCommits()
