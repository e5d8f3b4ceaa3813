"""CollectCommits node - build the queue of commits to process."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from carryover.core.config import State
from carryover.core.errors import BackendFailure
from carryover.core.log import logger
from carryover.workflow.deps import RebaseDeps
from carryover.workflow.nodes.finalize import Finalize
from carryover.workflow.nodes.process_commit import ProcessCommit


@dataclass
class CollectCommits(BaseNode[State, RebaseDeps]):
    """Queue the fork's own commits, oldest first."""

    async def run(
        self, ctx: GraphRunContext[State, RebaseDeps]
    ) -> ProcessCommit | Finalize:
        git = ctx.state.config.git
        session = ctx.state.runtime.rebase

        try:
            commits = ctx.deps.repository.log(
                start=git.downstream_ref,
                stop_at=git.stop_at,
                exclude=git.from_ref or None,
                no_merges=True,
            )
        except BackendFailure as e:
            raise e.wrap("Error reading carries") from e

        # log() walks newest first; replay needs causal order
        session.queue = list(reversed(commits))
        session.position = 0
        session.status = "processing"
        logger.info(
            "Collected {count} commits to process",
            count=len(session.queue),
            since=git.from_ref,
        )

        if not session.queue:
            return Finalize()
        return ProcessCommit()
