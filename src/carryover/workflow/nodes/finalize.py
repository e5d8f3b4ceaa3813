"""Finalize node - close the outcome ledger and report."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from carryover.core.config import State
from carryover.core.log import logger
from carryover.rebase.outcome import RebaseReport
from carryover.workflow.deps import RebaseDeps


@dataclass
class Finalize(BaseNode[State, RebaseDeps, RebaseReport]):
    """Give every commit an outcome and end the run."""

    async def run(
        self, ctx: GraphRunContext[State, RebaseDeps]
    ) -> End[RebaseReport]:
        session = ctx.state.runtime.rebase

        if session.status == "aborted":
            session.skip_remaining()
        else:
            session.status = "completed"

        report = session.report()
        logger.info(
            "Rebase {status} on {branch}",
            status=report.status,
            branch=report.branch,
            **report.counts(),
        )
        return End(report)
