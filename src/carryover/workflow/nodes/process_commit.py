"""ProcessCommit node - classify one commit and act on it."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from carryover.core.config import State
from carryover.core.log import logger
from carryover.git.model import Commit
from carryover.rebase.action import Carry, Drop, Unknown, UpstreamPick, classify
from carryover.rebase.carry import CarryFlow
from carryover.rebase.outcome import Dropped, Outcome, Unclassified
from carryover.workflow.deps import RebaseDeps
from carryover.workflow.nodes.finalize import Finalize


@dataclass
class ProcessCommit(BaseNode[State, RebaseDeps]):
    """Process the next queued commit.

    One node run covers a commit's whole carry flow, so the working
    tree is never shared between two commits in flight.
    """

    async def run(
        self, ctx: GraphRunContext[State, RebaseDeps]
    ) -> ProcessCommit | Finalize:
        session = ctx.state.runtime.rebase
        policy = ctx.state.config.policy
        commit = session.queue[session.position]

        with logger.span(
            "Processing {sha}: {subject}",
            sha=commit.sha,
            subject=commit.subject,
        ):
            outcome = self._dispatch(ctx, commit)
        session.record(outcome)

        if outcome.applied:
            session.consecutive_failures = 0
        elif outcome.failed:
            session.consecutive_failures += 1
            if session.consecutive_failures >= policy.max_consecutive_failures:
                logger.error(
                    "Stopping after {count} consecutive carries "
                    "needing manual intervention",
                    count=session.consecutive_failures,
                )
                session.status = "aborted"
                return Finalize()

        if session.pending:
            return ProcessCommit()
        return Finalize()

    def _dispatch(
        self, ctx: GraphRunContext[State, RebaseDeps], commit: Commit
    ) -> Outcome:
        action = classify(commit.message)
        match action:
            case Drop():
                logger.info("Dropping commit {sha}", sha=commit.sha)
                return Dropped(sha=commit.sha)
            case UpstreamPick(pr=pr):
                logger.info(
                    "No upstream pick flow yet, carrying {sha} (PR {pr})",
                    sha=commit.sha,
                    pr=pr,
                )
                return self._carry_flow(ctx).carry(commit)
            case Carry():
                return self._carry_flow(ctx).carry(commit)
            case Unknown(raw=raw):
                logger.warn(
                    "Unknown action on commit {sha}: {raw}",
                    sha=commit.sha,
                    raw=raw,
                )
                return Unclassified(sha=commit.sha, raw=raw)

    @staticmethod
    def _carry_flow(ctx: GraphRunContext[State, RebaseDeps]) -> CarryFlow:
        carries = ctx.state.config.carries
        return CarryFlow(
            ctx.deps.worktree,
            ctx.deps.patches,
            commit_url=carries.commit_url,
            annotate=carries.annotate,
        )
