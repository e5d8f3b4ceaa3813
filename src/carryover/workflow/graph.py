"""Rebase workflow graph."""

from pydantic_graph import End, Graph

from carryover.core.config import State
from carryover.core.log import logger
from carryover.rebase.outcome import RebaseReport
from carryover.workflow.deps import RebaseDeps


def create_workflow() -> Graph:
    """Build the rebase graph.

    PrepareBranch → CollectCommits → ProcessCommit (once per
    commit) → Finalize
    """
    logger.debug("Building workflow graph")

    from carryover.workflow.nodes.collect_commits import CollectCommits
    from carryover.workflow.nodes.finalize import Finalize
    from carryover.workflow.nodes.prepare_branch import PrepareBranch
    from carryover.workflow.nodes.process_commit import ProcessCommit

    return Graph(
        nodes=(PrepareBranch, CollectCommits, ProcessCommit, Finalize),
        state_type=State,
        run_end_type=RebaseReport,
    )


async def run_rebase(state: State, deps: RebaseDeps) -> RebaseReport:
    """Run one rebase session to completion.

    Raises:
        BackendFailure: If the branch, the log or the tree cannot be
            handled; the session is aborted first, with the
            commit in flight recorded as Errored
    """
    from carryover.workflow.nodes.prepare_branch import PrepareBranch

    workflow = create_workflow()
    session = state.runtime.rebase
    try:
        async with workflow.iter(
            PrepareBranch(), state=state, deps=deps
        ) as run:
            async for node in run:
                if isinstance(node, End):
                    return node.data
    except Exception as e:
        session.abort(str(e))
        raise

    # Graph ended without an End node (shouldn't happen)
    session.status = "aborted"
    return session.report()
