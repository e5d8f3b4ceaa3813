"""Workflow nodes for the rebase state machine."""

from carryover.workflow.nodes.collect_commits import CollectCommits
from carryover.workflow.nodes.finalize import Finalize
from carryover.workflow.nodes.prepare_branch import PrepareBranch
from carryover.workflow.nodes.process_commit import ProcessCommit

__all__ = [
    "PrepareBranch",
    "CollectCommits",
    "ProcessCommit",
    "Finalize",
]
