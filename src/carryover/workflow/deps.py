"""Collaborators handed to every workflow node."""

from dataclasses import dataclass

from carryover.git.repository import VersionControlPort
from carryover.git.worktree import WorkingTreePort
from carryover.rebase.patches import PatchStore


@dataclass
class RebaseDeps:
    """The repository, its working tree and the resolution store."""

    repository: VersionControlPort
    worktree: WorkingTreePort
    patches: PatchStore
