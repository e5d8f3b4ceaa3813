"""Replaying one carried commit, with stored resolutions as fallback."""

from __future__ import annotations

from carryover.core.errors import BackendFailure, ReplayConflict
from carryover.core.log import logger
from carryover.git.model import Commit
from carryover.git.worktree import WorkingTreePort
from carryover.rebase.outcome import (
    AppliedDirect,
    AppliedViaResolution,
    Failed,
    Outcome,
)
from carryover.rebase.patches import PatchStore

RESOLUTION_TRAILER = "Carry-Resolution"


class CarryFlow:
    """Carries commits onto the current branch tip.

    A commit is cherry-picked first. If that conflicts, the pick is
    aborted so the tree is exactly as it was, and the resolution
    patch recorded for the commit's hash is applied instead. With no
    patch recorded the commit needs a human, and the outcome points
    at it.
    """

    def __init__(
        self,
        worktree: WorkingTreePort,
        patches: PatchStore,
        commit_url: str = "{sha}",
        annotate: bool = False,
    ):
        """
        Args:
            worktree: Tree the commits are replayed onto
            patches: Where resolution patches are looked up
            commit_url: Template for the reference given to operators
            annotate: Add a Carry-Resolution trailer to commits built
                from a resolution patch
        """
        self.worktree = worktree
        self.patches = patches
        self.commit_url = commit_url
        self.annotate = annotate

    def carry(self, commit: Commit) -> Outcome:
        """Replay commit, falling back to its resolution patch.

        Raises:
            BackendFailure: If the failed pick cannot be aborted
            PatchApplyError: If the resolution patch does not apply
        """
        logger.debug("Initiating carry flow", sha=commit.sha)
        try:
            self.worktree.cherry_pick(commit.sha)
        except ReplayConflict as e:
            logger.info(
                "Encountered problems picking {sha}",
                sha=commit.sha,
                detail=e.detail,
            )
        else:
            return AppliedDirect(sha=commit.sha)

        self._restore_tree()

        patch = self.patches.lookup(commit.sha)
        if patch is None:
            reference = commit.url(self.commit_url)
            logger.error(
                "Carry {reference} requires manual intervention!",
                reference=reference,
                sha=commit.sha,
            )
            return Failed(sha=commit.sha, reference=reference)

        logger.info("Found resolution for {sha}, applying", sha=commit.sha,
                    patch=patch.key)
        self.worktree.apply_patch(patch, reuse_message_from=commit.sha)
        if self.annotate:
            self.worktree.amend_message(
                lambda message: [message, f"{RESOLUTION_TRAILER}: {patch.key}"]
            )
        return AppliedViaResolution(sha=commit.sha, patch_id=patch.key)

    def _restore_tree(self) -> None:
        """Log the conflicted status, then abort the pick regardless."""
        try:
            status = self.worktree.status()
        except BackendFailure as e:
            logger.warn("Could not read working tree status", error=str(e))
        else:
            logger.info("Working tree status after failed pick",
                        status=status)
        finally:
            self.worktree.abort_cherry_pick()
