"""Write-side git access: replaying commits and applying patches."""

from __future__ import annotations

import tempfile
from collections.abc import Callable
from contextlib import contextmanager
from pathlib import Path
from typing import Protocol

from carryover.core.errors import BackendFailure, PatchApplyError, ReplayConflict
from carryover.core.log import logger
from carryover.git.command import GitCommand, describe_failure
from carryover.rebase.patches import ResolutionPatch


class WorkingTreePort(Protocol):
    """Mutations of the single checked-out working tree."""

    def cherry_pick(self, sha: str) -> None:
        """Replay sha onto HEAD; raise ReplayConflict on failure."""
        ...

    def abort_cherry_pick(self) -> None:
        ...

    def apply_patch(
        self, patch: ResolutionPatch, reuse_message_from: str
    ) -> None:
        ...

    def status(self) -> str:
        ...

    def amend_message(self, transform: Callable[[str], list[str]]) -> None:
        ...


class GitWorkingTree:
    """WorkingTreePort backed by the git command line."""

    def __init__(self, git: GitCommand, timeout: int | None = None):
        self.git = git
        self.timeout = timeout

    def cherry_pick(self, sha: str) -> None:
        logger.info("executing cherry-pick", sha=sha)
        result = self.git.run(
            "cherry_pick",
            f"cherry-picking {sha}",
            check=False,
            timeout=self.timeout,
            sha=sha,
        )
        if result.exited != 0:
            raise ReplayConflict(sha, describe_failure(result))

    def cherry_pick_in_progress(self) -> bool:
        result = self.git.run(
            "cherry_pick_head", "looking for CHERRY_PICK_HEAD", check=False
        )
        return result.exited == 0

    def abort_cherry_pick(self) -> None:
        """Return the tree to its state before the last cherry-pick.

        A pick killed before git recorded CHERRY_PICK_HEAD (a timeout)
        can still leave the index and tree half updated, so those are
        reset to HEAD instead.

        Raises:
            BackendFailure: If the tree cannot be restored
        """
        if self.cherry_pick_in_progress():
            logger.info("aborting cherry-pick")
            self.git.run("cherry_pick_abort", "aborting cherry-pick")
            return
        logger.info("No cherry-pick in progress, resetting tree to HEAD")
        self.git.run("reset_merge", "resetting working tree to HEAD")

    def status(self) -> str:
        return self.git.run("status", "reading working tree status").stdout

    def apply_patch(
        self, patch: ResolutionPatch, reuse_message_from: str
    ) -> None:
        """Apply patch to tree and index, then commit it.

        The commit reuses the message and authorship of
        reuse_message_from.

        Raises:
            PatchApplyError: If the patch does not apply or cannot
                be committed
        """
        with _patch_file(patch) as path:
            logger.info("applying resolution", patch=str(path))
            result = self.git.run(
                "apply",
                f"applying {path}",
                check=False,
                timeout=self.timeout,
                patch=path,
            )
        if result.exited != 0:
            raise PatchApplyError(
                f"applying resolution patch {patch.key}",
                describe_failure(result),
            )

        try:
            self.git.run(
                "commit_reuse",
                f"committing resolution for {reuse_message_from}",
                sha=reuse_message_from,
            )
        except BackendFailure as e:
            raise PatchApplyError(e.operation, e.detail) from e

    def head_message(self) -> str:
        return self.git.run("head_message", "reading HEAD message").stdout

    def amend_message(self, transform: Callable[[str], list[str]]) -> None:
        """Rewrite the HEAD message.

        Args:
            transform: Receives the current message and returns the
                new one as a list of paragraphs
        """
        paragraphs = transform(self.head_message())
        with tempfile.NamedTemporaryFile(
            "w", suffix=".msg", encoding="utf-8", delete=False
        ) as f:
            f.write("\n\n".join(p.strip("\n") for p in paragraphs) + "\n")
            message_file = Path(f.name)
        try:
            self.git.run("amend", "amending HEAD message", file=message_file)
        finally:
            message_file.unlink(missing_ok=True)


@contextmanager
def _patch_file(patch: ResolutionPatch):
    """Yield an on-disk path for patch, writing a temp file if needed."""
    if patch.path is not None and patch.path.is_file():
        yield patch.path
        return

    with tempfile.NamedTemporaryFile(
        "w", suffix=".patch", encoding="utf-8", delete=False
    ) as f:
        f.write(patch.content)
        temp = Path(f.name)
    try:
        yield temp
    finally:
        temp.unlink(missing_ok=True)
