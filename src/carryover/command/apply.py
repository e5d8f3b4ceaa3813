"""Apply command - rebase the fork's carries onto upstream."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field
from pydantic_settings import CliPositionalArg

from carryover.core.errors import CarryoverError, ManualInterventionRequired
from carryover.core.log import logger
from carryover.core.reportdir import ReportDir
from carryover.git.command import GitCommand
from carryover.git.repository import GitRepository
from carryover.git.worktree import GitWorkingTree
from carryover.rebase.outcome import RebaseReport
from carryover.rebase.patches import DirectoryPatchStore
from carryover.workflow.deps import RebaseDeps
from carryover.workflow.graph import run_rebase

if TYPE_CHECKING:
    from carryover.core.config import State


class ApplyCommand(BaseModel):
    """Replay the fork's carries on a fresh branch from upstream.

    Creates <branch_prefix>-<date> from the upstream ref, merges the
    fork branch into it, then walks every fork commit since FROM_REF:
    UPSTREAM: <drop>: commits are skipped, UPSTREAM: <carry>: commits
    are cherry-picked, and conflicting carries are rebuilt from the
    resolution patch stored under their hash.
    """

    from_ref: CliPositionalArg[str] = Field(
        description="Upstream-side reference the fork last rebased onto"
    )
    repository: CliPositionalArg[Path] = Field(
        description="Path to the fork's local repository"
    )

    def build_deps(self, state: State) -> RebaseDeps:
        config = state.config
        templates = config.git_commands()
        repository = GitRepository.open(config.git.repository, templates)
        worktree = GitWorkingTree(
            GitCommand(repository.path, templates),
            timeout=config.policy.replay_timeout,
        )
        return RebaseDeps(
            repository=repository,
            worktree=worktree,
            patches=DirectoryPatchStore(config.carries.directory),
        )

    async def run_workflow(self, state: State) -> int:
        """Run the rebase session.

        Returns:
            Exit code (0 = every commit handled, 1 = operator needed)
        """
        state.runtime.global_.current_command = "apply"
        state.config.git.from_ref = self.from_ref
        state.config.git.repository = self.repository

        logger.info(
            "Rebasing carries since {from_ref} in {repository}",
            from_ref=self.from_ref,
            repository=str(self.repository),
        )
        try:
            report = await run_rebase(state, self.build_deps(state))
        except CarryoverError as e:
            logger.error("Rebase aborted: {error}", error=str(e))
            self._write_report(state, state.runtime.rebase.report())
            return 1

        self._write_report(state, report)
        try:
            report.raise_for_failures()
        except ManualInterventionRequired as e:
            for sha, reference in e.failures:
                logger.error(
                    "Carry {reference} requires manual intervention!",
                    reference=reference,
                    sha=sha,
                )

        strict = state.config.policy.fail_on_unclassified
        for outcome in report.unclassified:
            log = logger.error if strict else logger.warn
            log("Commit {sha} has no usable UPSTREAM marker", sha=outcome.sha,
                raw=outcome.raw)

        return 0 if report.succeeded(strict=strict) else 1

    def _write_report(self, state: State, report: RebaseReport) -> None:
        reports = ReportDir(
            state.config.log_root, "apply", state.config.session_name
        )
        path = reports.write("report.json", report)
        logger.info("Report written to {path}", path=str(path))
