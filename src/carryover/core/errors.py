"""Error taxonomy for rebase sessions."""

from __future__ import annotations


class CarryoverError(Exception):
    """Base class for every error raised by carryover."""


class BackendFailure(CarryoverError):
    """A git operation failed in a way the session cannot recover from.

    Raised for repository open, remote lookup, branch creation,
    merge, log enumeration, status and replay abort errors.
    """

    def __init__(self, operation: str, detail: str = ""):
        self.operation = operation
        self.detail = detail.strip()
        message = operation
        if self.detail:
            message = f"{operation}: {self.detail}"
        super().__init__(message)

    def wrap(self, context: str) -> BackendFailure:
        """Return a copy of this failure with extra leading context."""
        return type(self)(f"{context}: {self.operation}", self.detail)


class RemoteMismatch(BackendFailure):
    """A remote is missing or fetches from an unexpected URL."""


class PatchApplyError(BackendFailure):
    """A stored resolution patch did not apply to the working tree."""


class ReplayConflict(CarryoverError):
    """Replaying a commit onto the current branch tip failed."""

    def __init__(self, sha: str, detail: str = ""):
        self.sha = sha
        self.detail = detail.strip()
        super().__init__(f"replay of {sha} failed: {self.detail}")


class ManualInterventionRequired(CarryoverError):
    """One or more carries need a hand-made resolution patch.

    Attributes:
        failures: (sha, reference) pairs, in processing order
    """

    def __init__(self, failures: list[tuple[str, str]]):
        self.failures = failures
        shas = ", ".join(sha for sha, _ in failures)
        super().__init__(f"manual intervention required for: {shas}")


__all__ = [
    "CarryoverError",
    "BackendFailure",
    "RemoteMismatch",
    "PatchApplyError",
    "ReplayConflict",
    "ManualInterventionRequired",
]
