"""Per-commit outcomes and the run report."""

from __future__ import annotations

from collections import Counter
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from carryover.core.errors import ManualInterventionRequired

SessionStatus = Literal[
    "initializing",
    "branch-prepared",
    "processing",
    "completed",
    "aborted",
]


class _Outcome(BaseModel):
    sha: str

    model_config = ConfigDict(frozen=True)

    @property
    def applied(self) -> bool:
        return False

    @property
    def failed(self) -> bool:
        return False


class Dropped(_Outcome):
    """Commit marked obsolete; the tree was not touched."""

    kind: Literal["dropped"] = "dropped"


class AppliedDirect(_Outcome):
    """Commit replayed cleanly."""

    kind: Literal["applied-direct"] = "applied-direct"

    @property
    def applied(self) -> bool:
        return True


class AppliedViaResolution(_Outcome):
    """Replay conflicted; a stored resolution patch was applied."""

    kind: Literal["applied-via-resolution"] = "applied-via-resolution"
    patch_id: str

    @property
    def applied(self) -> bool:
        return True


class Failed(_Outcome):
    """Replay conflicted and no resolution patch exists.

    `reference` is the link an operator follows to produce the
    patch for the next run.
    """

    kind: Literal["failed"] = "failed"
    reason: Literal["manual-intervention-required"] = (
        "manual-intervention-required"
    )
    reference: str

    @property
    def failed(self) -> bool:
        return True


class Errored(_Outcome):
    """Processing stopped on a fatal error while this commit was in flight."""

    kind: Literal["errored"] = "errored"
    error: str

    @property
    def failed(self) -> bool:
        return True


class Unclassified(_Outcome):
    """Commit without a recognizable UPSTREAM marker; left alone."""

    kind: Literal["unclassified"] = "unclassified"
    raw: str | None = None


class NotAttempted(_Outcome):
    """Commit still queued when the session aborted."""

    kind: Literal["not-attempted"] = "not-attempted"


Outcome = Annotated[
    Union[
        Dropped,
        AppliedDirect,
        AppliedViaResolution,
        Failed,
        Errored,
        Unclassified,
        NotAttempted,
    ],
    Field(discriminator="kind"),
]


class RebaseReport(BaseModel):
    """Auditable result of one rebase session."""

    branch: str | None = None
    status: SessionStatus
    outcomes: list[Outcome] = Field(default_factory=list)

    @property
    def aborted(self) -> bool:
        return self.status == "aborted"

    @property
    def failures(self) -> list[Failed]:
        return [o for o in self.outcomes if isinstance(o, Failed)]

    @property
    def unclassified(self) -> list[Unclassified]:
        return [o for o in self.outcomes if isinstance(o, Unclassified)]

    def counts(self) -> dict[str, int]:
        return dict(Counter(o.kind for o in self.outcomes))

    def succeeded(self, strict: bool = False) -> bool:
        """True when nothing needs an operator.

        Args:
            strict: Also require every commit to carry a marker
        """
        if self.aborted or self.failures:
            return False
        return not (strict and self.unclassified)

    def raise_for_failures(self) -> None:
        """Raise ManualInterventionRequired if any carry failed."""
        if self.failures:
            raise ManualInterventionRequired(
                [(o.sha, o.reference) for o in self.failures]
            )
