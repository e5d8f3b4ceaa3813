"""Tests for outcomes and the rebase report."""

import pytest
from pydantic import TypeAdapter

from carryover.core.errors import ManualInterventionRequired
from carryover.rebase.outcome import (
    AppliedDirect,
    AppliedViaResolution,
    Dropped,
    Errored,
    Failed,
    NotAttempted,
    Outcome,
    RebaseReport,
    Unclassified,
)


def test_applied_and_failed_flags():
    assert AppliedDirect(sha="a").applied
    assert AppliedViaResolution(sha="a", patch_id="a").applied
    assert Failed(sha="a", reference="r").failed
    assert Errored(sha="a", error="boom").failed
    for outcome in (Dropped(sha="a"), Unclassified(sha="a"),
                    NotAttempted(sha="a")):
        assert not outcome.applied
        assert not outcome.failed


def test_outcome_parses_by_kind():
    adapter = TypeAdapter(Outcome)

    outcome = adapter.validate_python(
        {"kind": "applied-via-resolution", "sha": "a", "patch_id": "a"}
    )

    assert isinstance(outcome, AppliedViaResolution)


def test_report_counts():
    report = RebaseReport(status="completed", outcomes=[
        Dropped(sha="a"),
        AppliedDirect(sha="b"),
        AppliedDirect(sha="c"),
    ])

    assert report.counts() == {"dropped": 1, "applied-direct": 2}


def test_completed_report_succeeds():
    report = RebaseReport(status="completed", outcomes=[AppliedDirect(sha="a")])

    assert report.succeeded()
    report.raise_for_failures()


def test_failures_fail_the_report():
    report = RebaseReport(status="aborted", outcomes=[
        Failed(sha="a", reference="https://example.com/a"),
        NotAttempted(sha="b"),
    ])

    assert report.aborted
    assert not report.succeeded()
    with pytest.raises(ManualInterventionRequired) as exc:
        report.raise_for_failures()
    assert exc.value.failures == [("a", "https://example.com/a")]


def test_unclassified_only_fails_when_strict():
    report = RebaseReport(
        status="completed", outcomes=[Unclassified(sha="a", raw="<wip>")]
    )

    assert report.succeeded()
    assert not report.succeeded(strict=True)
    assert report.unclassified == [Unclassified(sha="a", raw="<wip>")]


def test_report_json_names_every_outcome():
    report = RebaseReport(branch="rebase-2024-05-17", status="completed",
                          outcomes=[Dropped(sha="a"), AppliedDirect(sha="b")])

    restored = RebaseReport.model_validate_json(report.model_dump_json())

    assert restored == report
