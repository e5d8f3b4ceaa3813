"""Tests for git command templates and log parsing."""

from datetime import UTC, datetime
from pathlib import Path

import pytest
from invoke import Result

from carryover.core.errors import BackendFailure
from carryover.core.runner import TIMED_OUT
from carryover.git.command import GitCommand, describe_failure
from carryover.git.model import Commit
from carryover.git.repository import parse_commits

TEMPLATES = {
    "cherry_pick": "git cherry-pick --allow-empty {sha}",
    "merge": "git merge --no-edit {args}",
}


def test_format_quotes_parameters():
    git = GitCommand(Path("."), TEMPLATES)

    assert git.format("cherry_pick", sha="abc; rm -rf /") == (
        "git cherry-pick --allow-empty 'abc; rm -rf /'"
    )


def test_format_expands_lists():
    git = GitCommand(Path("."), TEMPLATES)

    command = git.format("merge", args=["-s", "ours", "openshift/master"])

    assert command == "git merge --no-edit -s ours openshift/master"


def test_format_unknown_template():
    git = GitCommand(Path("."), TEMPLATES)

    with pytest.raises(BackendFailure, match="no git command template"):
        git.format("rebase")


def test_describe_failure():
    assert describe_failure(Result(exited=TIMED_OUT)) == "timed out"
    assert describe_failure(
        Result(stderr="fatal: bad revision\n", exited=128)
    ) == "fatal: bad revision"
    assert describe_failure(Result(exited=2)) == "exit code 2"


def test_parse_commits():
    output = (
        "aaa\x1f1715904000\x1f1715904060\x1fUPSTREAM: <carry>: one\n\n"
        "body\n\x1e\n"
        "bbb\x1f1715900000\x1f1715900000\x1fUPSTREAM: <drop>: two\n\x1e\n"
    )

    commits = parse_commits(output)

    assert [c.sha for c in commits] == ["aaa", "bbb"]
    assert commits[0].message == "UPSTREAM: <carry>: one\n\nbody"
    assert commits[0].author_time == datetime(2024, 5, 17, tzinfo=UTC)
    assert commits[0].committer_time == datetime(
        2024, 5, 17, 0, 1, tzinfo=UTC
    )


def test_parse_empty_output():
    assert parse_commits("") == []
    assert parse_commits("\n") == []


def test_commit_subject_and_url():
    when = datetime(2024, 5, 17, tzinfo=UTC)
    commit = Commit(
        sha="0123456789abcdef0123456789abcdef01234567",
        message="  UPSTREAM: <carry>:   keep\tit \n\nbody",
        author_time=when,
        committer_time=when,
    )

    assert commit.subject == "UPSTREAM: <carry>: keep it"
    assert commit.short_sha == "0123456789ab"
    assert commit.url("https://example.com/commit/{sha}") == (
        "https://example.com/commit/" + commit.sha
    )
