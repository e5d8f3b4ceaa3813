"""Tests for CarryFlow: cherry-pick with resolution patch fallback."""

import pytest
from fakes import FakeWorkingTree, make_commit

from carryover.core.errors import PatchApplyError
from carryover.rebase.carry import RESOLUTION_TRAILER, CarryFlow
from carryover.rebase.outcome import AppliedDirect, AppliedViaResolution, Failed
from carryover.rebase.patches import MemoryPatchStore

URL = "https://github.com/openshift/kubernetes/commit/{sha}"


@pytest.fixture
def commit():
    return make_commit("c1", "UPSTREAM: <carry>: keep it")


def test_clean_pick_applies_direct(commit):
    tree = FakeWorkingTree()
    flow = CarryFlow(tree, MemoryPatchStore())

    outcome = flow.carry(commit)

    assert outcome == AppliedDirect(sha=commit.sha)
    assert tree.history == [commit.sha]
    assert tree.aborts == 0


def test_conflict_with_patch_applies_resolution(commit):
    tree = FakeWorkingTree(conflicts={commit.sha})
    flow = CarryFlow(tree, MemoryPatchStore({commit.sha: "diff"}))

    outcome = flow.carry(commit)

    assert outcome == AppliedViaResolution(
        sha=commit.sha, patch_id=commit.sha
    )
    assert tree.aborts == 1
    assert tree.applied_patches == [commit.sha]
    assert tree.history == [commit.sha]
    assert tree.clean


def test_conflict_without_patch_fails_with_reference(commit):
    tree = FakeWorkingTree(conflicts={commit.sha})
    flow = CarryFlow(tree, MemoryPatchStore(), commit_url=URL)

    outcome = flow.carry(commit)

    assert isinstance(outcome, Failed)
    assert outcome.reason == "manual-intervention-required"
    assert outcome.reference == URL.format(sha=commit.sha)
    assert tree.history == []
    assert tree.clean


def test_status_failure_still_aborts(commit):
    """A tree whose status cannot be read is still restored."""
    tree = FakeWorkingTree(conflicts={commit.sha}, status_fails=True)
    flow = CarryFlow(tree, MemoryPatchStore())

    outcome = flow.carry(commit)

    assert isinstance(outcome, Failed)
    assert tree.aborts == 1
    assert tree.clean


def test_broken_patch_raises(commit):
    tree = FakeWorkingTree(
        conflicts={commit.sha}, broken_patches={commit.sha}
    )
    flow = CarryFlow(tree, MemoryPatchStore({commit.sha: "diff"}))

    with pytest.raises(PatchApplyError):
        flow.carry(commit)
    assert tree.history == []


def test_annotate_adds_trailer(commit):
    tree = FakeWorkingTree(conflicts={commit.sha})
    flow = CarryFlow(
        tree, MemoryPatchStore({commit.sha: "diff"}), annotate=True
    )

    flow.carry(commit)

    message = tree.messages[commit.sha]
    assert message.endswith(f"{RESOLUTION_TRAILER}: {commit.sha}")
    assert message.startswith(f"message of {commit.sha}")


def test_no_trailer_on_clean_pick(commit):
    tree = FakeWorkingTree()
    flow = CarryFlow(tree, MemoryPatchStore(), annotate=True)

    flow.carry(commit)

    assert RESOLUTION_TRAILER not in tree.messages[commit.sha]


def test_patch_is_looked_up_by_full_hash_only(commit):
    tree = FakeWorkingTree(conflicts={commit.sha})
    patches = MemoryPatchStore({commit.short_sha: "diff"})
    flow = CarryFlow(tree, patches)

    assert isinstance(flow.carry(commit), Failed)
