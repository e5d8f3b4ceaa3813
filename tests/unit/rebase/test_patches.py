"""Tests for resolution patch stores."""

from carryover.rebase.patches import DirectoryPatchStore, MemoryPatchStore

SHA = "0123456789abcdef0123456789abcdef01234567"
PATCH = """diff --git a/foo.go b/foo.go
--- a/foo.go
+++ b/foo.go
@@ -1 +1 @@
-old
+new
"""


def test_directory_lookup_hit(tmp_path):
    (tmp_path / SHA).write_text(PATCH)
    store = DirectoryPatchStore(tmp_path)

    patch = store.lookup(SHA)

    assert patch is not None
    assert patch.key == SHA
    assert patch.content == PATCH
    assert patch.path == (tmp_path / SHA).resolve()


def test_directory_lookup_miss(tmp_path):
    assert DirectoryPatchStore(tmp_path).lookup(SHA) is None


def test_directory_lookup_is_exact(tmp_path):
    """Abbreviated hashes never match a stored patch."""
    (tmp_path / SHA).write_text(PATCH)
    (tmp_path / SHA[:12]).write_text(PATCH)
    store = DirectoryPatchStore(tmp_path)

    assert store.lookup(SHA[:12]) is None
    assert store.lookup(SHA.upper()) is None


def test_directory_lookup_rejects_path_like_keys(tmp_path):
    store = DirectoryPatchStore(tmp_path / "carries")
    (tmp_path / "secret").write_text("x")

    assert store.lookup("../secret") is None


def test_directory_missing_is_empty(tmp_path):
    store = DirectoryPatchStore(tmp_path / "nope")

    assert store.lookup(SHA) is None
    assert store.keys() == []


def test_directory_keys_lists_hashes_only(tmp_path):
    other = "f" * 40
    (tmp_path / SHA).write_text(PATCH)
    (tmp_path / other).write_text(PATCH)
    (tmp_path / "README").write_text("notes")

    assert DirectoryPatchStore(tmp_path).keys() == [SHA, other]


def test_sha256_keys_accepted(tmp_path):
    sha256 = "a" * 64
    (tmp_path / sha256).write_text(PATCH)

    assert DirectoryPatchStore(tmp_path).lookup(sha256).key == sha256


def test_memory_store():
    store = MemoryPatchStore({SHA: PATCH})
    store.add("f" * 40, "other")

    assert store.lookup(SHA).content == PATCH
    assert store.lookup(SHA).path is None
    assert store.lookup("f" * 40).content == "other"
    assert store.lookup("e" * 40) is None
