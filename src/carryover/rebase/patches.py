"""Stores of pre-recorded conflict resolutions."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, ConfigDict

from carryover.core.log import logger

# Full SHA-1 or SHA-256 object name
COMMIT_KEY_RE = re.compile(r"^(?:[0-9a-f]{40}|[0-9a-f]{64})$")


class ResolutionPatch(BaseModel):
    """A unified diff that replaces one conflicting carry.

    Attributes:
        key: Full hash of the original commit
        content: Patch text, consumable by `git apply`
        path: Where the patch lives on disk, if it does
    """

    key: str
    content: str
    path: Path | None = None

    model_config = ConfigDict(frozen=True)


class PatchStore(Protocol):
    """Lookup of resolution patches by exact commit hash."""

    def lookup(self, sha: str) -> ResolutionPatch | None:
        """Return the patch recorded for sha, or None."""
        ...


class DirectoryPatchStore:
    """Flat directory of patches, one file per commit hash.

    carries/
        0123abcd...ef   <- unified diff for commit 0123abcd...ef
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def path_for(self, sha: str) -> Path:
        return self.directory / sha

    def lookup(self, sha: str) -> ResolutionPatch | None:
        if not COMMIT_KEY_RE.match(sha):
            logger.debug("Not a full commit hash, skipping lookup", key=sha)
            return None

        path = self.path_for(sha)
        logger.debug("Looking for a fixed carry", path=str(path))
        if not path.is_file():
            return None
        return ResolutionPatch(
            key=sha, content=path.read_text(), path=path.resolve()
        )

    def keys(self) -> list[str]:
        """Hashes that have a recorded patch, sorted."""
        if not self.directory.is_dir():
            return []
        return sorted(
            p.name for p in self.directory.iterdir()
            if p.is_file() and COMMIT_KEY_RE.match(p.name)
        )


class MemoryPatchStore:
    """Patch store held in a dict."""

    def __init__(self, patches: dict[str, str] | None = None):
        self._patches = dict(patches or {})

    def add(self, sha: str, content: str) -> None:
        self._patches[sha] = content

    def lookup(self, sha: str) -> ResolutionPatch | None:
        content = self._patches.get(sha)
        if content is None:
            return None
        return ResolutionPatch(key=sha, content=content)
