"""Read-side git access: refs, remotes and history."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol

from carryover.core.errors import BackendFailure, RemoteMismatch
from carryover.core.log import logger
from carryover.core.runner import Runner
from carryover.git.command import GitCommand
from carryover.git.model import Commit

FIELD_SEP = "\x1f"
RECORD_SEP = "\x1e"


class VersionControlPort(Protocol):
    """Repository queries and branch set-up used by the orchestrator."""

    def remotes(self) -> dict[str, str]:
        ...

    def check_remotes(self, expected: dict[str, str]) -> None:
        ...

    def head(self) -> Commit:
        ...

    def commit(self, sha: str) -> Commit:
        ...

    def create_branch(self, name: str, ref: str) -> None:
        ...

    def merge(self, ref: str, strategy: str | None = None) -> None:
        ...

    def log(
        self,
        start: str | None = None,
        stop_at: str | None = None,
        exclude: str | None = None,
        no_merges: bool = False,
    ) -> list[Commit]:
        ...


def parse_commits(output: str) -> list[Commit]:
    """Parse `%H%x1f%at%x1f%ct%x1f%B%x1e` formatted git output."""
    commits = []
    for record in output.split(RECORD_SEP):
        record = record.lstrip("\n")
        if not record.strip():
            continue
        sha, author_ts, committer_ts, message = record.split(FIELD_SEP, 3)
        commits.append(Commit(
            sha=sha.strip(),
            message=message.rstrip("\n"),
            author_time=datetime.fromtimestamp(int(author_ts), tz=UTC),
            committer_time=datetime.fromtimestamp(int(committer_ts), tz=UTC),
        ))
    return commits


class GitRepository:
    """VersionControlPort backed by the git command line."""

    def __init__(self, git: GitCommand):
        self.git = git

    @classmethod
    def open(
        cls,
        path: Path,
        templates: dict[str, str],
        runner: Runner | None = None,
    ) -> GitRepository:
        """Open the repository whose working tree is at path.

        Raises:
            BackendFailure: If path is not inside a git work tree
        """
        path = Path(path).expanduser()
        if not path.is_dir():
            raise BackendFailure(
                f"opening repository {path}", "no such directory"
            )
        git = GitCommand(path, templates, runner)
        git.run("git_dir", f"opening repository {path}")
        logger.debug("Opened repository", path=str(path))
        return cls(git)

    @property
    def path(self) -> Path:
        return self.git.workdir

    def remotes(self) -> dict[str, str]:
        """Map every remote name to its (first) fetch URL."""
        result = self.git.run("remote_list", "listing remotes")
        urls = {}
        for name in result.stdout.split():
            fetch = self.git.run(
                "remote_url", f"reading URL of remote {name}", remote=name
            )
            urls[name] = fetch.stdout.strip().splitlines()[0]
        return urls

    def check_remotes(self, expected: dict[str, str]) -> None:
        """Check each expected remote fetches from a matching URL.

        Args:
            expected: remote name -> substring of its fetch URL,
                e.g. {"upstream": "github.com:kubernetes/kubernetes.git"}

        Raises:
            RemoteMismatch: On a missing remote or unexpected URL
        """
        actual = self.remotes()
        for name, path in expected.items():
            fetch_url = actual.get(name)
            if fetch_url is None:
                raise RemoteMismatch(f"remote {name} is not configured")
            if path not in fetch_url:
                raise RemoteMismatch(
                    f"fetch URL does not match, remote={name} path={path}",
                    f"fetch-url={fetch_url}",
                )
            logger.info(
                "git remote setup properly", remote=name, fetch_url=fetch_url
            )

    def head(self) -> Commit:
        return self.commit("HEAD")

    def commit(self, sha: str) -> Commit:
        result = self.git.run("show", f"reading commit {sha}", ref=sha)
        commits = parse_commits(result.stdout)
        if not commits:
            raise BackendFailure(f"reading commit {sha}", "no such commit")
        return commits[0]

    def create_branch(self, name: str, ref: str) -> None:
        self.git.run(
            "checkout_branch",
            f"creating branch {name} from {ref}",
            branch=name,
            ref=ref,
        )
        logger.info("Created branch", branch=name, ref=ref)

    def merge(self, ref: str, strategy: str | None = None) -> None:
        args = ["-s", strategy, ref] if strategy else [ref]
        self.git.run("merge", f"merging {ref}", args=args)
        logger.info("Merged", ref=ref, strategy=strategy)

    def log(
        self,
        start: str | None = None,
        stop_at: str | None = None,
        exclude: str | None = None,
        no_merges: bool = False,
    ) -> list[Commit]:
        """Commits reachable from start (default HEAD), newest first.

        Args:
            start: Ref to walk back from
            stop_at: Hash of the last commit to include
            exclude: Hide commits reachable from this ref
            no_merges: Skip merge commits
        """
        args = ["--no-merges"] if no_merges else []
        args.append(start or "HEAD")
        if exclude:
            args.append(f"^{exclude}")

        result = self.git.run("log", f"reading log of {start or 'HEAD'}",
                              args=args)
        commits = []
        for commit in parse_commits(result.stdout):
            commits.append(commit)
            if stop_at and commit.sha == stop_at:
                break
        return commits
