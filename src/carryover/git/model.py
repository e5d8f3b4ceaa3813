"""Commit records read from the repository."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class Commit(BaseModel):
    """A commit as seen by the rebase engine. Never mutated."""

    sha: str
    message: str
    author_time: datetime
    committer_time: datetime

    model_config = ConfigDict(frozen=True)

    @property
    def short_sha(self) -> str:
        return self.sha[:12]

    @property
    def subject(self) -> str:
        """First line of the message, whitespace collapsed."""
        lines = self.message.strip().splitlines()
        return " ".join(lines[0].split()) if lines else ""

    def url(self, template: str) -> str:
        """Format a link such as ".../commit/{sha}" for this commit."""
        return template.format(sha=self.sha)
