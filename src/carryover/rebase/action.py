"""Commit message marker parsing.

Downstream commits declare how a rebase should treat them with a
marker anywhere in the message:

    UPSTREAM: <carry>: keep the vendored patch for foo
    UPSTREAM: <drop>: revert once upstream ships the fix
    UPSTREAM: 12345: backport of upstream PR 12345

Angle brackets around carry/drop are optional; PR numbers are
bare digits. Only the first marker counts.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

MARKER_RE = re.compile(r"UPSTREAM: (?P<action>[<>\w]+):")


@dataclass(frozen=True)
class Carry:
    """Replay the commit onto the new base."""


@dataclass(frozen=True)
class UpstreamPick(Carry):
    """Commit picked from an upstream pull request.

    There is no dedicated pick flow yet, so this is a Carry that
    remembers which PR it came from.
    """

    pr: str


@dataclass(frozen=True)
class Drop:
    """Discard the commit."""


@dataclass(frozen=True)
class Unknown:
    """Marker missing or not understood.

    Attributes:
        raw: The unrecognized tag, or None when no marker was found
    """

    raw: str | None = None


Action = Union[Carry, UpstreamPick, Drop, Unknown]


def parse_marker(message: str) -> str | None:
    """Return the raw tag of the first UPSTREAM marker, if any."""
    match = MARKER_RE.search(message or "")
    return match.group("action") if match else None


def classify(message: str) -> Action:
    """Map a commit message to the action its marker requests.

    Never raises; anything unexpected becomes Unknown.
    """
    raw = parse_marker(message)
    if raw is None:
        return Unknown()

    if raw.isdecimal() and raw.isascii():
        return UpstreamPick(pr=raw)

    tag = raw
    if tag.startswith("<") and tag.endswith(">"):
        tag = tag[1:-1]

    if tag == "carry":
        return Carry()
    if tag == "drop":
        return Drop()
    return Unknown(raw=raw)
