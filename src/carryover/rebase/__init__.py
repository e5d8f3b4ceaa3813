"""Commit classification and carry replay."""

from carryover.rebase.action import (
    Action,
    Carry,
    Drop,
    Unknown,
    UpstreamPick,
    classify,
)

__all__ = ["Action", "Carry", "Drop", "Unknown", "UpstreamPick", "classify"]
