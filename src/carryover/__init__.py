"""Rebase a long-lived downstream fork onto a new upstream release."""

__version__ = "0.1.0"
