"""Error types shared across vodrescue."""

from __future__ import annotations


class UserError(Exception):
    """A fatal, user-facing error. The CLI prints the message and exits with status 1."""
