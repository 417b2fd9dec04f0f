"""Exception taxonomy for quicknotes.

Store-level and offset errors abort a command; MalformedPreamble is per-note and
is collected into the index warnings instead of propagating.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path


class QuicknotesError(Exception):
    """Base class for all errors surfaced to the user."""


class ConfigError(QuicknotesError):
    """The configuration file is missing required values or holds invalid ones."""


class StoreUnavailable(QuicknotesError):
    """The notes root does not exist or cannot be listed."""

    def __init__(self, root: Path, reason: str) -> None:
        self.root = root
        self.reason = reason
        super().__init__(f"notes root {root} is unavailable: {reason}")


class MalformedPreamble(QuicknotesError):
    """A note does not start with a valid preamble block."""


class UnparseableOffset(QuicknotesError):
    """A daily-note date expression matched none of the accepted grammars."""

    GRAMMAR = (
        "accepted forms: today | yesterday | tomorrow | YYYY-MM-DD | "
        "[+|-]N days|weeks [ago]  (e.g. '2 days ago', '-1 week', '+3 days')"
    )

    def __init__(self, tokens: Sequence[str]) -> None:
        self.tokens = tuple(tokens)
        expression = " ".join(self.tokens)
        super().__init__(f"could not understand date {expression!r}; {self.GRAMMAR}")


class EditorError(QuicknotesError):
    """The editor could not be launched, or exited unsuccessfully."""

    def __init__(self, editor: str, reason: str) -> None:
        self.editor = editor
        super().__init__(f"could not run editor '{editor}': {reason}")


class NoteStoreError(QuicknotesError):
    """A freshly edited note could not be moved into the notes root."""

    def __init__(self, message: str, preserved_at: Path | None = None) -> None:
        self.preserved_at = preserved_at
        if preserved_at is not None:
            message = f"{message}. It still exists at {preserved_at}"
        super().__init__(message)
