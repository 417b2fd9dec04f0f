"""Data models for the note index."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import date, datetime

PREAMBLE_MARKER = "---"


def toml_string(value: str) -> str:
    """Render value as a TOML basic string."""
    out = ['"']
    for ch in value:
        if ch == "\\":
            out.append("\\\\")
        elif ch == '"':
            out.append('\\"')
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\t":
            out.append("\\t")
        elif ch == "\r":
            out.append("\\r")
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\u{ord(ch):04X}")
        else:
            out.append(ch)
    out.append('"')
    return "".join(out)


@dataclass(frozen=True)
class Preamble:
    """The metadata block at the top of every note."""

    title: str
    created_at: datetime    # always timezone-aware

    def serialize(self) -> str:
        """Render the block exactly as it is written to disk (no trailing newline)."""
        lines = [
            PREAMBLE_MARKER,
            f"title = {toml_string(self.title)}",
            f"created_at = {self.created_at.isoformat()}",
            PREAMBLE_MARKER,
        ]
        return "\n".join(lines)

    def template(self) -> str:
        """Initial contents of a new note file."""
        return self.serialize() + "\n\n"


@dataclass(frozen=True)
class NoteRecord:
    """One indexed note on disk. path is the unique key."""

    path: Path
    title: str
    created_at: datetime

    @classmethod
    def from_preamble(cls, path: Path, preamble: Preamble) -> NoteRecord:
        return cls(path=Path(path), title=preamble.title, created_at=preamble.created_at)

    @property
    def preamble(self) -> Preamble:
        return Preamble(title=self.title, created_at=self.created_at)

    def sort_key(self) -> tuple[str, str, str]:
        """Default deterministic order: title (case-insensitive), then path."""
        return (self.title.casefold(), self.title, str(self.path))


@dataclass(frozen=True)
class IndexWarning:
    """A note that was skipped while building the index."""

    path: Path
    message: str

    def __str__(self) -> str:
        return f"could not index note at {self.path}: {self.message}"


@dataclass(frozen=True)
class MatchResult:
    record: NoteRecord
    score: int

    def sort_key(self) -> tuple[int, str, str, str]:
        return (-self.score, *self.record.sort_key())


@dataclass(frozen=True)
class DateOffset:
    """A parsed date expression: absolute when date is set, else days from today."""

    date: date | None = None
    days: int = 0

    @property
    def is_absolute(self) -> bool:
        return self.date is not None


@dataclass(frozen=True)
class Found:
    """The daily note already exists."""

    record: NoteRecord

    @property
    def path(self) -> Path:
        return self.record.path


@dataclass(frozen=True)
class NotFound:
    """No daily note exists yet; the caller should create one at path."""

    title: str
    created_at: datetime
    path: Path

    @property
    def preamble(self) -> Preamble:
        return Preamble(title=self.title, created_at=self.created_at)

    def template(self) -> str:
        return self.preamble.template()
