"""Preamble parsing.

Every note starts with a TOML block between two marker lines:

    ---
    title = "Flux Capacitor Design"
    created_at = 2015-10-21T07:28:00-07:00
    ---

Anything after the closing marker is the note body and is never parsed.
Keys may appear in any order; unknown keys are ignored.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from quicknotes.errors import MalformedPreamble
from quicknotes.models import PREAMBLE_MARKER, Preamble

_BOM = "\ufeff"


@dataclass(frozen=True)
class ParsedNote:
    preamble: Preamble
    body: str


def parse_note(text: str) -> ParsedNote:
    """Split a note into its preamble and body. Raises MalformedPreamble."""
    if text.startswith(_BOM):
        text = text[len(_BOM):]

    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip("\r\n") != PREAMBLE_MARKER:
        msg = f"note must start with a '{PREAMBLE_MARKER}' line"
        raise MalformedPreamble(msg)

    for i in range(1, len(lines)):
        if lines[i].rstrip("\r\n") == PREAMBLE_MARKER:
            block = "".join(lines[1:i])
            body = "".join(lines[i + 1:])
            return ParsedNote(preamble=_parse_block(block), body=body)

    msg = f"preamble is missing its closing '{PREAMBLE_MARKER}' line"
    raise MalformedPreamble(msg)


def parse_preamble(text: str) -> Preamble:
    """Extract just the preamble from note text."""
    return parse_note(text).preamble


def _parse_block(block: str) -> Preamble:
    try:
        raw = tomllib.loads(block)
    except tomllib.TOMLDecodeError as exc:
        msg = f"preamble is not valid TOML: {exc}"
        raise MalformedPreamble(msg) from exc

    return Preamble(title=_title(raw), created_at=_created_at(raw))


def _title(raw: dict[str, Any]) -> str:
    if "title" not in raw:
        msg = "preamble is missing 'title'"
        raise MalformedPreamble(msg)
    title = raw["title"]
    if not isinstance(title, str):
        msg = f"'title' must be a string, not {type(title).__name__}"
        raise MalformedPreamble(msg)
    return title


def _created_at(raw: dict[str, Any]) -> datetime:
    if "created_at" not in raw:
        msg = "preamble is missing 'created_at'"
        raise MalformedPreamble(msg)

    value = raw["created_at"]
    if isinstance(value, str):
        # Quoted timestamps are accepted as long as they carry an offset
        try:
            value = datetime.fromisoformat(value)
        except ValueError as exc:
            msg = f"'created_at' is not a valid timestamp: {exc}"
            raise MalformedPreamble(msg) from exc

    if not isinstance(value, datetime):
        msg = f"'created_at' must be a timestamp, not {type(value).__name__}"
        raise MalformedPreamble(msg)
    if value.tzinfo is None or value.utcoffset() is None:
        msg = "'created_at' must include a UTC offset"
        raise MalformedPreamble(msg)
    return value
