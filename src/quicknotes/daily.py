"""Resolve daily-note date expressions.

    quicknotes daily                  -> today
    quicknotes daily yesterday        -> today - 1
    quicknotes daily 2 days ago       -> today - 2
    quicknotes daily -2 days          -> today - 2   (same as above, never +2)
    quicknotes daily +1 week          -> today + 7
    quicknotes daily 2015-10-21       -> that date

"now" is always passed in explicitly so resolution is deterministic.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING

from quicknotes.errors import UnparseableOffset
from quicknotes.models import DateOffset, Found, NotFound
from quicknotes.store import DAILY_TITLE_FORMAT, filename_for_date

if TYPE_CHECKING:
    from collections.abc import Sequence

    from quicknotes.index import Index

_KEYWORDS = {"today": 0, "yesterday": -1, "tomorrow": 1}
_UNIT_DAYS = {"d": 1, "day": 1, "days": 1, "w": 7, "week": 7, "weeks": 7}

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_RELATIVE_RE = re.compile(
    r"^(?P<sign>[+-])?(?P<magnitude>\d+)\s*(?P<unit>[a-z]+)(?:\s+(?P<ago>ago))?$"
)


def parse_offset(tokens: Sequence[str]) -> DateOffset:
    """Parse CLI tokens into a DateOffset. Raises UnparseableOffset."""
    words = " ".join(tokens).lower().split()
    expression = " ".join(words)

    if not words:
        return DateOffset(days=0)
    if expression in _KEYWORDS:
        return DateOffset(days=_KEYWORDS[expression])

    if _ISO_DATE_RE.match(expression):
        try:
            return DateOffset(date=date.fromisoformat(expression))
        except ValueError as exc:
            raise UnparseableOffset(tokens) from exc

    m = _RELATIVE_RE.match(expression)
    if m is None or m.group("unit") not in _UNIT_DAYS:
        raise UnparseableOffset(tokens)

    days = int(m.group("magnitude")) * _UNIT_DAYS[m.group("unit")]
    # "ago" and "-" both point into the past; together they still mean the past
    in_past = m.group("sign") == "-" or m.group("ago") is not None
    return DateOffset(days=-days if in_past else days)


def resolve_date(offset: DateOffset, now: datetime) -> date:
    """Turn an offset into a calendar date relative to now's local date."""
    if offset.date is not None:
        return offset.date
    return now.date() + timedelta(days=offset.days)


def daily_identity(day: date, extension: str) -> tuple[str, str]:
    """Canonical (title, filename) of the daily note for day."""
    return day.strftime(DAILY_TITLE_FORMAT), filename_for_date(day, extension)


def resolve_daily(
    index: Index,
    tokens: Sequence[str],
    *,
    now: datetime,
    root: Path | str,
    extension: str,
) -> Found | NotFound:
    """Find the daily note for the expression in tokens, or describe the one to create."""
    day = resolve_date(parse_offset(tokens), now)
    title, filename = daily_identity(day, extension)
    path = Path(root) / filename

    record = index.find_by_identity(path) or index.find_by_identity(title)
    if record is not None:
        return Found(record)

    if day == now.date():
        created_at = now
    else:
        created_at = datetime.combine(day, now.timetz())
    return NotFound(title=title, created_at=created_at, path=path)
