"""Note store layout: scanning the notes root and naming note files.

The store is a single flat directory. Notes and daily notes live side by side:

    <notes_root>/
        flux-capacitor-design.md
        2015-10-21.md             # daily note
        .index.sqlite3            # derived cache, see quicknotes.persist
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING

from quicknotes.errors import StoreUnavailable

if TYPE_CHECKING:
    from collections.abc import Iterator
    from datetime import date

DAILY_TITLE_FORMAT = "%Y-%m-%d"


def scan(root: Path | str, extension: str) -> Iterator[Path]:
    """Yield note files directly inside root whose name ends with extension.

    The directory is listed immediately so that a missing or unreadable root
    raises StoreUnavailable here rather than on first iteration.
    """
    root_path = Path(root)
    if not root_path.exists():
        raise StoreUnavailable(root_path, "directory does not exist")
    if not root_path.is_dir():
        raise StoreUnavailable(root_path, "not a directory")
    try:
        entries = sorted(root_path.iterdir())
    except OSError as exc:
        raise StoreUnavailable(root_path, exc.strerror or str(exc)) from exc

    return (p for p in entries if _is_candidate(p, extension))


def _is_candidate(path: Path, extension: str) -> bool:
    name = path.name
    if not name.endswith(extension) or len(name) <= len(extension):
        return False
    return path.is_file()


def filename_for_title(title: str, extension: str) -> str:
    """'I'm a Note' -> 'im-a-note.md'. Non-ASCII characters are kept."""
    words = (
        "".join(c for c in word if not c.isascii() or c.isalnum())
        for word in title.lower().split(" ")
    )
    return "-".join(words) + extension


def filename_for_date(day: date, extension: str) -> str:
    return day.strftime(DAILY_TITLE_FORMAT) + extension


def next_free_path(path: Path) -> Path:
    """Return <stem>-N<ext> where N is one more than any existing suffix in the directory."""
    stem, suffix = path.stem, path.suffix
    pattern = re.compile(rf"^{re.escape(stem)}-(\d+){re.escape(suffix)}$")
    highest = 0
    for entry in path.parent.iterdir():
        m = pattern.match(entry.name)
        if m:
            highest = max(highest, int(m.group(1)))
    return path.with_name(f"{stem}-{highest + 1}{suffix}")
