"""Plain-text notes with a TOML preamble, found again by fuzzy search.

Layout:
    <notes_root>/
        <title-slug>.md       # one note per file, preamble first
        YYYY-MM-DD.md         # daily notes
        .index.sqlite3        # SQLite cache of the index (fully reconstructable)

Note format:
    ---
    title = "Flux Capacitor Design"
    created_at = 2015-10-21T07:28:00-07:00
    ---
    body text, never parsed
"""

from quicknotes.config import NoteConfig, load_config
from quicknotes.daily import parse_offset, resolve_daily
from quicknotes.index import Index, build
from quicknotes.matcher import MatchSession, rank
from quicknotes.models import Found, NoteRecord, NotFound, Preamble
from quicknotes.preamble import parse_preamble

__all__ = [
    "Found",
    "Index",
    "MatchSession",
    "NotFound",
    "NoteConfig",
    "NoteRecord",
    "Preamble",
    "build",
    "load_config",
    "parse_offset",
    "parse_preamble",
    "rank",
    "resolve_daily",
]
