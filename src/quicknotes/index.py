"""Build the in-memory note index from the notes root.

The index is a pure function of the files on disk at scan time: every build
starts from scratch and nothing is carried over from a previous one.

Entry points:
    build(root, extension)                # scan + parse, concurrently
    index.find_by_identity("2015-10-21")  # exact title or path lookup
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from quicknotes.errors import MalformedPreamble
from quicknotes.models import IndexWarning, NoteRecord
from quicknotes.preamble import parse_preamble
from quicknotes.store import scan

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

logger = logging.getLogger("quicknotes.index")


@dataclass(frozen=True)
class Index:
    """Immutable snapshot of all notes that parsed, plus the ones that didn't."""

    records: tuple[NoteRecord, ...] = ()
    warnings: tuple[IndexWarning, ...] = ()
    _by_path: dict[Path, NoteRecord] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._by_path.update((r.path, r) for r in self.records)

    @classmethod
    def from_records(cls, records: Iterable[NoteRecord], warnings: Iterable[IndexWarning] = ()) -> Index:
        """Create an index in default order, keeping the last record seen per path."""
        unique = {r.path: r for r in records}
        ordered = sorted(unique.values(), key=NoteRecord.sort_key)
        return cls(
            records=tuple(ordered),
            warnings=tuple(sorted(warnings, key=lambda w: str(w.path))),
        )

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[NoteRecord]:
        return iter(self.records)

    def get(self, path: Path | str) -> NoteRecord | None:
        return self._by_path.get(Path(path))

    def find_by_identity(self, title_or_path: Path | str) -> NoteRecord | None:
        """Exact lookup by path, file name, or title (in that order).

        Titles are not unique; the first record in default order wins.
        """
        if isinstance(title_or_path, Path):
            return self._by_path.get(title_or_path)

        record = self._by_path.get(Path(title_or_path))
        if record is not None:
            return record
        for r in self.records:
            if r.path.name == title_or_path:
                return r
        for r in self.records:
            if r.title == title_or_path:
                return r
        return None


def read_record(path: Path) -> NoteRecord | IndexWarning:
    """Read and parse one note file. Never raises for per-file problems."""
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        return IndexWarning(path=path, message=f"note is not valid UTF-8: {exc.reason}")
    except OSError as exc:
        return IndexWarning(path=path, message=f"could not open note for indexing: {exc.strerror or exc}")

    try:
        preamble = parse_preamble(text)
    except MalformedPreamble as exc:
        return IndexWarning(path=path, message=f"could not read preamble from note: {exc}")

    return NoteRecord.from_preamble(path, preamble)


def build(root: Path | str, extension: str, *, workers: int | None = None) -> Index:
    """Scan root and parse every candidate note into an Index.

    Only StoreUnavailable (raised by scan) aborts the build; notes that fail to
    read or parse end up in Index.warnings.
    """
    paths = list(scan(root, extension))
    logger.debug("indexing %d candidate notes in %s", len(paths), root)

    records: list[NoteRecord] = []
    warnings: list[IndexWarning] = []
    if paths:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            for result in pool.map(read_record, paths):
                if isinstance(result, IndexWarning):
                    logger.warning("%s", result)
                    warnings.append(result)
                else:
                    records.append(result)

    index = Index.from_records(records, warnings)
    logger.info("indexed %d notes (%d skipped) in %s", len(index), len(index.warnings), root)
    return index
