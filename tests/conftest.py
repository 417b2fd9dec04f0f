"""Shared test fixtures and configuration."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from quicknotes.config import NoteConfig
from quicknotes.errors import EditorError

PACIFIC = timezone(timedelta(hours=-7))


def note_text(title: str, created_at: str = "2015-10-21T07:28:00-07:00", body: str = "") -> str:
    return f'---\ntitle = "{title}"\ncreated_at = {created_at}\n---\n{body}'


class AppendEditor:
    """Fake editor that appends fixed text to the file and records what it edited."""

    name = "append"

    def __init__(self, contents: str | None = None) -> None:
        self.contents = contents
        self.edited: list[Path] = []

    def edit(self, path: Path) -> None:
        self.edited.append(path)
        if self.contents is not None:
            with path.open("a", encoding="utf-8") as f:
                f.write(self.contents)


class OverwriteEditor:
    """Fake editor that replaces the whole file."""

    name = "overwrite"

    def __init__(self, contents: str) -> None:
        self.contents = contents

    def edit(self, path: Path) -> None:
        path.write_text(self.contents, encoding="utf-8")


class FailingEditor:
    name = "broken-editor"

    def edit(self, path: Path) -> None:
        raise EditorError(self.name, "exited with status 1")


@pytest.fixture
def test_time():
    """2015-10-21 07:28 at UTC-7."""
    return datetime(2015, 10, 21, 7, 28, tzinfo=PACIFIC)


@pytest.fixture
def notes_root(tmp_path):
    root = tmp_path / "notes"
    root.mkdir()
    return root


@pytest.fixture
def write_note(notes_root):
    """Factory: write_note("flux.md", "Flux Report") -> path."""

    def _write(filename: str, title: str, created_at: str = "2015-10-21T07:28:00-07:00", body: str = "") -> Path:
        path = notes_root / filename
        path.write_text(note_text(title, created_at, body), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def note_config(tmp_path, notes_root):
    temp_root = tmp_path / "drafts"
    temp_root.mkdir()
    return NoteConfig(
        notes_root=notes_root,
        note_file_extension=".md",
        temp_root_override=temp_root,
    )
