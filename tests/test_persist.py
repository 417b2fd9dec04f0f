"""Tests for quicknotes.persist."""

import logging
import os
import sqlite3
import sys

import pytest

from quicknotes.index import Index, build
from quicknotes.models import NoteRecord
from quicknotes.persist import db_path_for, delete_note, load_index, save_index, upsert_note


@pytest.fixture
def db_path(notes_root):
    return db_path_for(notes_root)


class TestSaveAndLoad:
    """Round-tripping the index through SQLite."""

    def test_saved_index_loads_back_equal(self, notes_root, write_note, db_path):
        write_note("flux.md", "Flux Report")
        write_note("daily.md", "2015-10-21", "2015-10-21T23:59:59.123456+00:00")
        index = build(notes_root, ".md")

        assert save_index(index, db_path) == 2
        loaded = load_index(db_path)

        assert loaded.records == index.records

    def test_db_lives_in_notes_root_and_is_not_a_note(self, notes_root, write_note, db_path):
        write_note("flux.md", "Flux Report")
        save_index(build(notes_root, ".md"), db_path)

        assert db_path.parent == notes_root
        assert [r.title for r in build(notes_root, ".md")] == ["Flux Report"]

    def test_save_replaces_previous_contents(self, notes_root, write_note, db_path):
        """Deleted notes disappear from the persisted index on the next save."""
        doomed = write_note("doomed.md", "Doomed")
        write_note("kept.md", "Kept")
        save_index(build(notes_root, ".md"), db_path)

        doomed.unlink()
        save_index(build(notes_root, ".md"), db_path)

        assert [r.title for r in load_index(db_path)] == ["Kept"]

    def test_missing_db_loads_empty(self, tmp_path):
        index = load_index(tmp_path / "nothing.sqlite3")

        assert len(index) == 0

    def test_invalid_row_is_skipped_with_warning(self, notes_root, write_note, db_path, caplog):
        write_note("good.md", "Good")
        save_index(build(notes_root, ".md"), db_path)
        conn = sqlite3.connect(db_path)
        with conn:
            conn.execute(
                "INSERT INTO notes (filepath, title, created_at) VALUES (?, ?, ?)",
                (str(notes_root / "bad.md"), "Bad", "not a date"),
            )
            conn.execute(
                "INSERT INTO notes (filepath, title, created_at) VALUES (?, ?, ?)",
                (str(notes_root / "naive.md"), "Naive", "2015-10-21T07:28:00"),
            )
        conn.close()
        caplog.set_level(logging.WARNING, logger="quicknotes.persist")

        index = load_index(db_path)

        assert [r.title for r in index] == ["Good"]
        assert sorted(w.path.name for w in index.warnings) == ["bad.md", "naive.md"]
        assert "skipping entry" in caplog.text

    def test_failed_save_keeps_previous_contents(self, notes_root, write_note, db_path, test_time):
        """The drop and the inserts commit together or not at all."""
        write_note("kept.md", "Kept")
        save_index(build(notes_root, ".md"), db_path)
        clash = NoteRecord(path=notes_root / "clash.md", title="Clash", created_at=test_time)

        with pytest.raises(sqlite3.IntegrityError):
            save_index(Index(records=(clash, clash)), db_path)

        assert [r.title for r in load_index(db_path)] == ["Kept"]

    @pytest.mark.skipif(sys.platform != "linux", reason="needs a filesystem that accepts non-UTF-8 names")
    def test_non_utf8_file_name_is_left_out(self, notes_root, write_note, db_path, caplog):
        write_note("good.md", "Good")
        write_note(os.fsdecode(b"bad-\xff.md"), "Bad name")
        index = build(notes_root, ".md")
        assert len(index) == 2
        caplog.set_level(logging.WARNING, logger="quicknotes.persist")

        saved = save_index(index, db_path)

        assert saved == 1
        assert [r.title for r in load_index(db_path)] == ["Good"]
        assert "not valid UTF-8" in caplog.text


class TestSingleNoteUpdates:
    """Keeping the persisted index current after an edit."""

    def test_upsert_inserts_then_updates(self, notes_root, db_path, test_time):
        path = notes_root / "flux.md"
        upsert_note(db_path, NoteRecord(path=path, title="Flux", created_at=test_time))
        upsert_note(db_path, NoteRecord(path=path, title="Flux Report", created_at=test_time))

        loaded = load_index(db_path)

        assert [(r.path, r.title) for r in loaded] == [(path, "Flux Report")]

    def test_delete_removes_entry(self, notes_root, db_path, test_time):
        path = notes_root / "flux.md"
        upsert_note(db_path, NoteRecord(path=path, title="Flux", created_at=test_time))

        delete_note(db_path, path)

        assert len(load_index(db_path)) == 0

    def test_delete_of_unknown_path_is_a_noop(self, notes_root, db_path):
        delete_note(db_path, notes_root / "ghost.md")

        assert len(load_index(db_path)) == 0
