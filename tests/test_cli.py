"""Tests for the quicknotes command line."""

import os
import stat
import sys

import pytest
from click.testing import CliRunner

from quicknotes.cli import cli
from quicknotes.persist import load_index

pytestmark = pytest.mark.skipif(os.name == "nt", reason="fake editor is a shell script")


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def editor_script(tmp_path):
    """An 'editor' that appends a line to whatever file it is given."""
    script = tmp_path / "fake-editor.sh"
    script.write_text('#!/bin/sh\necho hello >> "$1"\n')
    script.chmod(script.stat().st_mode | stat.S_IEXEC)
    return script


@pytest.fixture
def config_file(tmp_path, notes_root, editor_script):
    path = tmp_path / "config.toml"
    path.write_text(f'notes_root = "{notes_root}"\nnote_file_extension = ".md"\neditor_command = "{editor_script}"\n')
    return path


@pytest.fixture
def invoke(runner, config_file, monkeypatch, test_time):
    """Run the CLI against the test config with a fixed clock."""
    monkeypatch.setattr("quicknotes.cli._now", lambda: test_time)

    def _invoke(*args, **kwargs):
        return runner.invoke(cli, ["--config", str(config_file), *args], **kwargs)

    return _invoke


class TestIndexCommand:
    def test_reports_count_and_persists(self, invoke, write_note, notes_root, config_file):
        write_note("flux.md", "Flux Report")
        write_note("cap.md", "Flux Capacitor Design")
        (notes_root / "broken.md").write_text("no preamble\n")

        result = invoke("index")

        assert result.exit_code == 0, result.output
        assert "Indexed 2 notes" in result.output
        assert "skipped 1 note(s)" in result.output
        assert len(load_index(notes_root / ".index.sqlite3")) == 2

    @pytest.mark.skipif(sys.platform != "linux", reason="needs a filesystem that accepts non-UTF-8 names")
    def test_non_utf8_file_name_is_reported_not_fatal(self, invoke, write_note, notes_root):
        write_note("flux.md", "Flux Report")
        write_note(os.fsdecode(b"bad-\xff.md"), "Bad name")

        result = invoke("index")

        assert result.exit_code == 0, result.output
        assert "Indexed 1 notes" in result.output
        assert "not valid UTF-8" in result.output


class TestSearchCommand:
    def test_prints_best_match_first(self, invoke, write_note):
        write_note("report.md", "Flux Report")
        write_note("cap.md", "Flux Capacitor Design")

        result = invoke("search", "fluxcap")

        assert result.exit_code == 0, result.output
        assert "Flux Capacitor Design" in result.output
        assert "Flux Report" not in result.output

    def test_no_results(self, invoke, write_note):
        write_note("report.md", "Flux Report")

        result = invoke("search", "zzz")

        assert result.exit_code == 0
        assert "(no results)" in result.output

    def test_missing_notes_root_is_an_error(self, runner, tmp_path):
        config = tmp_path / "config.toml"
        config.write_text(f'notes_root = "{tmp_path / "nowhere"}"\n')

        result = runner.invoke(cli, ["--config", str(config), "search", "x"])

        assert result.exit_code == 1
        assert "unavailable" in result.output


class TestDailyCommand:
    def test_creates_note_for_relative_offset(self, invoke, notes_root):
        result = invoke("daily", "2", "days", "ago")

        assert result.exit_code == 0, result.output
        path = notes_root / "2015-10-19.md"
        assert f"Saved {path}" in result.output
        assert path.read_text().endswith("hello\n")

    def test_minus_offset_reaches_the_same_note(self, invoke, notes_root):
        invoke("daily", "2", "days", "ago")

        result = invoke("daily", "-2", "days")

        assert result.exit_code == 0, result.output
        assert f"Saved {notes_root / '2015-10-19.md'}" in result.output
        assert notes_root.joinpath("2015-10-19.md").read_text().endswith("hello\nhello\n")
        assert sorted(p.name for p in notes_root.glob("*.md")) == ["2015-10-19.md"]

    def test_unparseable_offset_exits_with_error(self, invoke, notes_root):
        result = invoke("daily", "someday")

        assert result.exit_code == 1
        assert "could not understand date" in result.output
        assert list(notes_root.glob("*.md")) == []


class TestNewCommand:
    def test_saves_note_under_title(self, invoke, notes_root):
        result = invoke("new", "My", "Note")

        assert result.exit_code == 0, result.output
        assert f"Saved {notes_root / 'my-note.md'}" in result.output

    def test_requires_a_title(self, invoke):
        result = invoke("new")

        assert result.exit_code == 2


class TestOpenCommand:
    def test_picks_numbered_result_and_edits_it(self, invoke, write_note):
        path = write_note("cap.md", "Flux Capacitor Design")
        write_note("report.md", "Flux Report")

        result = invoke("open", "fluxcap", input="1\n")

        assert result.exit_code == 0, result.output
        assert path.read_text().endswith("hello\n")

    def test_requery_then_pick(self, invoke, write_note):
        cap = write_note("cap.md", "Flux Capacitor Design")
        report = write_note("report.md", "Flux Report")

        result = invoke("open", input="report\n1\n")

        assert result.exit_code == 0, result.output
        assert report.read_text().endswith("hello\n")
        assert not cap.read_text().endswith("hello\n")

    def test_empty_answer_opens_nothing(self, invoke, write_note):
        path = write_note("cap.md", "Flux Capacitor Design")

        result = invoke("open", input="\n")

        assert result.exit_code == 0, result.output
        assert not path.read_text().endswith("hello\n")

    def test_cached_uses_persisted_index(self, invoke, write_note):
        path = write_note("cap.md", "Flux Capacitor Design")
        invoke("index")

        result = invoke("open", "--cached", "cap", input="1\n")

        assert result.exit_code == 0, result.output
        assert path.read_text().endswith("hello\n")


class TestFirstRun:
    def test_missing_config_is_generated(self, runner, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path))
        config = tmp_path / "conf" / "config.toml"

        result = runner.invoke(cli, ["--config", str(config), "search", "x"])

        assert config.exists()
        assert "generating one for you" in result.output

    def test_unwritable_config_location_is_a_clean_error(self, runner, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")

        result = runner.invoke(cli, ["--config", str(blocker / "config.toml"), "search", "x"])

        assert result.exit_code == 1
        assert "could not write configuration" in result.output
        assert not isinstance(result.exception, OSError)
