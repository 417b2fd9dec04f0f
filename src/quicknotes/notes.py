"""Create and open notes: draft in a temp file, edit, store, reindex.

New notes are drafted outside the notes root so that an abandoned edit never
leaves a half-written file behind. Once the editor exits the draft is copied
into place without overwriting anything that is already there.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from quicknotes.daily import resolve_daily
from quicknotes.errors import NoteStoreError, QuicknotesError
from quicknotes.index import build, read_record
from quicknotes.models import Found, IndexWarning, Preamble
from quicknotes.persist import delete_note, upsert_note
from quicknotes.store import filename_for_title, next_free_path

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from quicknotes.config import NoteConfig
    from quicknotes.editor import Editor

logger = logging.getLogger("quicknotes.notes")

_UNTITLED = "untitled"


def make_note(config: NoteConfig, editor: Editor, title: str, created_at: datetime) -> Path | None:
    """Create a note titled title and open it in the editor.

    Returns the stored path, or None if the note was left untouched and discarded.
    """
    filename = filename_for_title(title, config.note_file_extension)
    if filename == config.note_file_extension:
        filename = _UNTITLED + config.note_file_extension
    preamble = Preamble(title=title, created_at=created_at)
    return _draft_and_store(config, editor, preamble, config.notes_root / filename, clobber_safe=True)


def make_or_open_daily(
    config: NoteConfig,
    editor: Editor,
    tokens: Sequence[str],
    *,
    now: datetime,
) -> Path | None:
    """Open the daily note for the date in tokens, creating it if needed."""
    index = build(config.notes_root, config.note_file_extension)
    outcome = resolve_daily(
        index, tokens, now=now, root=config.notes_root, extension=config.note_file_extension
    )

    if isinstance(outcome, Found):
        open_note(config, editor, outcome.path)
        return outcome.path

    if outcome.path.exists():
        # On disk but not indexed, most likely a broken preamble; edit it anyway
        logger.warning("daily note %s exists but could not be indexed; opening it as is", outcome.path)
        open_note(config, editor, outcome.path)
        return outcome.path

    return _draft_and_store(config, editor, outcome.preamble, outcome.path, clobber_safe=False)


def open_note(config: NoteConfig, editor: Editor, path: Path) -> None:
    """Edit an existing note and refresh its index entry."""
    if not path.exists():
        msg = f"could not open note: {path} does not exist"
        raise QuicknotesError(msg)
    if path.is_dir():
        msg = f"could not open note: {path} is a directory"
        raise QuicknotesError(msg)

    editor.edit(path)
    reindex_note(config, path)


def reindex_note(config: NoteConfig, path: Path) -> None:
    """Update the persisted index entry for path after it was edited."""
    result = read_record(path)
    if isinstance(result, IndexWarning):
        delete_note(config.db_path, path)
        logger.warning(
            "after editing, the note could not be reindexed and was removed from the index: %s",
            result.message,
        )
        return
    upsert_note(config.db_path, result)


def _draft_and_store(
    config: NoteConfig,
    editor: Editor,
    preamble: Preamble,
    destination: Path,
    *,
    clobber_safe: bool,
) -> Path | None:
    template = preamble.template()
    draft = _write_draft(config, template)
    try:
        editor.edit(draft)
    except QuicknotesError:
        draft.unlink(missing_ok=True)
        raise

    contents = draft.read_text(encoding="utf-8")
    if contents == template:
        logger.info("note was not changed; discarding it")
        draft.unlink(missing_ok=True)
        return None

    config.ensure_dirs()
    stored = _store(contents, destination, draft, clobber_safe=clobber_safe)
    draft.unlink(missing_ok=True)
    reindex_note(config, stored)
    return stored


def _write_draft(config: NoteConfig, template: str) -> Path:
    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        suffix=config.note_file_extension,
        dir=config.temp_root_override,
        delete=False,
    ) as f:
        f.write(template)
    return Path(f.name)


def _store(contents: str, destination: Path, draft: Path, *, clobber_safe: bool) -> Path:
    """Write contents to destination without overwriting an existing file.

    With clobber_safe, an existing destination is sidestepped by picking the
    next free <stem>-N name; otherwise it is an error.
    """
    while True:
        try:
            with destination.open("x", encoding="utf-8") as f:
                f.write(contents)
            return destination
        except FileExistsError as exc:
            if not clobber_safe:
                msg = f"could not store note: {destination} already exists"
                raise NoteStoreError(msg, preserved_at=draft) from exc
            logger.warning("note already exists at %s, generating new filename...", destination)
            try:
                destination = next_free_path(destination)
            except OSError as dir_exc:
                msg = f"could not generate new filename for note: {dir_exc}"
                raise NoteStoreError(msg, preserved_at=draft) from dir_exc
        except OSError as exc:
            msg = f"could not store note at {destination}: {exc.strerror or exc}"
            raise NoteStoreError(msg, preserved_at=draft) from exc
