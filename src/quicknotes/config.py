"""NoteConfig: user-level config for quicknotes.

The config file lives at $QUICKNOTES_CONFIG, or config.toml inside the
platform config directory (click.get_app_dir("quicknotes"), e.g.
~/.config/quicknotes/config.toml). It is generated on first run.

config.toml example:

    notes_root = "/home/me/Documents/quicknotes"
    note_file_extension = ".md"
    # editor_command = "vim"    # default: $EDITOR, then nano
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import click

from quicknotes.editor import FALLBACK_EDITOR, CommandEditor, fallback_editor_command
from quicknotes.errors import ConfigError
from quicknotes.models import toml_string
from quicknotes.persist import db_path_for

APP_NAME = "quicknotes"
CONFIG_ENV_VAR = "QUICKNOTES_CONFIG"
_CONFIG_FILENAME = "config.toml"
_DEFAULT_EXTENSION = ".md"


@dataclass
class NoteConfig:
    """Resolved configuration."""

    notes_root: Path
    note_file_extension: str = _DEFAULT_EXTENSION
    editor_command: str | None = None
    temp_root_override: Path | None = None     # where new notes are drafted; default: system temp

    @property
    def db_path(self) -> Path:
        return db_path_for(self.notes_root)

    def editor(self) -> CommandEditor:
        return CommandEditor(self.editor_command or fallback_editor_command())

    def ensure_dirs(self) -> None:
        self.notes_root.mkdir(parents=True, exist_ok=True)


def normalize_extension(extension: str) -> str:
    """'md' -> '.md'; '.txt' stays as is."""
    extension = extension.strip()
    if not extension or extension == ".":
        msg = "note_file_extension must not be empty"
        raise ConfigError(msg)
    return extension if extension.startswith(".") else f".{extension}"


def default_config_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override)
    return Path(click.get_app_dir(APP_NAME)) / _CONFIG_FILENAME


def default_notes_root() -> Path:
    return Path.home() / "Documents" / APP_NAME


def config_from_dict(raw: dict[str, Any]) -> NoteConfig:
    if "notes_root" not in raw:
        msg = "notes_root is required"
        raise ConfigError(msg)
    notes_root = Path(str(raw["notes_root"])).expanduser()
    if not notes_root.is_absolute():
        msg = f"notes_root must be an absolute path, got {raw['notes_root']!r}"
        raise ConfigError(msg)

    extension = raw.get("note_file_extension", _DEFAULT_EXTENSION)
    if not isinstance(extension, str):
        msg = "note_file_extension must be a string"
        raise ConfigError(msg)

    editor_command = raw.get("editor_command")
    if editor_command is not None and not isinstance(editor_command, str):
        msg = "editor_command must be a string"
        raise ConfigError(msg)

    return NoteConfig(
        notes_root=notes_root,
        note_file_extension=normalize_extension(extension),
        editor_command=(editor_command.strip() or None) if editor_command else None,
    )


def load_config(config_path: Path | str | None = None) -> NoteConfig:
    """Load config.toml. Raises ConfigError if it is missing or invalid."""
    path = Path(config_path) if config_path else default_config_path()
    try:
        with path.open("rb") as f:
            raw = tomllib.load(f)
    except FileNotFoundError as exc:
        msg = f"no configuration found at {path}"
        raise ConfigError(msg) from exc
    except tomllib.TOMLDecodeError as exc:
        msg = f"reading {path}: {exc}"
        raise ConfigError(msg) from exc

    try:
        return config_from_dict(raw)
    except ConfigError as exc:
        msg = f"reading {path}: {exc}"
        raise ConfigError(msg) from exc


def init_config(config_path: Path | str | None = None, notes_root: Path | None = None) -> Path:
    """Write a default config.toml. Raises if it already exists."""
    path = Path(config_path) if config_path else default_config_path()
    if path.exists():
        msg = f"config already exists at {path}"
        raise FileExistsError(msg)

    root = notes_root or default_notes_root()
    content = f"""\
notes_root = {toml_string(str(root))}
note_file_extension = "{_DEFAULT_EXTENSION}"
# editor_command = "vim"    # default: $EDITOR, then {FALLBACK_EDITOR}
"""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    except OSError as exc:
        msg = f"could not write configuration to {path}: {exc.strerror or exc}"
        raise ConfigError(msg) from exc
    return path
