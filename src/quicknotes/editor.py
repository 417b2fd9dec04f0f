"""Launching the user's editor on a note file."""

from __future__ import annotations

import os
import shlex
import subprocess
from typing import TYPE_CHECKING, Protocol

from quicknotes.errors import EditorError

if TYPE_CHECKING:
    from pathlib import Path

FALLBACK_EDITOR = "nano"


class Editor(Protocol):
    """Anything that can edit a file at a path and return when done."""

    @property
    def name(self) -> str: ...

    def edit(self, path: Path) -> None: ...


class CommandEditor:
    """Runs an editor command such as `vim` or `code --wait` and waits for it to exit."""

    def __init__(self, command: str) -> None:
        self.command = command

    @property
    def name(self) -> str:
        return self.command

    def edit(self, path: Path) -> None:
        argv = [*shlex.split(self.command), str(path)]
        try:
            result = subprocess.run(argv, check=False)
        except OSError as exc:
            raise EditorError(self.command, exc.strerror or str(exc)) from exc
        if result.returncode != 0:
            raise EditorError(self.command, f"exited with status {result.returncode}")


def fallback_editor_command() -> str:
    return os.environ.get("EDITOR") or FALLBACK_EDITOR
