"""quicknotes CLI — plain-text notes with a TOML preamble and fuzzy lookup.

Commands:
    quicknotes new TITLE...        create a note and open it in the editor
    quicknotes open [QUERY...]     fuzzy-pick a note and open it
    quicknotes search QUERY...     print ranked matches
    quicknotes daily [OFFSET...]   open or create a daily note (today, yesterday, 2 days ago, 2015-10-21)
    quicknotes index               rebuild and persist the note index
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

import click

from quicknotes.config import NoteConfig, default_config_path, init_config, load_config
from quicknotes.errors import QuicknotesError
from quicknotes.index import Index, build
from quicknotes.matcher import MatchSession, highlight_positions, rank
from quicknotes.notes import make_note, make_or_open_daily, open_note
from quicknotes.persist import load_index, save_index

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from quicknotes.models import MatchResult, NoteRecord

_PICKER_LIMIT = 15

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@contextlib.contextmanager
def _user_errors() -> Iterator[None]:
    """Turn quicknotes errors into a clean `error: ...` exit."""
    try:
        yield
    except QuicknotesError as exc:
        raise click.ClickException(str(exc)) from exc


def _warn(message: str) -> None:
    click.echo(f"{click.style('warning', fg='yellow')}: {message}", err=True)


def _load_cfg(ctx: click.Context) -> NoteConfig:
    config_path = ctx.obj.get("config_path") or default_config_path()
    if not Path(config_path).exists():
        with _user_errors():
            init_config(config_path)
        _warn(f"no configuration found; generating one for you at {config_path}")
    with _user_errors():
        return load_config(config_path)


def _now() -> datetime:
    return datetime.now().astimezone()


def _fresh_index(cfg: NoteConfig) -> Index:
    with _user_errors():
        return build(cfg.notes_root, cfg.note_file_extension)


def _render(results: Sequence[MatchResult], query: str, *, numbered: bool) -> None:
    from rich.console import Console
    from rich.table import Table
    from rich.text import Text

    console = Console()
    if not results:
        console.print("(no results)")
        return

    table = Table(show_header=True, header_style="bold", box=None)
    if numbered:
        table.add_column("#", justify="right", style="dim")
    table.add_column("Title")
    table.add_column("Created", style="dim", no_wrap=True)
    table.add_column("File", style="dim")
    if not numbered:
        table.add_column("Score", justify="right")

    for i, result in enumerate(results, start=1):
        record = result.record
        title = Text(record.title)
        for pos in highlight_positions(query, record.title):
            title.stylize("bold magenta", pos, pos + 1)
        row = [title, record.created_at.strftime("%Y-%m-%d %H:%M"), record.path.name]
        if numbered:
            row.insert(0, str(i))
        else:
            row.append(str(result.score))
        table.add_row(*row)
    console.print(table)


async def _pick(index: Index, query: str) -> NoteRecord | None:
    """Prompt loop: show matches, then read a number to pick or text to re-query."""
    session = MatchSession(index)
    ranking = await session.update(query)
    try:
        while True:
            results = ranking.results[:_PICKER_LIMIT] if ranking else []
            _render(results, query, numbered=True)
            answer = click.prompt(
                "Number to open, text to search, enter to quit",
                default="",
                show_default=False,
            ).strip()
            if not answer:
                return None
            if answer.isdigit():
                choice = int(answer)
                if 1 <= choice <= len(results):
                    return results[choice - 1].record
                _warn(f"no entry numbered {choice}")
                continue
            query = answer
            ranking = await session.update(query) or session.latest
    finally:
        await session.close()


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="quicknotes")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: $QUICKNOTES_CONFIG or the platform config dir)",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """quicknotes — plain-text notes you can find again."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


# ---------------------------------------------------------------------------
# quicknotes new
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("title", nargs=-1, required=True)
@click.pass_context
def new(ctx: click.Context, title: tuple[str, ...]) -> None:
    """Create a new note.

    The title can be typed straight into the shell, spaces included.
    """
    cfg = _load_cfg(ctx)
    with _user_errors():
        stored = make_note(cfg, cfg.editor(), " ".join(title), _now())
    if stored is None:
        click.echo("Note was left empty; nothing saved")
    else:
        click.echo(f"Saved {stored}")


# ---------------------------------------------------------------------------
# quicknotes open / search
# ---------------------------------------------------------------------------


@cli.command("open")
@click.argument("query", nargs=-1)
@click.option("--cached", is_flag=True, help="Use the persisted index instead of rescanning")
@click.pass_context
def open_cmd(ctx: click.Context, query: tuple[str, ...], cached: bool) -> None:
    """Fuzzy-find an existing note and open it."""
    cfg = _load_cfg(ctx)
    index = load_index(cfg.db_path) if cached and cfg.db_path.exists() else _fresh_index(cfg)

    selected = asyncio.run(_pick(index, " ".join(query)))
    if selected is None:
        return
    with _user_errors():
        open_note(cfg, cfg.editor(), selected.path)


@cli.command()
@click.argument("query", nargs=-1)
@click.option("--limit", "-n", default=10, show_default=True, help="Max results")
@click.pass_context
def search(ctx: click.Context, query: tuple[str, ...], limit: int) -> None:
    """Print notes ranked against QUERY (all notes if QUERY is empty)."""
    cfg = _load_cfg(ctx)
    index = _fresh_index(cfg)
    text = " ".join(query)
    _render(rank(index, text)[:limit], text, numbered=False)


# ---------------------------------------------------------------------------
# quicknotes daily
# ---------------------------------------------------------------------------


@cli.command(context_settings={"ignore_unknown_options": True})
@click.argument("offset", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def daily(ctx: click.Context, offset: tuple[str, ...]) -> None:
    """Open or create a daily note.

    OFFSET picks the day: today (default), yesterday, tomorrow, an ISO date
    such as 2015-10-21, or a relative offset such as "2 days ago" or "-1 week".
    """
    cfg = _load_cfg(ctx)
    with _user_errors():
        cfg.ensure_dirs()
        stored = make_or_open_daily(cfg, cfg.editor(), offset, now=_now())
    if stored is not None:
        click.echo(f"Saved {stored}")


# ---------------------------------------------------------------------------
# quicknotes index
# ---------------------------------------------------------------------------


@cli.command()
@click.pass_context
def index(ctx: click.Context) -> None:
    """Rescan the notes root and rebuild the persisted index.

    Only needed when notes are added, edited or deleted outside quicknotes.
    """
    cfg = _load_cfg(ctx)
    idx = _fresh_index(cfg)
    saved = save_index(idx, cfg.db_path)
    click.echo(f"Indexed {saved} notes")
    if idx.warnings:
        _warn(f"skipped {len(idx.warnings)} note(s) with an invalid preamble")
    if saved < len(idx):
        _warn(f"skipped {len(idx) - saved} note(s) whose file name is not valid UTF-8")
