"""Fuzzy ranking of notes against a typed query.

A query matches a title when every character of every whitespace-separated
term appears in order (case-insensitively). Each term is aligned with a small
dynamic program in the style of fzf: every matched character earns a base
score, characters that start a word or continue a run earn bonuses, and gaps
plus a late first match cost points. Term scores add up.

Ranking order: score descending, then title, then path. An empty query is
"browse everything" and returns the whole index in default order.

MatchSession drives interactive use: each keystroke calls update(), which
supersedes any scoring still running for an older query.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from itertools import chain, islice
from typing import TYPE_CHECKING

from quicknotes.models import MatchResult

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from concurrent.futures import Executor

    from quicknotes.index import Index
    from quicknotes.models import NoteRecord

logger = logging.getLogger("quicknotes.matcher")

SCORE_MATCH = 16
SCORE_GAP_START = 3
SCORE_GAP_EXTENSION = 1
BONUS_BOUNDARY = 8          # first char of the text or after a delimiter
BONUS_CAMEL = 7             # lower->upper or letter->digit transition
BONUS_CONSECUTIVE = 8
BONUS_FIRST_CHAR_MULTIPLIER = 2
PENALTY_LEADING = 1         # per character skipped before the first match
MAX_LEADING_PENALTY = 10
BONUS_EXACT = 100           # query equals the whole title

DEFAULT_CHUNK_SIZE = 256

_DELIMITERS = frozenset(" \t-_./\\:,;()[]{}'\"")
_NEG = -(1 << 30)


def _bonuses(text: str) -> list[int]:
    out: list[int] = []
    prev = ""
    for i, ch in enumerate(text):
        if i == 0 or prev in _DELIMITERS:
            out.append(BONUS_BOUNDARY)
        elif (prev.islower() and ch.isupper()) or (not prev.isdigit() and ch.isdigit()):
            out.append(BONUS_CAMEL)
        else:
            out.append(0)
        prev = ch
    return out


def _fold(text: str) -> str:
    """Lowercase one character at a time so positions line up with text."""
    return "".join(c.lower()[0] for c in text)


def _align(term: str, text: str, *, want_positions: bool = False) -> tuple[int, list[int]] | None:
    """Best alignment of term (already folded) inside text, or None."""
    n, m = len(term), len(text)
    if n == 0:
        return 0, []
    if n > m:
        return None

    folded = _fold(text)
    bonus = _bonuses(text)

    # row[j]: best score with term[:i+1] matched and term[i] at text[j]
    row = [_NEG] * m
    first = term[0]
    for j in range(m):
        if folded[j] == first:
            lead = min(j, MAX_LEADING_PENALTY) * PENALTY_LEADING
            row[j] = SCORE_MATCH + bonus[j] * BONUS_FIRST_CHAR_MULTIPLIER - lead
    back: list[list[int]] = []

    for i in range(1, n):
        prev = row
        row = [_NEG] * m
        ptr = [-1] * m if want_positions else []
        ch = term[i]
        # best over k <= j-2 of prev[k] + GAP_EXTENSION*k, for gapped transitions
        reach, reach_k = _NEG, -1
        for j in range(i, m):
            k = j - 2
            if k >= 0 and prev[k] > _NEG:
                cand = prev[k] + SCORE_GAP_EXTENSION * k
                if cand > reach:
                    reach, reach_k = cand, k
            if folded[j] != ch:
                continue
            best, best_k = _NEG, -1
            if prev[j - 1] > _NEG:
                best, best_k = prev[j - 1] + BONUS_CONSECUTIVE, j - 1
            if reach > _NEG:
                gapped = reach - SCORE_GAP_START - SCORE_GAP_EXTENSION * (j - 2)
                if gapped > best:
                    best, best_k = gapped, reach_k
            if best > _NEG:
                row[j] = best + SCORE_MATCH + bonus[j]
                if want_positions:
                    ptr[j] = best_k
        if want_positions:
            back.append(ptr)

    end, top = -1, _NEG
    for j, s in enumerate(row):
        if s > top:
            end, top = j, s
    if end < 0:
        return None
    if not want_positions:
        return top, []

    positions = [end]
    for i in range(n - 1, 0, -1):
        end = back[i - 1][end]
        positions.append(end)
    positions.reverse()
    return top, positions


def _terms(query: str) -> list[str]:
    return _fold(query).split()


def score(query: str, text: str) -> int | None:
    """Score text against query. None means no match; any match scores at least 1."""
    terms = _terms(query)
    total = 0
    for term in terms:
        aligned = _align(term, text)
        if aligned is None:
            return None
        total += aligned[0]
    if terms and " ".join(terms) == " ".join(_terms(text)):
        total += BONUS_EXACT
    return max(total, 1) if terms else 0


def highlight_positions(query: str, text: str) -> list[int]:
    """Character positions in text used by the best match, for display."""
    positions: set[int] = set()
    for term in _terms(query):
        aligned = _align(term, text, want_positions=True)
        if aligned is None:
            return []
        positions.update(aligned[1])
    return sorted(positions)


def _score_chunk(query: str, records: Sequence[NoteRecord]) -> list[MatchResult]:
    out: list[MatchResult] = []
    for record in records:
        s = score(query, record.title)
        if s is not None:
            out.append(MatchResult(record=record, score=s))
    return out


def _chunks(records: Iterable[NoteRecord], size: int) -> Iterable[list[NoteRecord]]:
    it = iter(records)
    while chunk := list(islice(it, size)):
        yield chunk


def rank(
    index: Index,
    query: str,
    *,
    executor: Executor | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> list[MatchResult]:
    """Rank every note in index against query.

    With an executor, chunks of records are scored in parallel; only the final
    merge is ordered.
    """
    if not query.strip():
        return [MatchResult(record=r, score=0) for r in index]

    chunks = _chunks(index, chunk_size)
    if executor is None:
        scored = chain.from_iterable(_score_chunk(query, c) for c in chunks)
    else:
        futures = [executor.submit(_score_chunk, query, c) for c in chunks]
        scored = chain.from_iterable(f.result() for f in futures)
    return sorted(scored, key=MatchResult.sort_key)


# ---------------------------------------------------------------------------
# Interactive session
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Ranking:
    """Results for one query, tagged with the generation that produced them."""

    generation: int
    query: str
    results: list[MatchResult]


class MatchSession:
    """Re-rank a fixed index as the query changes, discarding stale work.

    Every update() starts a new generation and cancels the scoring task of the
    previous one. Scoring runs cooperatively in chunks, yielding to the event
    loop in between and stopping early once its generation is no longer
    current. Results that arrive for an outdated generation are dropped.
    """

    def __init__(self, index: Index, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self.index = index
        self.chunk_size = chunk_size
        self.generation = 0
        self.latest: Ranking | None = None
        self._task: asyncio.Task[Ranking | None] | None = None

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    async def update(self, query: str) -> Ranking | None:
        """Rank for query. Returns None if a newer update superseded this one."""
        self.generation += 1
        generation = self.generation
        if self._task is not None and not self._task.done():
            self._task.cancel()

        task = asyncio.create_task(self._score(query, generation))
        self._task = task
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task.cancelled() or not self.is_current(generation):
            logger.debug("dropping stale ranking for %r (generation %d)", query, generation)
            return None
        ranking = task.result()
        if ranking is not None:
            self.latest = ranking
        return ranking

    async def _score(self, query: str, generation: int) -> Ranking | None:
        if not query.strip():
            return Ranking(generation, query, rank(self.index, query))

        scored: list[MatchResult] = []
        for chunk in _chunks(self.index, self.chunk_size):
            scored.extend(_score_chunk(query, chunk))
            await asyncio.sleep(0)
            if not self.is_current(generation):
                return None
        scored.sort(key=MatchResult.sort_key)
        return Ranking(generation, query, scored)

    async def close(self) -> None:
        """Cancel any scoring still in flight."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            await asyncio.wait({self._task})
