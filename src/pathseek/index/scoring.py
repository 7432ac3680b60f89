"""Gap + recency scoring and ascending rank order."""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from pathseek.index.matcher import match_positions
from pathseek.index.models import IndexedPath, MatchCandidate

SECONDS_PER_DAY = 86_400.0

MtimeReader = Callable[[str], float]


@dataclass(slots=True, frozen=True)
class RankResult:
    """Ranked candidates plus matches dropped because their file vanished."""

    candidates: tuple[MatchCandidate, ...]
    dropped_candidates: int


def gap_score(positions: tuple[int, ...]) -> int:
    """Total characters skipped between consecutive matched positions."""
    total = 0
    for previous, current in zip(positions, positions[1:]):
        total += current - previous - 1
    return total


def score(positions: tuple[int, ...], mtime: float, now: float) -> float:
    """Gap total plus file age in days; lower ranks first."""
    return gap_score(positions) + (now - mtime) / SECONDS_PER_DAY


def read_mtime(path: str) -> float:
    return os.stat(path).st_mtime


def rank_matches(
    paths: Iterable[IndexedPath],
    query: str,
    now: float,
    mtime_reader: MtimeReader = read_mtime,
) -> RankResult:
    """Match, score and sort ``paths`` ascending by score.

    Python's sort is stable, so equal scores keep the iteration order of
    ``paths``.
    """
    scored: list[MatchCandidate] = []
    dropped = 0
    for indexed in paths:
        positions = match_positions(indexed.basename, query)
        if positions is None:
            continue
        try:
            mtime = mtime_reader(indexed.path)
        except OSError:
            dropped += 1
            continue
        scored.append(
            MatchCandidate(
                path=indexed,
                positions=positions,
                score=score(positions, mtime, now),
            )
        )
    scored.sort(key=lambda candidate: candidate.score)
    return RankResult(candidates=tuple(scored), dropped_candidates=dropped)
