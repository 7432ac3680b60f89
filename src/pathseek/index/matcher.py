"""Boundary-anchored ordered subsequence matching over basenames."""

from __future__ import annotations

from pathseek.index.charmap import fold_characters

WORD_SEPARATORS = frozenset("._")


def boundary_positions(folded: list[str]) -> list[int]:
    """Indexes where a match may start: 0 and every index right after ``.`` or ``_``."""
    if not folded:
        return []
    positions = [0]
    for index, char in enumerate(folded[:-1]):
        if char in WORD_SEPARATORS:
            positions.append(index + 1)
    return positions


def match_positions(basename: str, query: str) -> tuple[int, ...] | None:
    """Return the position of each query character in ``basename`` or None.

    The first character is taken at the leftmost word boundary holding it and
    every later one at its earliest occurrence after the previous match.
    """
    if not query or len(query) > len(basename):
        return None
    folded = fold_characters(basename)
    wanted = fold_characters(query)
    first = wanted[0]
    start = -1
    for position in boundary_positions(folded):
        if folded[position] == first:
            start = position
            break
    if start < 0:
        return None

    positions = [start]
    cursor = start + 1
    for char in wanted[1:]:
        while cursor < len(folded) and folded[cursor] != char:
            cursor += 1
        if cursor >= len(folded):
            return None
        positions.append(cursor)
        cursor += 1
    return tuple(positions)
