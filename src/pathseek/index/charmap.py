"""Lowercase character -> path-set index used to narrow search candidates."""

from __future__ import annotations

from collections.abc import Iterable

from pathseek.index.models import IndexedPath

CharacterMap = dict[str, frozenset[IndexedPath]]


def fold_characters(text: str) -> list[str]:
    """Lowercase per character so positions stay aligned with ``text``."""
    return [char.lower() for char in text]


def build_character_map(paths: Iterable[IndexedPath]) -> CharacterMap:
    """Map each lowercase basename character to the paths containing it."""
    building: dict[str, set[IndexedPath]] = {}
    for indexed in paths:
        for char in set(fold_characters(indexed.basename)):
            bucket = building.get(char)
            if bucket is None:
                bucket = set()
                building[char] = bucket
            bucket.add(indexed)
    return {char: frozenset(bucket) for char, bucket in building.items()}


def narrow(char_map: CharacterMap | None, query: str) -> frozenset[IndexedPath] | None:
    """Intersect the path sets of every distinct query character.

    Returns ``None`` when no map has been built yet so callers fall back to a
    full scan.
    """
    if char_map is None:
        return None
    if not query:
        return frozenset()
    distinct: list[str] = []
    for char in fold_characters(query):
        if char not in distinct:
            distinct.append(char)
    buckets: list[frozenset[IndexedPath]] = []
    for char in distinct:
        bucket = char_map.get(char)
        if not bucket:
            return frozenset()
        buckets.append(bucket)
    buckets.sort(key=len)
    result = buckets[0]
    for bucket in buckets[1:]:
        result = result & bucket
        if not result:
            break
    return result
