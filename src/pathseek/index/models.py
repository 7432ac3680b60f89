"""Typed models for indexing state."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


@dataclass(slots=True, frozen=True)
class IndexedPath:
    """Represents a file tracked by the index.

    The modification time is intentionally absent: it is read at scoring time
    because files may change between scans.
    """

    path: str
    basename: str

    @classmethod
    def from_path(cls, path: Path | str) -> IndexedPath:
        text = os.fspath(path)
        return cls(path=text, basename=os.path.basename(text))


@dataclass(slots=True, frozen=True)
class IndexSnapshot:
    """Immutable path collection plus its character map, swapped whole on rescan."""

    root: Path | None
    paths: tuple[IndexedPath, ...]
    char_map: dict[str, frozenset[IndexedPath]] | None = field(default=None, compare=False)

    @classmethod
    def empty(cls, root: Path | None = None) -> IndexSnapshot:
        return cls(root=root, paths=(), char_map=None)


@dataclass(slots=True, frozen=True)
class MatchCandidate:
    """Matched path with per-character positions and its combined score."""

    path: IndexedPath
    positions: tuple[int, ...]
    score: float

    def to_line(self) -> str:
        """Render as a ``basename|path|score`` protocol line."""
        return f"{self.path.basename}|{self.path.path}|{self.score!r}"


class LifecycleState(Enum):
    """What the index controller is doing right now."""

    IDLE = "idle"
    RESCANNING = "rescanning"
    SEARCHING = "searching"


@dataclass(slots=True, frozen=True)
class RescanReport:
    """Outcome of one rescan attempt."""

    root: str
    ok: bool
    path_count: int
    skipped_directories: int
    duration_ms: int
    timestamp: str
    error: str | None = None


@dataclass(slots=True, frozen=True)
class IndexStatus:
    """Current controller status snapshot."""

    state: str
    root: str | None
    indexed_path_count: int
    generation: int
    rescan_pending: bool
    last_rescan_timestamp: str | None
