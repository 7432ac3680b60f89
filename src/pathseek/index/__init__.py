"""Indexing and search package."""

from .charmap import CharacterMap, build_character_map, narrow
from .collector import CollectResult, IgnoreRules, RootInaccessibleError, collect_paths
from .lifecycle import IndexController, RescanTrigger
from .matcher import boundary_positions, match_positions
from .models import (
    IndexedPath,
    IndexSnapshot,
    IndexStatus,
    LifecycleState,
    MatchCandidate,
    RescanReport,
)
from .scoring import RankResult, gap_score, rank_matches, score

__all__ = [
    "CharacterMap",
    "CollectResult",
    "IgnoreRules",
    "IndexController",
    "IndexSnapshot",
    "IndexStatus",
    "IndexedPath",
    "LifecycleState",
    "MatchCandidate",
    "RankResult",
    "RescanReport",
    "RescanTrigger",
    "RootInaccessibleError",
    "boundary_positions",
    "build_character_map",
    "collect_paths",
    "gap_score",
    "match_positions",
    "narrow",
    "rank_matches",
    "score",
]
