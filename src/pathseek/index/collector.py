"""Directory walk with ignore-rule pruning."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path

from pathseek.config import IgnoreConfig
from pathseek.index.models import IndexedPath


@dataclass(slots=True, frozen=True)
class RootInaccessibleError(Exception):
    """Raised when the configured root cannot be listed at all."""

    root: str
    reason: str

    def __str__(self) -> str:
        return f"Root '{self.root}' is not accessible: {self.reason}"


@dataclass(slots=True, frozen=True)
class CollectResult:
    """Collected paths and deterministic walk counters."""

    paths: tuple[IndexedPath, ...]
    total_candidates: int
    excluded_by_pattern: int
    skipped_directories: int


class IgnoreRules:
    """Compiled form of an :class:`IgnoreConfig`."""

    def __init__(self, config: IgnoreConfig) -> None:
        self._directory_names = frozenset(config.directory_names)
        self._file_patterns = tuple(re.compile(pattern) for pattern in config.file_patterns)

    def ignores_directory(self, name: str) -> bool:
        return name in self._directory_names

    def ignores_file(self, name: str) -> bool:
        return any(pattern.fullmatch(name) for pattern in self._file_patterns)


def collect_paths(root: Path, rules: IgnoreRules) -> CollectResult:
    """Walk ``root`` and return every regular file that survives the ignore rules."""
    root_text = os.fspath(root)
    try:
        with os.scandir(root_text) as entries:
            top_entries = sorted(entries, key=lambda item: item.name)
    except NotADirectoryError:
        raise RootInaccessibleError(root=root_text, reason="not a directory") from None
    except OSError as error:
        raise RootInaccessibleError(root=root_text, reason=error.strerror or str(error)) from None

    paths: list[IndexedPath] = []
    total_candidates = 0
    excluded_by_pattern = 0
    skipped_directories = 0
    stack: list[list[os.DirEntry[str]]] = [top_entries]
    while stack:
        ordered_entries = stack.pop()
        subdirectories: list[list[os.DirEntry[str]]] = []
        for entry in ordered_entries:
            if entry.is_dir(follow_symlinks=False):
                if rules.ignores_directory(entry.name):
                    continue
                try:
                    with os.scandir(entry.path) as children:
                        subdirectories.append(sorted(children, key=lambda item: item.name))
                except OSError:
                    skipped_directories += 1
                continue
            if not entry.is_file(follow_symlinks=False):
                continue
            total_candidates += 1
            if rules.ignores_file(entry.name):
                excluded_by_pattern += 1
                continue
            paths.append(IndexedPath(path=entry.path, basename=entry.name))
        stack.extend(reversed(subdirectories))

    return CollectResult(
        paths=tuple(paths),
        total_candidates=total_candidates,
        excluded_by_pattern=excluded_by_pattern,
        skipped_directories=skipped_directories,
    )
