"""Index ownership, rescan scheduling and search serving."""

from __future__ import annotations

import queue
import time
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

from pathseek.config import IgnoreConfig, SearchConfig, normalize_root
from pathseek.index.charmap import build_character_map, narrow
from pathseek.index.collector import IgnoreRules, RootInaccessibleError, collect_paths
from pathseek.index.models import (
    IndexedPath,
    IndexSnapshot,
    IndexStatus,
    LifecycleState,
    MatchCandidate,
    RescanReport,
)
from pathseek.index.scoring import MtimeReader, RankResult, rank_matches, read_mtime

RescanCallback = Callable[[RescanReport], None]


class RescanTrigger:
    """Queue of asynchronous "rescan requested" events.

    ``notify`` only performs a ``SimpleQueue.put``, which is re-entrant and may
    be called from a signal handler.
    """

    def __init__(self) -> None:
        self._events: queue.SimpleQueue[float] = queue.SimpleQueue()

    def notify(self) -> None:
        self._events.put(time.time())

    def drain(self) -> int:
        """Empty the queue and return how many events it held."""
        count = 0
        while True:
            try:
                self._events.get_nowait()
            except queue.Empty:
                return count
            count += 1


class IndexController:
    """Single owner of the index; serializes rescans against searches.

    A rescan requested while a search is running is deferred into one pending
    flag and executed when the search returns. Any number of requests that
    arrive while busy collapse into a single rescan.
    """

    def __init__(
        self,
        ignore: IgnoreConfig,
        search: SearchConfig,
        trigger: RescanTrigger | None = None,
        on_rescan: RescanCallback | None = None,
        mtime_reader: MtimeReader = read_mtime,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._rules = IgnoreRules(ignore)
        self._search_config = search
        self._trigger = trigger or RescanTrigger()
        self._on_rescan = on_rescan
        self._mtime_reader = mtime_reader
        self._clock = clock
        self._snapshot = IndexSnapshot.empty()
        self._state = LifecycleState.IDLE
        self._rescan_pending = False
        self._generation = 0
        self._last_rescan_timestamp: str | None = None
        self._last_search_dropped = 0

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def rescan_pending(self) -> bool:
        return self._rescan_pending

    @property
    def generation(self) -> int:
        """Number of completed rescans."""
        return self._generation

    @property
    def snapshot(self) -> IndexSnapshot:
        return self._snapshot

    @property
    def root(self) -> Path | None:
        return self._snapshot.root

    @property
    def trigger(self) -> RescanTrigger:
        return self._trigger

    @property
    def last_search_dropped(self) -> int:
        """Matches dropped by the last search because their file disappeared."""
        return self._last_search_dropped

    def status(self) -> IndexStatus:
        """Return a status snapshot."""
        root = self._snapshot.root
        return IndexStatus(
            state=self._state.value,
            root=str(root) if root is not None else None,
            indexed_path_count=len(self._snapshot.paths),
            generation=self._generation,
            rescan_pending=self._rescan_pending,
            last_rescan_timestamp=self._last_rescan_timestamp,
        )

    def set_root(self, raw_root: str | Path) -> RescanReport:
        """Switch root and rescan synchronously, whatever the current state.

        Raises RootInaccessibleError and keeps the previous index and root
        when the new root cannot be listed.
        """
        root = normalize_root(raw_root)
        report = self._rescan(root)
        if not report.ok:
            raise RootInaccessibleError(root=report.root, reason=report.error or "unknown")
        return report

    def request_rescan(self) -> RescanReport | None:
        """Apply one "rescan requested" transition.

        Returns the report when the rescan ran now, None when it was deferred
        or coalesced.
        """
        if self._state is LifecycleState.SEARCHING:
            self._rescan_pending = True
            return None
        if self._state is LifecycleState.RESCANNING:
            return None
        if self._snapshot.root is None:
            return None
        return self._rescan(self._snapshot.root)

    def poll_triggers(self) -> RescanReport | None:
        """Drain queued triggers and turn any number of them into one request."""
        if self._trigger.drain() == 0:
            return None
        return self.request_rescan()

    def search(self, query: str) -> tuple[MatchCandidate, ...]:
        """Rank matches for ``query`` against the current snapshot.

        Runs a deferred rescan, if one was requested meanwhile, before
        returning or re-raising.
        """
        if self._state is not LifecycleState.IDLE:
            raise RuntimeError(f"Cannot search while {self._state.value}.")
        self._state = LifecycleState.SEARCHING
        try:
            result = self._run_search(self._snapshot, query)
        finally:
            if self._trigger.drain():
                self._rescan_pending = True
            self._state = LifecycleState.IDLE
            self._run_pending_rescan()
        self._last_search_dropped = result.dropped_candidates
        return result.candidates

    def _run_pending_rescan(self) -> None:
        if not self._rescan_pending:
            return
        self._rescan_pending = False
        if self._snapshot.root is not None:
            self._rescan(self._snapshot.root)

    def _run_search(self, snapshot: IndexSnapshot, query: str) -> RankResult:
        if not query:
            return RankResult(candidates=(), dropped_candidates=0)
        candidates: tuple[IndexedPath, ...] | list[IndexedPath] = snapshot.paths
        if self._search_config.use_character_index:
            narrowed = narrow(snapshot.char_map, query)
            if narrowed is not None:
                candidates = [indexed for indexed in snapshot.paths if indexed in narrowed]
        result = rank_matches(
            candidates,
            query,
            now=self._clock(),
            mtime_reader=self._mtime_reader,
        )
        limit = self._search_config.max_results
        if limit is not None and len(result.candidates) > limit:
            return RankResult(
                candidates=result.candidates[:limit],
                dropped_candidates=result.dropped_candidates,
            )
        return result

    def _rescan(self, root: Path) -> RescanReport:
        previous_state = self._state
        self._state = LifecycleState.RESCANNING
        started = time.perf_counter()
        try:
            collected = collect_paths(root, self._rules)
        except RootInaccessibleError as error:
            report = RescanReport(
                root=error.root,
                ok=False,
                path_count=len(self._snapshot.paths),
                skipped_directories=0,
                duration_ms=int((time.perf_counter() - started) * 1000),
                timestamp=_utc_now_iso(),
                error=error.reason,
            )
        else:
            # Swap, never mutate: a search holding the old snapshot stays consistent.
            self._snapshot = IndexSnapshot(
                root=root,
                paths=collected.paths,
                char_map=build_character_map(collected.paths),
            )
            self._generation += 1
            timestamp = _utc_now_iso()
            self._last_rescan_timestamp = timestamp
            report = RescanReport(
                root=str(root),
                ok=True,
                path_count=len(collected.paths),
                skipped_directories=collected.skipped_directories,
                duration_ms=int((time.perf_counter() - started) * 1000),
                timestamp=timestamp,
            )
        finally:
            self._state = previous_state
        if self._on_rescan is not None:
            self._on_rescan(report)
        return report


def _utc_now_iso() -> str:
    return datetime.now(tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
