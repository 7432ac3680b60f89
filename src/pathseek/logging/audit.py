"""Structured JSONL event log utilities."""

from __future__ import annotations

import json
from collections import deque
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path

DEFAULT_MEMORY_EVENTS = 500


@dataclass(slots=True, frozen=True)
class AuditEvent:
    """Sanitized representation of a single handled command or rescan."""

    timestamp: str
    request_id: str
    command: str
    ok: bool
    error_code: str | None
    metadata: dict[str, object]


def utc_timestamp() -> str:
    """Return an ISO-8601 UTC timestamp."""
    return datetime.now(tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def sanitize_arguments(arguments: dict[str, object]) -> dict[str, object]:
    """Sanitize arguments so typed queries never reach the log verbatim."""
    sanitized: dict[str, object] = {}
    for key in sorted(arguments.keys()):
        value = arguments[key]
        if key in {"root", "error"} and isinstance(value, str):
            sanitized[key] = value
            continue
        if key == "query" and isinstance(value, str):
            sanitized["query_present"] = bool(value)
            sanitized["query_length"] = len(value)
            continue
        if isinstance(value, (int, float, bool)) or value is None:
            sanitized[key] = value
            continue
        if isinstance(value, str):
            sanitized[f"{key}_present"] = True
            sanitized[f"{key}_length"] = len(value)
            continue
        if isinstance(value, list):
            sanitized[f"{key}_type"] = "list"
            sanitized[f"{key}_length"] = len(value)
            continue
        if isinstance(value, dict):
            sanitized[f"{key}_type"] = "dict"
            sanitized[f"{key}_keys"] = sorted(str(k) for k in value.keys())
            continue
        sanitized[f"{key}_type"] = type(value).__name__
    return sanitized


class JsonlAuditLogger:
    """Bounded in-memory event window with an optional append-only JSONL file."""

    def __init__(self, path: Path | None = None, max_events: int = DEFAULT_MEMORY_EVENTS) -> None:
        self._path = path
        self._events: deque[dict[str, object]] = deque(maxlen=max_events)
        if self._path is not None:
            self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path | None:
        """Return on-disk JSONL path, if file logging is enabled."""
        return self._path

    def append(self, event: AuditEvent) -> None:
        """Record an event; also append it as one JSON object per line when a path is set."""
        record = asdict(event)
        self._events.append(record)
        if self._path is None:
            return
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record, sort_keys=True))
            handle.write("\n")

    def read(self, since: str | None = None, limit: int = 50) -> list[dict[str, object]]:
        """Read recent events, optionally filtered by timestamp lower bound."""
        if limit < 1:
            return []
        entries: list[dict[str, object]] = []
        for record in self._events:
            if since is not None:
                ts = record.get("timestamp")
                if not isinstance(ts, str) or ts < since:
                    continue
            entries.append(record)
        if len(entries) <= limit:
            return entries
        return entries[-limit:]
