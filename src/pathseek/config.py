"""Configuration loading and deterministic merge order."""

from __future__ import annotations

import re
import tomllib
from dataclasses import dataclass
from pathlib import Path

MAX_RESULTS_CAP = 10_000

DEFAULT_IGNORED_DIRECTORY_NAMES = (
    ".git",
    ".svn",
    ".hg",
    ".bzr",
    "CVS",
    "_darcs",
    "_build",
)
DEFAULT_IGNORED_FILE_PATTERNS = (
    r".*~",
    r"#.*#",
    r"core\.\d+",
    r"[._].*\.swp",
)

_KNOWN_SECTIONS = ("ignore", "search")


@dataclass(slots=True, frozen=True)
class IgnoreConfig:
    """Directory names pruned from the walk and basename patterns dropped from it."""

    directory_names: tuple[str, ...]
    file_patterns: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class SearchConfig:
    """Search result shaping."""

    max_results: int | None
    use_character_index: bool


@dataclass(slots=True, frozen=True)
class ServerConfig:
    """Fully merged daemon configuration."""

    root: Path
    ignore: IgnoreConfig
    search: SearchConfig
    audit_log: Path | None

    def to_public_dict(self) -> dict[str, object]:
        """Return serializable config snapshot for the event log."""
        return {
            "root": str(self.root),
            "ignore": {
                "directory_names": list(self.ignore.directory_names),
                "file_patterns": list(self.ignore.file_patterns),
            },
            "search": {
                "max_results": self.search.max_results,
                "use_character_index": self.search.use_character_index,
            },
            "audit_log": str(self.audit_log) if self.audit_log is not None else None,
        }


@dataclass(slots=True, frozen=True)
class CliOverrides:
    """Optional startup overrides applied at highest precedence."""

    max_results: int | None = None
    use_character_index: bool | None = None
    audit_log: Path | None = None


def normalize_root(raw: str | Path) -> Path:
    """Expand ``~`` and make a root absolute against the working directory."""
    return Path(raw).expanduser().resolve()


def default_config(root: Path) -> ServerConfig:
    """Build default config for a given root."""
    return ServerConfig(
        root=normalize_root(root),
        ignore=IgnoreConfig(
            directory_names=DEFAULT_IGNORED_DIRECTORY_NAMES,
            file_patterns=DEFAULT_IGNORED_FILE_PATTERNS,
        ),
        search=SearchConfig(max_results=None, use_character_index=True),
        audit_log=None,
    )


def load_config_file(config_path: Path) -> dict[str, object]:
    """Load an explicitly requested TOML config file."""
    if not config_path.is_file():
        raise ValueError(f"Config file '{config_path}' does not exist.")
    with config_path.open("rb") as handle:
        payload = tomllib.load(handle)
    for key in payload:
        if key not in _KNOWN_SECTIONS:
            raise ValueError(f"Config section '{key}' is not supported.")
    return payload


def _get_table(payload: dict[str, object], key: str) -> dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a table.")
    return value


def _tuple_of_strings(value: object, section: str, field: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ValueError(f"Config field '{section}.{field}' must be a list of strings.")
    output: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"Config field '{section}.{field}' must contain only strings.")
        output.append(item)
    return tuple(output)


def _validated_patterns(patterns: tuple[str, ...], name: str) -> tuple[str, ...]:
    for pattern in patterns:
        try:
            re.compile(pattern)
        except re.error as error:
            raise ValueError(
                f"Config field '{name}' has an invalid pattern {pattern!r}: {error}."
            ) from error
    return patterns


def merge_config(
    base: ServerConfig, file_payload: dict[str, object], overrides: CliOverrides
) -> ServerConfig:
    """Merge defaults, config file, then CLI/startup overrides."""
    ignore_payload = _get_table(file_payload, "ignore")
    search_payload = _get_table(file_payload, "search")

    directory_names = base.ignore.directory_names
    if "directory_names" in ignore_payload:
        directory_names = _tuple_of_strings(
            ignore_payload["directory_names"], "ignore", "directory_names"
        )
    file_patterns = base.ignore.file_patterns
    if "file_patterns" in ignore_payload:
        file_patterns = _validated_patterns(
            _tuple_of_strings(ignore_payload["file_patterns"], "ignore", "file_patterns"),
            "ignore.file_patterns",
        )

    max_results = _optional_positive_int_with_cap(
        search_payload.get("max_results"),
        "search.max_results",
        base.search.max_results,
        MAX_RESULTS_CAP,
    )
    use_character_index = base.search.use_character_index
    if "use_character_index" in search_payload:
        raw_use_character_index = search_payload["use_character_index"]
        if not isinstance(raw_use_character_index, bool):
            raise ValueError("Config field 'search.use_character_index' must be a boolean.")
        use_character_index = raw_use_character_index

    merged = ServerConfig(
        root=base.root,
        ignore=IgnoreConfig(directory_names=directory_names, file_patterns=file_patterns),
        search=SearchConfig(max_results=max_results, use_character_index=use_character_index),
        audit_log=base.audit_log,
    )
    return apply_cli_overrides(merged, overrides)


def apply_cli_overrides(config: ServerConfig, overrides: CliOverrides) -> ServerConfig:
    """Apply startup overrides at highest precedence."""
    max_results = _optional_positive_int_with_cap(
        overrides.max_results,
        "overrides.max_results",
        config.search.max_results,
        MAX_RESULTS_CAP,
    )
    search = SearchConfig(
        max_results=max_results,
        use_character_index=(
            overrides.use_character_index
            if overrides.use_character_index is not None
            else config.search.use_character_index
        ),
    )
    audit_log = overrides.audit_log or config.audit_log
    return ServerConfig(
        root=config.root,
        ignore=config.ignore,
        search=search,
        audit_log=audit_log.resolve() if audit_log is not None else None,
    )


def load_effective_config(
    root: Path,
    config_path: Path | None = None,
    overrides: CliOverrides | None = None,
) -> ServerConfig:
    """Load effective config using merge order defaults -> config file -> overrides."""
    base = default_config(root)
    payload = load_config_file(config_path) if config_path is not None else {}
    return merge_config(base, payload, overrides or CliOverrides())


def _optional_positive_int_with_cap(
    value: object,
    name: str,
    default: int | None,
    cap: int | None,
) -> int | None:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"Config field '{name}' must be a positive integer.")
    if cap is not None and value > cap:
        raise ValueError(f"Config field '{name}' must be <= {cap}.")
    return value
