"""Built-in line protocol commands."""

from __future__ import annotations

from collections.abc import Callable

from pathseek.commands.registry import CommandDispatchError, CommandHandler, CommandRegistry
from pathseek.index import MatchCandidate, RescanReport

SETROOT_COMMAND = "setroot"
SEARCH_COMMAND = "search"


def register_builtin_commands(
    registry: CommandRegistry,
    set_root: Callable[[str], RescanReport],
    search: Callable[[str], tuple[MatchCandidate, ...]],
) -> None:
    """Register ``setroot`` and ``search``."""
    registry.register(SETROOT_COMMAND, _setroot_handler(set_root))
    registry.register(SEARCH_COMMAND, _search_handler(search))


def _setroot_handler(set_root: Callable[[str], RescanReport]) -> CommandHandler:
    def handler(argument: str) -> list[str] | None:
        root = argument.strip()
        if not root:
            raise CommandDispatchError(
                code="INVALID_COMMAND",
                message="setroot requires a directory path.",
            )
        set_root(root)
        return None

    return handler


def _search_handler(search: Callable[[str], tuple[MatchCandidate, ...]]) -> CommandHandler:
    def handler(argument: str) -> list[str] | None:
        return [candidate.to_line() for candidate in search(argument)]

    return handler
