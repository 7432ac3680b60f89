"""Named command registration primitives."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

CommandHandler = Callable[[str], list[str] | None]


@dataclass(slots=True, frozen=True)
class CommandDispatchError(Exception):
    """Represents command dispatch failures."""

    code: str
    message: str


@dataclass(slots=True)
class CommandRegistry:
    """In-memory command registry preserving insertion order.

    A handler receives the argument text after the command word and returns
    the response lines, or None when the command produces no output.
    """

    _handlers: dict[str, CommandHandler] = field(default_factory=dict)

    def register(self, name: str, handler: CommandHandler) -> None:
        """Register a named handler."""
        self._handlers[name] = handler

    def get(self, name: str) -> CommandHandler | None:
        """Return a handler by name."""
        return self._handlers.get(name)

    def names(self) -> tuple[str, ...]:
        """Return registered command names in registration order."""
        return tuple(self._handlers.keys())

    def dispatch(self, name: str, argument: str) -> list[str] | None:
        """Dispatch to a registered command by name."""
        handler = self.get(name)
        if handler is None:
            raise CommandDispatchError(code="UNKNOWN_COMMAND", message=f"Unknown command: {name}")
        return handler(argument)
