"""STDIO line protocol daemon entrypoint."""

from __future__ import annotations

import argparse
import io
import signal
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from pathseek.commands.builtin import (
    SEARCH_COMMAND,
    SETROOT_COMMAND,
    register_builtin_commands,
)
from pathseek.commands.registry import CommandDispatchError, CommandRegistry
from pathseek.config import CliOverrides, ServerConfig, load_effective_config
from pathseek.index import IndexController, RescanReport, RescanTrigger, RootInaccessibleError
from pathseek.logging import AuditEvent, JsonlAuditLogger, sanitize_arguments, utc_timestamp


@dataclass(slots=True, frozen=True)
class Request:
    """Normalized incoming line."""

    request_id: str
    command: str
    argument: str


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for daemon startup configuration."""
    parser = argparse.ArgumentParser(prog="pathseek")
    parser.add_argument("root", nargs="?", default=".")
    parser.add_argument("--config", required=False, default=None)
    parser.add_argument("--max-results", type=int, required=False, default=None)
    parser.add_argument(
        "--character-index", choices=("true", "false"), required=False, default=None
    )
    parser.add_argument("--audit-log", required=False, default=None)
    return parser


class LineServer:
    """Line-oriented STDIO server: ``setroot <path>``, ``search <query>`` or a bare query."""

    def __init__(self, config: ServerConfig, trigger: RescanTrigger | None = None) -> None:
        self._config = config
        self._audit_logger = JsonlAuditLogger(path=config.audit_log)
        self._controller = IndexController(
            ignore=config.ignore,
            search=config.search,
            trigger=trigger,
            on_rescan=self._log_rescan,
        )
        self._registry = CommandRegistry()
        register_builtin_commands(
            self._registry,
            set_root=self._controller.set_root,
            search=self._controller.search,
        )
        self._request_counter = 0
        self._current_request_id = "startup"

    @property
    def controller(self) -> IndexController:
        return self._controller

    @property
    def audit_logger(self) -> JsonlAuditLogger:
        return self._audit_logger

    def start(self) -> None:
        """Index the configured root; an inaccessible root leaves the index empty."""
        self._current_request_id = "startup"
        self.log_event(
            request_id="startup",
            command="config",
            ok=True,
            error_code=None,
            arguments={"config": self._config.to_public_dict()},
        )
        try:
            self._controller.set_root(self._config.root)
        except RootInaccessibleError:
            # Already recorded by the rescan callback.
            return

    def serve(self, in_stream: TextIO, out_stream: TextIO) -> None:
        """Process request lines until end of input."""
        for raw_line in in_stream:
            self._current_request_id = "trigger"
            self._controller.poll_triggers()
            line = raw_line.strip()
            if not line:
                continue
            response = self.handle_line(line)
            if response is None:
                continue
            for item in response:
                out_stream.write(f"{item}\n")
            out_stream.write("\n")
            out_stream.flush()

    def handle_line(self, line: str) -> list[str] | None:
        """Handle one stripped request line; search responses exclude the terminator."""
        request = self.parse_request(line)
        self._current_request_id = request.request_id
        arguments = _request_arguments(request)
        try:
            response = self._registry.dispatch(request.command, request.argument)
        except RootInaccessibleError as error:
            self.log_event(
                request_id=request.request_id,
                command=request.command,
                ok=False,
                error_code="ROOT_INACCESSIBLE",
                arguments={**arguments, "error": error.reason},
            )
            return self._failed_response(request)
        except CommandDispatchError as error:
            self.log_event(
                request_id=request.request_id,
                command=request.command,
                ok=False,
                error_code=error.code,
                arguments={**arguments, "error": error.message},
            )
            return self._failed_response(request)
        except Exception:
            self.log_event(
                request_id=request.request_id,
                command=request.command,
                ok=False,
                error_code="INTERNAL_ERROR",
                arguments=arguments,
            )
            return self._failed_response(request)

        if request.command == SEARCH_COMMAND:
            arguments["result_count"] = len(response or [])
            arguments["dropped_candidates"] = self._controller.last_search_dropped
        self.log_event(
            request_id=request.request_id,
            command=request.command,
            ok=True,
            error_code=None,
            arguments=arguments,
        )
        return response

    def parse_request(self, line: str) -> Request:
        """Split a line into command and argument; unknown words mean a bare search."""
        request_id = self.next_request_id()
        word, _, rest = line.partition(" ")
        if word in self._registry.names():
            return Request(request_id=request_id, command=word, argument=rest)
        return Request(request_id=request_id, command=SEARCH_COMMAND, argument=line)

    def next_request_id(self) -> str:
        """Generate sequential request IDs."""
        self._request_counter += 1
        return f"req-{self._request_counter:06d}"

    @staticmethod
    def _failed_response(request: Request) -> list[str] | None:
        if request.command == SEARCH_COMMAND:
            return []
        return None

    def log_event(
        self,
        request_id: str,
        command: str,
        ok: bool,
        error_code: str | None,
        arguments: dict[str, object],
    ) -> None:
        """Log one sanitized event."""
        event = AuditEvent(
            timestamp=utc_timestamp(),
            request_id=request_id,
            command=command,
            ok=ok,
            error_code=error_code,
            metadata=sanitize_arguments(arguments),
        )
        self._audit_logger.append(event)

    def _log_rescan(self, report: RescanReport) -> None:
        self.log_event(
            request_id=self._current_request_id,
            command="rescan",
            ok=report.ok,
            error_code=None if report.ok else "ROOT_INACCESSIBLE",
            arguments={
                "root": report.root,
                "path_count": report.path_count,
                "skipped_directories": report.skipped_directories,
                "duration_ms": report.duration_ms,
                "generation": self._controller.generation,
                "error": report.error,
            },
        )


def _request_arguments(request: Request) -> dict[str, object]:
    if request.command == SETROOT_COMMAND:
        return {"root": request.argument.strip()}
    if request.command == SEARCH_COMMAND:
        return {"query": request.argument}
    return {"argument": request.argument}


def _pass_through_filename_bytes(stream: TextIO) -> None:
    # Undecodable filename bytes reach us as surrogates; write them back out as bytes.
    if isinstance(stream, io.TextIOWrapper):
        stream.reconfigure(errors="surrogateescape")


def install_rescan_signal(trigger: RescanTrigger) -> bool:
    """Route SIGUSR1 into ``trigger``; returns False where the signal does not exist."""
    signum = getattr(signal, "SIGUSR1", None)
    if signum is None:
        return False

    def handler(_signum: int, _frame: object) -> None:
        trigger.notify()

    signal.signal(signum, handler)
    return True


def create_server(
    root: str = ".",
    config_path: str | None = None,
    cli_overrides: CliOverrides | None = None,
    trigger: RescanTrigger | None = None,
    start: bool = True,
) -> LineServer:
    """Create a configured server; by default the initial root is indexed."""
    config = load_effective_config(
        root=Path(root),
        config_path=Path(config_path) if config_path is not None else None,
        overrides=cli_overrides,
    )
    server = LineServer(config=config, trigger=trigger)
    if start:
        server.start()
    return server


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for the daemon process."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    use_character_index: bool | None = None
    if args.character_index == "true":
        use_character_index = True
    if args.character_index == "false":
        use_character_index = False
    overrides = CliOverrides(
        max_results=args.max_results,
        use_character_index=use_character_index,
        audit_log=Path(args.audit_log) if args.audit_log is not None else None,
    )
    try:
        server = create_server(
            root=args.root,
            config_path=args.config,
            cli_overrides=overrides,
            start=False,
        )
    except ValueError as error:
        parser.error(str(error))
    install_rescan_signal(server.controller.trigger)
    _pass_through_filename_bytes(sys.stdin)
    _pass_through_filename_bytes(sys.stdout)
    server.start()
    server.serve(in_stream=sys.stdin, out_stream=sys.stdout)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
