"""Command-line interface for fluffls."""

from __future__ import annotations

import argparse
import dataclasses
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Literal

from fluffls.linting.types import RunTrigger
from fluffls.logging import configure_logging, get_logger
from fluffls.lsp.server import create_server


@dataclasses.dataclass(frozen=True)
class CliArgs:
    """Parsed command-line arguments."""

    transport: Literal["stdio", "tcp"]
    host: str
    port: int
    log_level: str
    log_file: Path | None
    debug: bool
    executable: str | None
    run: RunTrigger | None

    def default_settings(self) -> dict[str, Any]:
        """Settings implied by the command line, overridden by the client."""
        settings: dict[str, Any] = {}
        if self.executable is not None:
            settings["executablePath"] = self.executable
        if self.run is not None:
            settings["linter"] = {"run": self.run.value}
        return settings


def parse_args(argv: Sequence[str] | None = None) -> CliArgs:
    """
    Parse command-line arguments.

    Args:
        argv: Command-line arguments. If None, uses sys.argv[1:].

    Returns:
        Parsed arguments as CliArgs dataclass.
    """
    parser = argparse.ArgumentParser(
        prog="fluffls",
        description="SQLFluff Language Server Protocol server",
    )

    parser.add_argument(
        "--transport",
        choices=["stdio", "tcp"],
        default="stdio",
        help="Transport mode (default: stdio)",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host for TCP transport (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=2087,
        help="Port for TCP transport (default: 2087)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Log level (default: INFO, or DEBUG if --debug is set)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Log file path (default: stderr)",
    )
    parser.add_argument(
        "-v",
        "--debug",
        action="store_true",
        help="Enable debug mode (sets log level to DEBUG unless --log-level is specified)",
    )
    parser.add_argument(
        "--executable",
        default=None,
        help="SQLFluff executable used until the client configures one (default: sqlfluff)",
    )
    parser.add_argument(
        "--run",
        choices=[trigger.value for trigger in RunTrigger],
        default=None,
        help="When to lint until the client configures it (default: onType)",
    )

    args = parser.parse_args(argv)

    if args.log_level is not None:
        log_level = args.log_level
    elif args.debug:
        log_level = "DEBUG"
    else:
        log_level = "INFO"

    return CliArgs(
        transport=args.transport,
        host=args.host,
        port=args.port,
        log_level=log_level,
        log_file=args.log_file,
        debug=args.debug,
        executable=args.executable,
        run=RunTrigger(args.run) if args.run is not None else None,
    )


def run(argv: Sequence[str] | None = None) -> int:
    """
    Run the LSP server.

    Args:
        argv: Command-line arguments. If None, uses sys.argv[1:].

    Returns:
        Exit code (0 for success, 1 for error).
    """
    args = parse_args(argv)

    configure_logging(level=args.log_level, log_file=args.log_file)
    logger = get_logger("main")

    logger.info("Starting fluffls server")
    logger.debug("Configuration: %s", args)

    try:
        server = create_server(default_settings=args.default_settings())

        if args.transport == "stdio":
            logger.info("Starting in stdio mode")
            server.start_io()
        else:
            logger.info("Starting in TCP mode on %s:%d", args.host, args.port)
            server.start_tcp(args.host, args.port)

        return 0

    except KeyboardInterrupt:
        logger.info("Server stopped by user")
        return 0

    except Exception:
        logger.critical("Fatal error in server", exc_info=True)
        return 1


def main() -> None:
    raise SystemExit(run())
