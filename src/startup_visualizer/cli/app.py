"""``startup-visualizer`` command: global flags, logging and dispatch."""

from __future__ import annotations

import argparse
import contextlib
import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Any

from startup_visualizer.config import DEFAULT_SETTINGS_PATH, SETTINGS_ENV_VAR, SettingsStore
from startup_visualizer.contracts.error import BadInputError, guard_cli

from .commands import CLIContext, register_subcommands

logger = logging.getLogger("startup_visualizer")
logger.setLevel(logging.INFO)
logger.propagate = False

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"
LOG_ROTATE_BYTES = 5_000_000
LOG_ROTATE_BACKUPS = 5


class JsonFormatter(logging.Formatter):
    """One JSON object per record, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": self.formatTime(record, LOG_DATEFMT),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack"] = self.formatStack(record.stack_info)
        return json.dumps(entry, ensure_ascii=False)


def _formatter(use_json: bool) -> logging.Formatter:
    return JsonFormatter() if use_json else logging.Formatter(LOG_FORMAT, LOG_DATEFMT)


def _drop_handlers(target: logging.Logger) -> None:
    for handler in tuple(target.handlers):
        target.removeHandler(handler)
        with contextlib.suppress(OSError, ValueError):
            handler.close()


def configure_logging(
    use_json: bool = False,
    log_file: str | None = None,
    *,
    level: int = logging.INFO,
    max_bytes: int = LOG_ROTATE_BYTES,
    backup_count: int = LOG_ROTATE_BACKUPS,
) -> None:
    """Send package logs to stderr and, when ``log_file`` is set, a rotating file."""

    _drop_handlers(logger)
    logger.setLevel(level)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(
            RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count)
        )
    formatter = _formatter(use_json)
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)


configure_logging()

OUTPUT_JSON: bool = False


def emit_success(
    command: str, *, text: str | None = None, data: dict[str, Any] | None = None
) -> None:
    """Print a command result as text, or as ``{"ok": true, ...}`` under ``--json``."""

    if not OUTPUT_JSON:
        if text is not None:
            print(text)
        return
    document: dict[str, Any] = {"ok": True, "command": command, **(data or {})}
    if text is not None:
        document.setdefault("result", text)
    print(json.dumps(document, ensure_ascii=False))


def _add_global_flags(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("global options")
    group.add_argument(
        "--settings",
        metavar="PATH",
        default=None,
        help=f"Chart settings TOML file (default: ${SETTINGS_ENV_VAR} or {DEFAULT_SETTINGS_PATH})",
    )
    group.add_argument("--json", action="store_true", help="Print results as JSON on stdout")
    group.add_argument("--log-json", action="store_true", help="Write log records as JSON")
    group.add_argument(
        "--log-file",
        metavar="PATH",
        default=None,
        help="Also log to PATH, rotated at 5MB with 5 backups",
    )
    group.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")


def build_parser() -> tuple[argparse.ArgumentParser, dict[str, Any]]:
    parser = argparse.ArgumentParser(
        prog="startup-visualizer",
        description="Inspect and chart aggregated IDE startup metrics from a stats server.",
    )
    _add_global_flags(parser)
    ctx = CLIContext(
        emit_success=emit_success,
        load_store=SettingsStore,
        logger=logger,
        json_enabled=lambda: OUTPUT_JSON,
        guard=guard_cli,
    )
    handlers = register_subcommands(parser.add_subparsers(dest="cmd", required=True), ctx)
    return parser, handlers


def main(argv: list[str] | None = None) -> int:
    global OUTPUT_JSON

    parser, handlers = build_parser()
    args = parser.parse_args(argv)
    OUTPUT_JSON = args.json
    configure_logging(
        args.log_json, args.log_file, level=logging.DEBUG if args.verbose else logging.INFO
    )
    try:
        handler = handlers[args.cmd]
    except KeyError:
        raise BadInputError(f"Unknown command {args.cmd}") from None
    return handler(args)


def console_main() -> None:
    """``console_scripts`` entry point."""

    try:
        code = main(sys.argv[1:])
    except Exception as exc:  # noqa: BLE001
        logger.exception("Fatal error: %s", exc)
        raise SystemExit(2) from exc
    raise SystemExit(code)


if __name__ == "__main__":
    console_main()
