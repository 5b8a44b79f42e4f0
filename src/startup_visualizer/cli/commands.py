"""CLI command registration and handlers for the Startup Visualizer."""

from __future__ import annotations

import argparse
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from startup_visualizer.aggregated.descriptors import LineChartDataManager
from startup_visualizer.aggregated.query import (
    AGGREGATION_OPERATORS,
    build_grouped_metrics_url,
    build_info_url,
    build_metrics_url,
)
from startup_visualizer.config import ChartSettings
from startup_visualizer.contracts.error import BadInputError, TransportError
from startup_visualizer.model import InfoResponse, parse_metrics_list
from startup_visualizer.transport import JsonLoader


@dataclass(frozen=True)
class CLIContext:
    """Output, logging and error hooks handed to every subcommand."""

    emit_success: Callable[..., None]
    load_store: Callable[[str | None], Any]
    logger: logging.Logger
    json_enabled: Callable[[], bool]
    guard: Callable[[Callable[[argparse.Namespace], int]], Callable[[argparse.Namespace], int]]
    loader_factory: Callable[[], JsonLoader] = JsonLoader


def register_subcommands(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
    ctx: CLIContext,
) -> dict[str, Callable[[argparse.Namespace], int]]:
    """Add every subcommand to ``subparsers``; map each name to its guarded handler."""

    handlers: dict[str, Callable[[argparse.Namespace], int]] = {}

    def _register(
        name: str,
        help_text: str | None,
        configure: Callable[[argparse.ArgumentParser], Callable[[argparse.Namespace], int]],
    ) -> None:
        parser = subparsers.add_parser(name, help=help_text)
        handler = configure(parser)
        handlers[name] = ctx.guard(handler)

    _register(
        "info",
        "List products and machines known to the stats server.",
        lambda parser: _configure_info(parser, ctx),
    )
    _register(
        "url",
        "Print the grouped metrics URL for a product/machine pair.",
        lambda parser: _configure_url(parser, ctx),
    )
    _register(
        "descriptors",
        "Fetch line metrics and print the chart descriptors with default visibility.",
        lambda parser: _configure_descriptors(parser, ctx),
    )
    _register(
        "gui",
        "Launch the desktop viewer (PyQt6).",
        lambda parser: _configure_gui(parser, ctx),
    )
    return handlers


def _add_server_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--server",
        default=None,
        help="Stats server base URL (default: server_url from the settings file)",
    )


def _resolve_settings(args: argparse.Namespace, ctx: CLIContext) -> ChartSettings:
    settings = ctx.load_store(args.settings).load()
    if getattr(args, "server", None):
        settings.server_url = args.server.strip().rstrip("/")
        settings.validate()
    if not settings.server_url:
        raise BadInputError(
            "No stats server configured", hint="Pass --server or set server_url in the settings file"
        )
    return settings


def _fetch(ctx: CLIContext, url: str) -> Any:
    payload = ctx.loader_factory().read_json(url)
    if payload is None:
        raise TransportError(f"{url} returned no data")
    return payload


def _fetch_info(ctx: CLIContext, server_url: str) -> InfoResponse:
    return InfoResponse.from_json(_fetch(ctx, build_info_url(server_url)))


def _configure_info(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    _add_server_argument(parser)

    def handler(args: argparse.Namespace) -> int:
        settings = _resolve_settings(args, ctx)
        info = _fetch_info(ctx, settings.server_url)
        lines = []
        for product in info.product_names:
            machines = ", ".join(f"{item.id} ({item.label})" for item in info.machines_for(product))
            lines.append(f"{product}: {machines or '-'}")
        data = {
            "products": list(info.product_names),
            "machines": {
                product: [item.id for item in info.machines_for(product)]
                for product in info.product_names
            },
            "duration_metrics": list(info.duration_metrics_names),
            "instant_metrics": list(info.instant_metrics_names),
        }
        ctx.emit_success("info", text="\n".join(lines) if lines else "No products", data=data)
        return 0

    return handler


def _configure_url(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    _add_server_argument(parser)
    parser.add_argument("--product", required=True)
    parser.add_argument("--machine", type=int, required=True)
    parser.add_argument("--operator", choices=AGGREGATION_OPERATORS, default=None)
    parser.add_argument("--quantile", type=float, default=None)
    parser.add_argument("--instant", action="store_true", help="Query instant events")

    def handler(args: argparse.Namespace) -> int:
        settings = _resolve_settings(args, ctx)
        operator = args.operator or settings.aggregation_operator
        quantile = settings.quantile if args.quantile is None else args.quantile
        url = build_grouped_metrics_url(
            settings.server_url, args.product, args.machine, operator, quantile, args.instant
        )
        ctx.emit_success("url", text=url, data={"url": url})
        return 0

    return handler


def _configure_descriptors(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    _add_server_argument(parser)
    parser.add_argument("--product", required=True)
    parser.add_argument("--machine", type=int, required=True)

    def handler(args: argparse.Namespace) -> int:
        settings = _resolve_settings(args, ctx)
        info = _fetch_info(ctx, settings.server_url)
        url = build_metrics_url(settings.server_url, args.product, args.machine)
        metrics = parse_metrics_list(_fetch(ctx, url))
        ctx.logger.info("Loaded %d runs from %s", len(metrics), url)
        manager = LineChartDataManager(metrics, info)

        rows: list[dict[str, Any]] = []
        for kind, is_instant in (("duration", False), ("instant", True)):
            for descriptor in manager.descriptors(is_instant):
                xs, _ys = manager.series_for(descriptor)
                rows.append(
                    {
                        "kind": kind,
                        "key": descriptor.key,
                        "hidden_by_default": descriptor.hidden_by_default,
                        "points": len(xs),
                    }
                )
        text = "\n".join(
            f"{row['kind']:<8} {row['key']:<40} "
            f"{'hidden' if row['hidden_by_default'] else 'shown':<6} {row['points']}"
            for row in rows
        )
        ctx.emit_success("descriptors", text=text or "No metrics", data={"descriptors": rows})
        return 0

    return handler


def _configure_gui(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    _add_server_argument(parser)

    def handler(args: argparse.Namespace) -> int:
        from startup_visualizer.viewer.app import run_viewer

        return int(run_viewer([], settings_path=args.settings, server_url=args.server))

    return handler
