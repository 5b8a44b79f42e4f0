"""Fetch sequencing between the metrics server, selection state and renderers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine, Sequence
from typing import TYPE_CHECKING, Any, Protocol

from startup_visualizer.contracts.error import BadInputError
from startup_visualizer.model import InfoResponse, Metrics, parse_metrics_list

from .descriptors import LineChartDataManager
from .query import build_grouped_metrics_url, build_info_url, build_metrics_url
from .selection import SelectionStateMachine

if TYPE_CHECKING:  # pragma: no cover - typing only
    from startup_visualizer.config import ChartSettings

logger = logging.getLogger(__name__)

INFO_PANE = "info"
LINE_PANE = "line"
LINE_DURATION_PANE = "line-duration"
LINE_INSTANT_PANE = "line-instant"
CLUSTERED_DURATION_PANE = "clustered-duration"
CLUSTERED_INSTANT_PANE = "clustered-instant"

LINE_PANES = (LINE_DURATION_PANE, LINE_INSTANT_PANE)
CLUSTERED_PANES = (CLUSTERED_DURATION_PANE, CLUSTERED_INSTANT_PANE)


class ChartRenderer(Protocol):
    def render(self, data_manager: LineChartDataManager) -> None: ...

    def set_data(self, pending: Awaitable[Any]) -> None: ...

    def scrollbar_x_preview_option_changed(self) -> None: ...

    def dispose(self) -> None: ...


class JsonSource(Protocol):
    def load_json(self, url: str) -> Awaitable[Any | None]: ...

    def notify(self, title: str, message: str) -> None: ...


RendererFactory = Callable[[str], ChartRenderer]


def is_instant_pane(pane_id: str) -> bool:
    return pane_id in (LINE_INSTANT_PANE, CLUSTERED_INSTANT_PANE)


class FetchOrchestrator:
    """Issue info, line and grouped metric fetches and route their results.

    Every fetch is tagged with a sequence number of its pane; a result that
    arrives after a newer fetch for the same pane was issued is dropped.
    """

    def __init__(
        self,
        settings: ChartSettings,
        loader: JsonSource,
        renderer_factory: RendererFactory,
        *,
        on_info: Callable[[InfoResponse], None] | None = None,
    ) -> None:
        self._settings = settings
        self._loader = loader
        self._renderer_factory = renderer_factory
        self._on_info = on_info
        self.selection = SelectionStateMachine(settings, self.load_data)
        self._renderers: dict[str, ChartRenderer] = {}
        self._sequence: dict[str, int] = {}
        self._tasks: set[asyncio.Task[Any]] = set()
        self.is_fetching = False

    @property
    def renderers(self) -> dict[str, ChartRenderer]:
        return dict(self._renderers)

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait until no fetch started by this orchestrator is in flight."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _next_sequence(self, pane_id: str) -> int:
        value = self._sequence.get(pane_id, 0) + 1
        self._sequence[pane_id] = value
        return value

    def is_latest(self, pane_id: str, sequence: int) -> bool:
        return self._sequence.get(pane_id) == sequence

    async def _guarded(self, pane_id: str, sequence: int, url: str) -> Any | None:
        try:
            result = await self._loader.load_json(url)
        except Exception:  # noqa: BLE001
            logger.exception("Request to %s failed", url)
            return None
        if not self.is_latest(pane_id, sequence):
            logger.debug("dropping stale response for %s (#%d)", pane_id, sequence)
            return None
        return result

    def _renderer(self, pane_id: str) -> ChartRenderer:
        renderer = self._renderers.get(pane_id)
        if renderer is None:
            renderer = self._renderer_factory(pane_id)
            self._renderers[pane_id] = renderer
        return renderer

    def load_info(self) -> asyncio.Task[Any]:
        sequence = self._next_sequence(INFO_PANE)
        url = build_info_url(self._settings.server_url)
        return self._spawn(self._load_info(sequence, url))

    async def _load_info(self, sequence: int, url: str) -> None:
        self.is_fetching = True
        try:
            data = await self._guarded(INFO_PANE, sequence, url)
        finally:
            if self.is_latest(INFO_PANE, sequence):
                self.is_fetching = False
        if data is None:
            return
        try:
            info = InfoResponse.from_json(data)
        except BadInputError as exc:
            logger.warning("Ignoring info response: %s", exc)
            self._loader.notify("Invalid server response", str(exc))
            return
        self.selection.info_arrived(info)
        if self._on_info is not None:
            self._on_info(info)

    def load_data(self, product: str, machine_id: int) -> None:
        self.load_clustered_metrics(product, machine_id)
        self.load_line_metrics(product, machine_id)

    def load_line_metrics(self, product: str, machine_id: int) -> asyncio.Task[Any]:
        sequence = self._next_sequence(LINE_PANE)
        url = build_metrics_url(self._settings.server_url, product, machine_id)
        return self._spawn(self._load_line_metrics(sequence, url, self.selection.info))

    async def _load_line_metrics(self, sequence: int, url: str, info: InfoResponse | None) -> None:
        data = await self._guarded(LINE_PANE, sequence, url)
        if data is None or info is None:
            return
        try:
            metrics = parse_metrics_list(data)
        except BadInputError as exc:
            self._loader.notify("Invalid server response", str(exc))
            return
        self.render_line_charts(metrics, info)

    def render_line_charts(self, metrics: Sequence[Metrics], info: InfoResponse) -> None:
        renderers = [self._renderer(pane_id) for pane_id in LINE_PANES]
        data_manager = LineChartDataManager(metrics, info)
        for renderer in renderers:
            try:
                renderer.render(data_manager)
            except Exception:  # noqa: BLE001
                logger.exception("Chart renderer %r failed", renderer)

    def load_clustered_metrics(self, product: str, machine_id: int) -> list[asyncio.Task[Any]]:
        settings = self._settings
        renderers = [self._renderer(pane_id) for pane_id in CLUSTERED_PANES]
        tasks: list[asyncio.Task[Any]] = []
        for pane_id, renderer in zip(CLUSTERED_PANES, renderers):
            url = build_grouped_metrics_url(
                settings.server_url,
                product,
                machine_id,
                settings.aggregation_operator,
                settings.quantile,
                is_instant_pane(pane_id),
            )
            task = self._spawn(self._guarded(pane_id, self._next_sequence(pane_id), url))
            tasks.append(task)
            try:
                renderer.set_data(task)
            except Exception:  # noqa: BLE001
                logger.exception("Chart renderer %r failed", renderer)
        return tasks

    def reload_clustered_if_possible(self) -> None:
        product = self._settings.selected_product
        machine_id = self._settings.selected_machine
        if not product or machine_id is None:
            return
        self.load_clustered_metrics(product, machine_id)

    def scrollbar_x_preview_option_changed(self) -> None:
        for pane_id in LINE_PANES:
            renderer = self._renderers.get(pane_id)
            if renderer is not None:
                renderer.scrollbar_x_preview_option_changed()

    def dispose(self) -> None:
        # In-flight requests cannot be aborted; bumping the sequence drops their results.
        for pane_id in (INFO_PANE, LINE_PANE, *CLUSTERED_PANES):
            self._next_sequence(pane_id)
        renderers = list(self._renderers.values())
        self._renderers.clear()
        for renderer in renderers:
            try:
                renderer.dispose()
            except Exception:  # noqa: BLE001
                logger.exception("Failed to dispose chart renderer %r", renderer)


__all__ = [
    "CLUSTERED_DURATION_PANE",
    "CLUSTERED_INSTANT_PANE",
    "CLUSTERED_PANES",
    "ChartRenderer",
    "FetchOrchestrator",
    "INFO_PANE",
    "JsonSource",
    "LINE_DURATION_PANE",
    "LINE_INSTANT_PANE",
    "LINE_PANE",
    "LINE_PANES",
    "RendererFactory",
    "is_instant_pane",
]
