# mypy: ignore-errors
"""Controller glue between widgets and the aggregated stats page."""

from __future__ import annotations

import asyncio
import functools
import logging
import threading
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from startup_visualizer.aggregated.orchestrator import LINE_PANES
from startup_visualizer.aggregated.page import AggregatedStatsPage, SettingChanged, SettingsStoreLike
from startup_visualizer.transport import JsonLoader

from .widgets import ClusteredChartPane, LineChartPane, SettingsPane

try:  # pragma: no cover - only available when PyQt6 is installed
    from PyQt6.QtCore import QObject, pyqtSignal  # type: ignore[import-not-found]
except ImportError:  # pragma: no cover - headless environments
    QObject = None  # type: ignore[assignment]
    pyqtSignal = None  # type: ignore[assignment]  # noqa: N816

logger = logging.getLogger(__name__)


if QObject is not None:  # pragma: no cover - requires PyQt6

    class _UiBridge(QObject):  # type: ignore[misc]
        """Queues callables onto the Qt thread through a signal."""

        posted = pyqtSignal(object)

        def __init__(self) -> None:
            super().__init__()
            self.posted.connect(self._run)  # type: ignore[attr-defined]

        def submit(self, func: Callable[..., None], *args: Any, **kwargs: Any) -> None:
            self.posted.emit(functools.partial(func, *args, **kwargs))  # type: ignore[attr-defined]

        def _run(self, thunk: Callable[[], None]) -> None:
            try:
                thunk()
            except Exception:  # noqa: BLE001
                logger.exception("UI update failed")

else:  # pragma: no cover - PyQt6 missing

    class _UiBridge:  # type: ignore[no-redef]
        """Headless stand-in: runs the callable in place."""

        def submit(self, func: Callable[..., None], *args: Any, **kwargs: Any) -> None:
            func(*args, **kwargs)


class LoopThread:
    """Runs one asyncio event loop on a background thread."""

    def __init__(self) -> None:
        self.loop = asyncio.new_event_loop()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self._run, name="stats-loop", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def submit(self, func: Callable[..., Any], *args: Any) -> None:
        if self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(functools.partial(self._invoke, func, *args))

    @staticmethod
    def _invoke(func: Callable[..., Any], *args: Any) -> None:
        try:
            func(*args)
        except Exception:  # noqa: BLE001
            logger.exception("Event handler %r failed", func)

    def stop(self) -> None:
        thread = self._thread
        if thread is None:
            return
        self.loop.call_soon_threadsafe(self.loop.stop)
        if thread is not threading.current_thread():
            thread.join(timeout=2.0)
        self._thread = None
        if not self.loop.is_running():
            self.loop.close()


class PaneRenderer:
    """Chart renderer living on the loop thread that draws through the UI bridge."""

    def __init__(self, pane: Any, ui: _UiBridge, preview_enabled: Callable[[], bool]) -> None:
        self._pane = pane
        self._ui = ui
        self._preview_enabled = preview_enabled

    def _draw(self, draw: Callable[..., None], *args: Any) -> None:
        # Runs on the Qt thread; the error stays with this pane.
        try:
            draw(*args)
        except Exception:  # noqa: BLE001
            logger.exception("Chart pane %s failed to draw", type(self._pane).__name__)

    def render(self, data_manager: Any) -> None:
        self._ui.submit(self._draw, self._pane.render, data_manager)

    def set_data(self, pending: Awaitable[Any]) -> None:
        future = asyncio.ensure_future(pending)
        future.add_done_callback(self._on_data)

    def _on_data(self, future: asyncio.Future[Any]) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Grouped metrics request failed: %s", exc)
            return
        payload = future.result()
        if payload is None:
            return
        self._ui.submit(self._draw, self._pane.apply_data, payload)

    def scrollbar_x_preview_option_changed(self) -> None:
        self._ui.submit(self._draw, self._pane.set_preview_visible, self._preview_enabled())

    def dispose(self) -> None:
        self._ui.submit(self._draw, self._pane.clear)


class ViewerController:
    def __init__(
        self,
        settings_pane: SettingsPane,
        chart_panes: Mapping[str, LineChartPane | ClusteredChartPane],
        store: SettingsStoreLike,
        *,
        loader: JsonLoader | None = None,
    ) -> None:
        self._settings_pane = settings_pane
        self._chart_panes = dict(chart_panes)
        self._ui = _UiBridge()
        self._loop_thread = LoopThread()
        self._loader = loader or JsonLoader()
        self._loader.notify = self._handle_notification
        self.page = AggregatedStatsPage(store, self._loader, self._create_renderer)
        self.page.subscribe(self._handle_page_change)

        pane = self._settings_pane
        submit = self._loop_thread.submit
        pane.server_edit.textChanged.connect(lambda text: submit(self.page.set_server_url, text))  # type: ignore[attr-defined]
        pane.reload_button.clicked.connect(lambda: submit(self.page.reload))  # type: ignore[attr-defined]
        pane.product_combo.currentTextChanged.connect(  # type: ignore[attr-defined]
            lambda text: submit(self.page.set_selected_product, text or None)
        )
        pane.machine_combo.currentIndexChanged.connect(  # type: ignore[attr-defined]
            lambda _index: submit(self.page.set_selected_machine, pane.selected_machine_id())
        )
        pane.operator_combo.currentTextChanged.connect(  # type: ignore[attr-defined]
            lambda text: submit(self.page.set_aggregation_operator, text or None)
        )
        pane.quantile_spin.valueChanged.connect(lambda value: submit(self.page.set_quantile, value))  # type: ignore[attr-defined]
        pane.preview_checkbox.toggled.connect(  # type: ignore[attr-defined]
            lambda checked: submit(self.page.set_show_scrollbar_x_preview, checked)
        )

    def start(self) -> None:
        self._settings_pane.apply_state((), (), self.page.settings.to_dict())
        for pane_id in LINE_PANES:
            pane = self._chart_panes.get(pane_id)
            if pane is not None:
                pane.set_preview_visible(self.page.settings.show_scrollbar_x_preview)
        self._loop_thread.start()
        self._loop_thread.submit(self.page.mount)

    def shutdown(self) -> None:
        self._loop_thread.submit(self.page.teardown)
        self._loop_thread.stop()

    def _create_renderer(self, pane_id: str) -> PaneRenderer:
        return PaneRenderer(
            self._chart_panes[pane_id],
            self._ui,
            lambda: self.page.settings.show_scrollbar_x_preview,
        )

    def _handle_page_change(self, event: SettingChanged | None) -> None:
        if event is not None and event.field not in {"selected_product", "selected_machine"}:
            return
        products = tuple(self.page.products)
        machines = tuple((item.id, item.label) for item in self.page.machines)
        settings = self.page.settings.to_dict()
        self._ui.submit(self._settings_pane.apply_state, products, machines, settings)
        if event is None:
            self._ui.submit(
                self._settings_pane.set_status, f"{len(products)} products loaded", "connected"
            )

    def _handle_notification(self, title: str, message: str) -> None:
        logger.warning("%s: %s", title, message)
        self._ui.submit(self._settings_pane.set_status, f"{title}: {message}", "error")
