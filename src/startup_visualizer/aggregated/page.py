"""Aggregated stats page session: settings events, debouncing and teardown."""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from startup_visualizer.config import ChartSettings
from startup_visualizer.contracts.error import BadInputError
from startup_visualizer.model import InfoResponse, Machine

from .debounce import CallLater, DebounceRegistry, TimerHandle
from .orchestrator import FetchOrchestrator, JsonSource, RendererFactory
from .query import normalize_operator
from .selection import SelectionStateMachine

logger = logging.getLogger(__name__)

LOAD_INFO_KEY = "load-info"
RELOAD_CLUSTERED_KEY = "reload-clustered"
SERVER_URL_DEBOUNCE_MS = 1000
QUANTILE_DEBOUNCE_MS = 300

# Fields the selection machine may rewrite while handling another change.
_REPAIRED_FIELDS = ("selected_product", "selected_machine")


class SettingsStoreLike(Protocol):
    def load(self) -> ChartSettings: ...

    def save(self, settings: ChartSettings) -> Any: ...


@dataclass(frozen=True)
class SettingChanged:
    field: str
    new: Any
    old: Any


Listener = Callable[[SettingChanged | None], None]


def _loop_call_later(delay: float, callback: Callable[[], None]) -> TimerHandle:
    return asyncio.get_running_loop().call_later(delay, callback)


class AggregatedStatsPage:
    """Owns the chart settings and turns each field change into one event.

    Handlers run synchronously, in the same call as the mutation, so derived
    selection state is repaired before anything else reads the settings.
    """

    def __init__(
        self,
        store: SettingsStoreLike,
        loader: JsonSource,
        renderer_factory: RendererFactory,
        *,
        call_later: CallLater | None = None,
    ) -> None:
        self._store = store
        self.settings = store.load()
        self.orchestrator = FetchOrchestrator(
            self.settings, loader, renderer_factory, on_info=self._handle_info
        )
        self.debounce = DebounceRegistry(call_later or _loop_call_later)
        self._listeners: list[Listener] = []
        self._handlers: dict[str, Callable[[SettingChanged], None]] = {
            "server_url": self._server_url_changed,
            "selected_product": self._selected_product_changed,
            "selected_machine": self._selected_machine_changed,
            "aggregation_operator": self._aggregation_operator_changed,
            "quantile": self._quantile_changed,
            "show_scrollbar_x_preview": self._show_scrollbar_x_preview_changed,
        }

    @property
    def selection(self) -> SelectionStateMachine:
        return self.orchestrator.selection

    @property
    def products(self) -> tuple[str, ...]:
        return self.selection.products

    @property
    def machines(self) -> tuple[Machine, ...]:
        return self.selection.machines

    @property
    def is_fetching(self) -> bool:
        return self.orchestrator.is_fetching

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, event: SettingChanged | None) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:  # noqa: BLE001
                logger.exception("Settings listener failed")

    def _handle_info(self, info: InfoResponse) -> None:
        logger.debug("info loaded: %d products", len(info.product_names))
        self._persist()
        self._emit(None)

    def _persist(self) -> None:
        """Save the settings unless a field is still invalid, e.g. a half-typed URL."""

        try:
            self.settings.validate()
        except BadInputError as exc:
            logger.info("Not saving chart settings: %s", exc)
            return
        try:
            self._store.save(self.settings)
        except OSError as exc:
            logger.warning("Cannot save chart settings: %s", exc)

    def mount(self) -> None:
        if self.settings.server_url:
            self.orchestrator.load_info()

    def reload(self) -> None:
        self.debounce.cancel(LOAD_INFO_KEY)
        if self.settings.server_url:
            self.orchestrator.load_info()

    def teardown(self) -> None:
        self.debounce.cancel_all()
        self.orchestrator.dispose()

    def update(self, field: str, value: Any) -> None:
        handler = self._handlers.get(field)
        if handler is None:
            raise KeyError(f"Unknown chart setting {field!r}")
        old = getattr(self.settings, field)
        if old == value:
            return
        setattr(self.settings, field, value)
        event = SettingChanged(field, value, old)
        before = {name: getattr(self.settings, name) for name in _REPAIRED_FIELDS if name != field}
        handler(event)
        self._emit(event)
        for name, previous in before.items():
            current = getattr(self.settings, name)
            if current != previous:
                self._emit(SettingChanged(name, current, previous))

    def set_server_url(self, url: str) -> None:
        self.update("server_url", url.strip().rstrip("/"))

    def set_selected_product(self, product: str | None) -> None:
        self.update("selected_product", product)

    def set_selected_machine(self, machine_id: int | None) -> None:
        self.update("selected_machine", machine_id)

    def set_aggregation_operator(self, operator: str | None) -> None:
        self.update("aggregation_operator", normalize_operator(operator) if operator else None)

    def set_quantile(self, quantile: float) -> None:
        value = float(quantile)
        if not math.isfinite(value) or not 0.0 <= value <= 1.0:
            raise BadInputError(f"quantile must be within [0, 1]; got {quantile!r}")
        self.update("quantile", value)

    def set_show_scrollbar_x_preview(self, value: bool) -> None:
        self.update("show_scrollbar_x_preview", bool(value))

    def _server_url_changed(self, event: SettingChanged) -> None:
        if not event.new:
            self.debounce.cancel(LOAD_INFO_KEY)
            return
        self._persist()
        self.debounce.schedule(LOAD_INFO_KEY, SERVER_URL_DEBOUNCE_MS, self.orchestrator.load_info)

    def _selected_product_changed(self, event: SettingChanged) -> None:
        self.selection.product_changed(event.new, event.old)
        self._persist()

    def _selected_machine_changed(self, event: SettingChanged) -> None:
        self.selection.machine_changed(event.new, event.old)
        self._persist()

    def _aggregation_operator_changed(self, event: SettingChanged) -> None:
        self._persist()
        if not event.new:
            return
        self.orchestrator.reload_clustered_if_possible()

    def _quantile_changed(self, event: SettingChanged) -> None:
        logger.debug("quantile changed: %s", event.new)
        self._persist()
        self.debounce.schedule(
            RELOAD_CLUSTERED_KEY, QUANTILE_DEBOUNCE_MS, self.orchestrator.reload_clustered_if_possible
        )

    def _show_scrollbar_x_preview_changed(self, event: SettingChanged) -> None:
        del event
        self.orchestrator.scrollbar_x_preview_option_changed()
        self._persist()


__all__ = [
    "AggregatedStatsPage",
    "LOAD_INFO_KEY",
    "QUANTILE_DEBOUNCE_MS",
    "RELOAD_CLUSTERED_KEY",
    "SERVER_URL_DEBOUNCE_MS",
    "SettingChanged",
    "SettingsStoreLike",
]
