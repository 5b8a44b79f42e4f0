from __future__ import annotations

import asyncio
import math
from pathlib import Path

import pytest

from startup_visualizer.aggregated.page import (
    LOAD_INFO_KEY,
    RELOAD_CLUSTERED_KEY,
    AggregatedStatsPage,
    SettingChanged,
)
from startup_visualizer.aggregated.query import (
    build_grouped_metrics_url,
    build_info_url,
    build_metrics_url,
)
from startup_visualizer.config import ChartSettings, MemorySettingsStore, SettingsStore
from startup_visualizer.contracts.error import BadInputError
from tests.util.fake_clock import FakeClock
from tests.util.fakes import RendererFactory, ScriptedLoader

SERVER = "http://stats.local"


def _page(
    loader: ScriptedLoader, clock: FakeClock, settings: ChartSettings | None = None
) -> tuple[AggregatedStatsPage, MemorySettingsStore]:
    store = MemorySettingsStore(settings)
    page = AggregatedStatsPage(store, loader, RendererFactory(), call_later=clock.call_later)
    return page, store


def _clustered_calls(loader: ScriptedLoader) -> list[str]:
    return [url for url in loader.calls if "/groupedMetrics/" in url]


def test_rapid_server_url_changes_load_info_once(info_payload: dict) -> None:
    loader = ScriptedLoader({build_info_url(SERVER): info_payload})
    clock = FakeClock()

    async def scenario() -> AggregatedStatsPage:
        page, _store = _page(loader, clock)
        for url in ("http://s", "http://stats", f"{SERVER}/"):
            page.set_server_url(url)
            clock.advance(0.5)
        assert loader.calls == []
        clock.advance(0.25)
        assert page.debounce.is_pending(LOAD_INFO_KEY)
        clock.advance(0.25)
        await page.orchestrator.drain()
        return page

    page = asyncio.run(scenario())
    info_calls = [url for url in loader.calls if url.endswith("/info")]
    assert info_calls == [build_info_url(SERVER)]
    assert page.products == ("A", "B")


def test_clearing_server_url_cancels_pending_load() -> None:
    loader = ScriptedLoader()
    clock = FakeClock()

    async def scenario() -> None:
        page, _store = _page(loader, clock)
        page.set_server_url(SERVER)
        page.set_server_url("  ")
        clock.advance(2.0)
        await page.orchestrator.drain()

    asyncio.run(scenario())
    assert loader.calls == []


def test_mount_loads_info_and_persists_selection(info_payload: dict) -> None:
    loader = ScriptedLoader({build_info_url(SERVER): info_payload})
    clock = FakeClock()
    events: list[SettingChanged | None] = []

    async def scenario() -> MemorySettingsStore:
        page, store = _page(loader, clock, ChartSettings(server_url=SERVER))
        page.subscribe(events.append)
        page.mount()
        await page.orchestrator.drain()
        return store

    store = asyncio.run(scenario())
    assert store.saved is not None
    assert (store.saved.selected_product, store.saved.selected_machine) == ("A", 1)
    assert events == [None]
    assert build_metrics_url(SERVER, "A", 1) in loader.calls


def test_product_change_fetches_once_and_persists(info_payload: dict) -> None:
    loader = ScriptedLoader({build_info_url(SERVER): info_payload})
    clock = FakeClock()
    settings = ChartSettings(server_url=SERVER, selected_product="B", selected_machine=3)

    async def scenario() -> MemorySettingsStore:
        page, store = _page(loader, clock, settings)
        page.mount()
        await page.orchestrator.drain()
        loader.calls.clear()
        page.set_selected_product("A")
        await page.orchestrator.drain()
        assert page.selection.fetch_rounds == 2
        return store

    store = asyncio.run(scenario())
    assert store.saved is not None and store.saved.selected_machine == 1
    assert loader.calls.count(build_metrics_url(SERVER, "A", 1)) == 1
    assert len(_clustered_calls(loader)) == 2


def test_operator_change_reloads_clustered_immediately(info_payload: dict) -> None:
    loader = ScriptedLoader({build_info_url(SERVER): info_payload})
    clock = FakeClock()

    async def scenario() -> MemorySettingsStore:
        page, store = _page(loader, clock, ChartSettings(server_url=SERVER))
        page.mount()
        await page.orchestrator.drain()
        loader.calls.clear()
        page.set_aggregation_operator("max")
        await page.orchestrator.drain()
        return store

    store = asyncio.run(scenario())
    assert _clustered_calls(loader) == [
        build_grouped_metrics_url(SERVER, "A", 1, "max", 0.5, False),
        build_grouped_metrics_url(SERVER, "A", 1, "max", 0.5, True),
    ]
    assert store.saved is not None and store.saved.aggregation_operator == "max"


def test_quantile_changes_are_debounced(info_payload: dict) -> None:
    loader = ScriptedLoader({build_info_url(SERVER): info_payload})
    clock = FakeClock()
    settings = ChartSettings(server_url=SERVER, aggregation_operator="quantile")

    async def scenario() -> None:
        page, _store = _page(loader, clock, settings)
        page.mount()
        await page.orchestrator.drain()
        loader.calls.clear()
        for value in (0.6, 0.65, 0.7):
            page.set_quantile(value)
            clock.advance(0.1)
        assert _clustered_calls(loader) == []
        assert page.debounce.is_pending(RELOAD_CLUSTERED_KEY)
        clock.advance(0.2)
        await page.orchestrator.drain()

    asyncio.run(scenario())
    assert _clustered_calls(loader) == [
        build_grouped_metrics_url(SERVER, "A", 1, "quantile", 0.7, False),
        build_grouped_metrics_url(SERVER, "A", 1, "quantile", 0.7, True),
    ]


def test_clearing_operator_does_not_reload(info_payload: dict) -> None:
    loader = ScriptedLoader({build_info_url(SERVER): info_payload})
    clock = FakeClock()
    settings = ChartSettings(server_url=SERVER, aggregation_operator="min")

    async def scenario() -> None:
        page, _store = _page(loader, clock, settings)
        page.mount()
        await page.orchestrator.drain()
        loader.calls.clear()
        page.set_aggregation_operator(None)
        await page.orchestrator.drain()

    asyncio.run(scenario())
    assert loader.calls == []


def test_update_rejects_unknown_field_and_ignores_same_value() -> None:
    clock = FakeClock()
    page, store = _page(ScriptedLoader(), clock)
    events: list[SettingChanged | None] = []
    unsubscribe = page.subscribe(events.append)

    with pytest.raises(KeyError):
        page.update("theme", "dark")
    page.update("quantile", 0.5)
    assert events == []
    assert store.save_count == 0

    page.set_show_scrollbar_x_preview(True)
    assert events == [SettingChanged("show_scrollbar_x_preview", True, False)]
    assert store.saved is not None and store.saved.show_scrollbar_x_preview is True

    unsubscribe()
    page.set_show_scrollbar_x_preview(False)
    assert len(events) == 1


def test_failing_listener_does_not_block_others() -> None:
    clock = FakeClock()
    page, _store = _page(ScriptedLoader(), clock)
    seen: list[SettingChanged | None] = []

    def broken(_event: SettingChanged | None) -> None:
        raise RuntimeError("listener bug")

    page.subscribe(broken)
    page.subscribe(seen.append)
    page.set_show_scrollbar_x_preview(True)
    assert len(seen) == 1


def test_teardown_cancels_timers_and_disposes(info_payload: dict) -> None:
    loader = ScriptedLoader({build_info_url(SERVER): info_payload})
    clock = FakeClock()
    factory = RendererFactory()

    async def scenario() -> None:
        store = MemorySettingsStore(ChartSettings(server_url=SERVER, aggregation_operator="quantile"))
        page = AggregatedStatsPage(store, loader, factory, call_later=clock.call_later)
        page.mount()
        await page.orchestrator.drain()
        page.set_quantile(0.9)
        page.set_server_url("http://other.local")
        page.teardown()
        assert page.debounce.pending_keys == ()
        clock.advance(5.0)
        await page.orchestrator.drain()

    asyncio.run(scenario())
    assert factory.created and all(renderer.disposed for renderer in factory.created.values())
    assert not any(url.startswith("http://other.local") for url in loader.calls)


def test_half_typed_server_url_is_not_saved(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "settings.toml", env={})
    store.save(ChartSettings(server_url=SERVER, quantile=0.9))
    clock = FakeClock()
    page = AggregatedStatsPage(store, ScriptedLoader(), RendererFactory(), call_later=clock.call_later)

    page.set_server_url("localhost:9044")

    assert page.settings.server_url == "localhost:9044"
    assert page.debounce.is_pending(LOAD_INFO_KEY)
    reloaded = SettingsStore(tmp_path / "settings.toml", env={}).load()
    assert reloaded.server_url == SERVER
    assert reloaded.quantile == 0.9

    page.set_server_url("http://localhost:9044/")
    assert SettingsStore(tmp_path / "settings.toml", env={}).load().server_url == "http://localhost:9044"


@pytest.mark.parametrize("value", [math.nan, math.inf, -0.1, 1.5])
def test_out_of_range_quantile_is_rejected(tmp_path: Path, value: float) -> None:
    store = SettingsStore(tmp_path / "settings.toml", env={})
    store.save(ChartSettings(server_url=SERVER, aggregation_operator="quantile", quantile=0.9))
    clock = FakeClock()
    page = AggregatedStatsPage(store, ScriptedLoader(), RendererFactory(), call_later=clock.call_later)

    with pytest.raises(BadInputError):
        page.set_quantile(value)

    assert page.settings.quantile == 0.9
    assert not page.debounce.is_pending(RELOAD_CLUSTERED_KEY)
    assert SettingsStore(tmp_path / "settings.toml", env={}).load().quantile == 0.9


def test_product_change_reports_repaired_machine(info_payload: dict) -> None:
    loader = ScriptedLoader({build_info_url(SERVER): info_payload})
    clock = FakeClock()
    settings = ChartSettings(server_url=SERVER, selected_product="B", selected_machine=3)
    events: list[SettingChanged | None] = []

    async def scenario() -> None:
        page, _store = _page(loader, clock, settings)
        page.mount()
        await page.orchestrator.drain()
        page.subscribe(events.append)
        page.set_selected_product("A")
        await page.orchestrator.drain()

    asyncio.run(scenario())
    assert events == [
        SettingChanged("selected_product", "A", "B"),
        SettingChanged("selected_machine", 1, 3),
    ]
