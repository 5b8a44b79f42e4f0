from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any

import pytest

from startup_visualizer.viewer.controller import LoopThread, PaneRenderer
from startup_visualizer.viewer.widgets.common import (
    SERIES_COLORS,
    extract_clustered_values,
    series_color,
)


def test_extract_from_mapping() -> None:
    assert extract_clustered_values({"bootstrap": 12, "splash": "7.5", "bad": None}) == [
        ("bootstrap", 12.0),
        ("splash", 7.5),
    ]


def test_extract_from_records_and_pairs() -> None:
    payload = [
        {"name": "bootstrap", "value": 120},
        {"groupName": "appInit", "duration": 30.5},
        {"key": "splash", "result": "nan"},
        ["pairs", 4],
        ("tuple", "x"),
        "ignored",
    ]
    assert extract_clustered_values(payload) == [
        ("bootstrap", 120.0),
        ("appInit", 30.5),
        ("pairs", 4.0),
    ]


def test_extract_rejects_scalars() -> None:
    assert extract_clustered_values(None) == []
    assert extract_clustered_values("[1, 2]") == []


def test_series_color_cycles() -> None:
    assert series_color(len(SERIES_COLORS) + 1) == SERIES_COLORS[1]


class _FakePane:
    def __init__(self) -> None:
        self.applied: list[Any] = []
        self.preview: list[bool] = []
        self.cleared = False

    def apply_data(self, payload: Any) -> None:
        self.applied.append(payload)

    def set_preview_visible(self, visible: bool) -> None:
        self.preview.append(visible)

    def clear(self) -> None:
        self.cleared = True


class _InlineBridge:
    def submit(self, func, *args, **kwargs) -> None:
        func(*args, **kwargs)


def test_pane_renderer_applies_resolved_payloads_only() -> None:
    pane = _FakePane()
    renderer = PaneRenderer(pane, _InlineBridge(), lambda: True)

    async def scenario() -> None:
        loop = asyncio.get_running_loop()
        first: asyncio.Future[Any] = loop.create_future()
        second: asyncio.Future[Any] = loop.create_future()
        renderer.set_data(first)
        renderer.set_data(second)
        first.set_result(None)
        second.set_result([{"name": "bootstrap", "value": 3}])
        await asyncio.sleep(0)

    asyncio.run(scenario())
    assert pane.applied == [[{"name": "bootstrap", "value": 3}]]

    renderer.scrollbar_x_preview_option_changed()
    renderer.dispose()
    assert pane.preview == [True]
    assert pane.cleared


def test_loop_thread_runs_submitted_calls() -> None:
    loop_thread = LoopThread()
    loop_thread.start()
    done = threading.Event()
    seen: list[bool] = []

    def _probe() -> None:
        seen.append(asyncio.get_running_loop() is loop_thread.loop)
        done.set()

    def _broken() -> None:
        raise RuntimeError("handler bug")

    try:
        loop_thread.submit(_broken)
        loop_thread.submit(_probe)
        assert done.wait(timeout=2.0)
    finally:
        loop_thread.stop()
    assert seen == [True]
    assert loop_thread.loop.is_closed()


class _QueuedBridge:
    """Holds submitted calls until ``drain`` runs them, like queued Qt signals."""

    def __init__(self) -> None:
        self.queue: list[Any] = []

    def submit(self, func, *args, **kwargs) -> None:
        self.queue.append((func, args, kwargs))

    def drain(self) -> None:
        while self.queue:
            func, args, kwargs = self.queue.pop(0)
            func(*args, **kwargs)


class _BrokenPane(_FakePane):
    def render(self, data_manager: Any) -> None:
        raise ValueError(f"cannot draw {data_manager!r}")


class _LinePane(_FakePane):
    def __init__(self) -> None:
        super().__init__()
        self.rendered: list[Any] = []

    def render(self, data_manager: Any) -> None:
        self.rendered.append(data_manager)


def test_failing_pane_does_not_stop_sibling_draws(caplog: pytest.LogCaptureFixture) -> None:
    bridge = _QueuedBridge()
    healthy = _LinePane()
    broken = PaneRenderer(_BrokenPane(), bridge, lambda: False)
    sibling = PaneRenderer(healthy, bridge, lambda: False)

    broken.render("manager")
    sibling.render("manager")
    with caplog.at_level(logging.ERROR, logger="startup_visualizer.viewer.controller"):
        bridge.drain()

    assert healthy.rendered == ["manager"]
    assert any("_BrokenPane failed to draw" in record.getMessage() for record in caplog.records)
