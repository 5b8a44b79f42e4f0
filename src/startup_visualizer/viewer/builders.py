"""Factories that assemble the viewer's widgets, controller and window."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from startup_visualizer.aggregated.orchestrator import (
    CLUSTERED_DURATION_PANE,
    CLUSTERED_INSTANT_PANE,
    LINE_DURATION_PANE,
    LINE_INSTANT_PANE,
)
from startup_visualizer.aggregated.page import SettingsStoreLike

from . import widgets
from .controller import ViewerController

if TYPE_CHECKING:  # pragma: no cover - typing only
    from PyQt6.QtWidgets import QApplication, QMainWindow, QWidget

try:  # pragma: no cover - optional dependency in headless environments
    from PyQt6 import QtCore as _QtCore  # type: ignore[import-not-found]
    from PyQt6 import QtWidgets as _QtWidgets
except ImportError:  # pragma: no cover - fallback when PyQt6 unavailable
    _QtCore = None  # type: ignore[assignment]
    _QtWidgets = None  # type: ignore[assignment]

WINDOW_TITLE = "Startup Visualizer – Aggregated Stats"

ChartPanes = dict[str, Any]

# Tab label -> panes stacked top to bottom.
_TABS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Runs", (LINE_DURATION_PANE, LINE_INSTANT_PANE)),
    ("Aggregated", (CLUSTERED_DURATION_PANE, CLUSTERED_INSTANT_PANE)),
)


def _require_widgets() -> Any:
    if _QtWidgets is None:  # pragma: no cover - PyQt6 missing
        raise RuntimeError("PyQt6 not available")
    return _QtWidgets


def build_widgets(parent: QWidget | None = None) -> tuple[widgets.SettingsPane, ChartPanes]:
    """Create the settings pane and one chart pane per renderer slot."""

    chart_panes: ChartPanes = {
        LINE_DURATION_PANE: widgets.LineChartPane(False, parent),
        LINE_INSTANT_PANE: widgets.LineChartPane(True, parent),
        CLUSTERED_DURATION_PANE: widgets.ClusteredChartPane(False, parent),
        CLUSTERED_INSTANT_PANE: widgets.ClusteredChartPane(True, parent),
    }
    return widgets.SettingsPane(parent), chart_panes


def build_controller(
    settings_pane: widgets.SettingsPane,
    chart_panes: ChartPanes,
    store: SettingsStoreLike,
) -> ViewerController:
    return ViewerController(settings_pane, chart_panes, store)


def build_window(
    controller: ViewerController,
    settings_pane: widgets.SettingsPane,
    chart_panes: ChartPanes,
) -> QMainWindow:
    """Tabs of chart panes in the centre, settings docked on the left."""

    qt_widgets = _require_widgets()
    from .app import ViewerWindow
    from .layout import create_dock, stack_vertically

    window = ViewerWindow()
    window.setObjectName("viewerWindow")
    window.setWindowTitle(WINDOW_TITLE)
    window.resize(1280, 800)
    window.set_controller(controller)

    tabs = qt_widgets.QTabWidget(window)
    tabs.setObjectName("chartTabs")
    for label, pane_ids in _TABS:
        tabs.addTab(stack_vertically(window, *(chart_panes[pane_id] for pane_id in pane_ids)), label)
    window.setCentralWidget(tabs)

    left = _QtCore.Qt.DockWidgetArea.LeftDockWidgetArea  # type: ignore[union-attr]
    window.addDockWidget(left, create_dock("Settings", settings_pane, left))
    return window


def build_app(argv: Sequence[str] | None = None) -> QApplication:
    """Return the running ``QApplication`` or create one."""

    application_cls = _require_widgets().QApplication
    existing = application_cls.instance()
    if existing is not None:
        return existing
    return application_cls(list(argv or []))
