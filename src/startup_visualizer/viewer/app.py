# mypy: ignore-errors
"""Desktop viewer entry point.

Launching the viewer without PyQt6 raises a friendly ``RuntimeError`` so the
CLI can report the missing optional dependency.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Sequence

from startup_visualizer.config import SettingsStore

from .builders import build_app as _build_app
from .builders import build_controller, build_widgets, build_window

if TYPE_CHECKING:
    from .controller import ViewerController

logger = logging.getLogger(__name__)

QT_IMPORT_ERROR: Optional[Exception] = None

try:  # pragma: no cover - requires PyQt6
    from PyQt6.QtGui import QColor, QPalette  # type: ignore[import-not-found]
    from PyQt6.QtWidgets import QMainWindow  # type: ignore[import-not-found]
except ImportError as exc:  # pragma: no cover - headless environments
    QT_IMPORT_ERROR = exc
    QColor = QPalette = QMainWindow = None  # type: ignore[assignment,misc]

# IDE-like dark scheme shared by the palette and the stylesheet.
THEME = {
    "window": "#2B2B2B",
    "text": "#A9B7C6",
    "field": "#3C3F41",
    "outline": "#515658",
    "accent": "#00FF6C",
    "error": "#FF6B6B",
}

_STYLESHEET = """
QMainWindow, QDockWidget {{ background-color: {window}; color: {text}; }}
QLineEdit, QComboBox, QDoubleSpinBox {{
    background: {field};
    border: 1px solid {outline};
    padding: 3px 6px;
}}
QLabel#paneHeading {{ color: {accent}; font-weight: bold; }}
QLabel#statusLabel[state="connected"] {{ color: {accent}; }}
QLabel#statusLabel[state="error"] {{ color: {error}; }}
""".format(**THEME)


def _window_base() -> type:
    return QMainWindow if QMainWindow is not None else object


class ViewerWindow(_window_base()):  # type: ignore[misc]
    """Main window that stops the controller's loop when closed."""

    _controller: Optional["ViewerController"] = None

    def set_controller(self, controller: "ViewerController") -> None:
        self._controller = controller

    def closeEvent(self, event) -> None:  # type: ignore[override]  # noqa: N802
        controller, self._controller = self._controller, None
        if controller is not None:
            controller.shutdown()
        super().closeEvent(event)


def _require_qt() -> None:
    if QT_IMPORT_ERROR is not None:
        raise RuntimeError(
            "The viewer requires PyQt6. Install with `pip install .[gui]` or `pip install PyQt6 pyqtgraph`."
        ) from QT_IMPORT_ERROR


def _create_app(argv: Sequence[str] | None) -> Any:
    app = _build_app(argv)
    app.setStyle("Fusion")
    palette = QPalette()
    for role, key in (
        (QPalette.ColorRole.Window, "window"),
        (QPalette.ColorRole.WindowText, "text"),
        (QPalette.ColorRole.Base, "field"),
        (QPalette.ColorRole.Text, "text"),
        (QPalette.ColorRole.Highlight, "accent"),
    ):
        palette.setColor(role, QColor(THEME[key]))
    app.setPalette(palette)
    app.setStyleSheet(_STYLESHEET)
    return app


def _prepare_store(settings_path: str | Path | None, server_url: str | None) -> SettingsStore:
    store = SettingsStore(settings_path)
    if server_url:
        settings = store.load()
        settings.server_url = server_url.strip().rstrip("/")
        settings.validate()
        store.save(settings)
    return store


def run_viewer(
    argv: Sequence[str] | None = None,
    *,
    settings_path: str | Path | None = None,
    server_url: str | None = None,
) -> int:
    """Launch the viewer and return the Qt exit code."""

    _require_qt()
    store = _prepare_store(settings_path, server_url)
    app = _create_app(argv)
    settings_pane, chart_panes = build_widgets()
    controller = build_controller(settings_pane, chart_panes, store)
    window = build_window(controller, settings_pane, chart_panes)
    window.show()
    controller.start()
    return app.exec()  # type: ignore[call-arg]


__all__ = ["ViewerWindow", "run_viewer"]
