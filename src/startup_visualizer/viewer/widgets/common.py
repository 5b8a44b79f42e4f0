# mypy: ignore-errors
"""Optional Qt/pyqtgraph imports and payload helpers shared by the chart panes."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, cast

QT_IMPORT_ERROR: Exception | None = None

try:  # pragma: no cover - only when PyQt6 is present
    from PyQt6.QtWidgets import (
        QCheckBox,
        QComboBox,
        QDoubleSpinBox,
        QFormLayout,
        QHBoxLayout,
        QLabel,
        QLineEdit,
        QPushButton,
        QVBoxLayout,
        QWidget,
    )
except Exception as exc:  # pragma: no cover - CI or headless environments  # noqa: BLE001
    QT_IMPORT_ERROR = exc
    QCheckBox = QComboBox = QDoubleSpinBox = QFormLayout = cast(Any, None)
    QHBoxLayout = QLabel = QLineEdit = QPushButton = QVBoxLayout = cast(Any, object)
    QWidget = cast(Any, object)

try:  # pragma: no cover - optional plotting dependency
    import pyqtgraph as pg  # type: ignore[import-not-found]
except Exception:  # pragma: no cover - charting optional  # noqa: BLE001
    pg = cast(Any, None)
else:  # pragma: no cover - requires PyQtGraph
    pg.setConfigOptions(antialias=True, background="#121212", foreground="#EEEEEE")

try:  # pragma: no cover - numpy ships with pyqtgraph
    import numpy as np  # type: ignore[import-not-found]
except Exception:  # pragma: no cover  # noqa: BLE001
    np = cast(Any, None)


SERIES_COLORS = (
    "#00FF6C",
    "#7B61FF",
    "#F97316",
    "#38BDF8",
    "#F472B6",
    "#FACC15",
    "#22D3EE",
    "#A3E635",
)

# Grouped metrics servers have shipped both record and pair layouts.
_NAME_KEYS = ("name", "groupName", "key", "metric")
_VALUE_KEYS = ("value", "duration", "result")


@dataclass(frozen=True)
class PlotTheme:
    accent: str
    axis: str = "#8CA3AF"
    border: str = "#2D2D2D"
    background: str = "#11141D"


LINE_THEME = PlotTheme(accent="#00FF6C")
CLUSTERED_THEME = PlotTheme(accent="#F97316", border="#4A2A12")


def series_color(index: int) -> str:
    return SERIES_COLORS[index % len(SERIES_COLORS)]


def _finite(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _first_present(entry: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in entry:
            return entry[key]
    return None


def extract_clustered_values(payload: Any) -> list[tuple[str, float]]:
    """Reduce a ``/groupedMetrics`` payload to ``(name, value)`` bars.

    Accepts a ``{name: value}`` object, a list of records, or a list of
    ``[name, value]`` pairs; entries without a finite value are dropped.
    """

    if isinstance(payload, Mapping):
        entries: Iterable[Any] = payload.items()
    elif isinstance(payload, (list, tuple)):
        entries = payload
    else:
        return []

    bars: list[tuple[str, float]] = []
    for entry in entries:
        if isinstance(entry, Mapping):
            name = _first_present(entry, _NAME_KEYS)
            value = _finite(_first_present(entry, _VALUE_KEYS))
        elif isinstance(entry, (list, tuple)) and len(entry) == 2:
            name, value = entry[0], _finite(entry[1])
        else:
            continue
        if name is not None and value is not None:
            bars.append((str(name), value))
    return bars


def apply_plot_theme(widget: Any, title: str, theme: PlotTheme) -> None:
    """Dark frame, accent-coloured title and muted axes for a ``PlotWidget``."""

    if pg is None:
        return
    widget.setStyleSheet(
        f"border: 1px solid {theme.border}; border-radius: 10px; background-color: {theme.background};"
    )
    item = widget.getPlotItem()
    item.setTitle(title, color=theme.accent, size="12pt")
    frame_pen = pg.mkPen(theme.border, width=1)  # type: ignore[attr-defined]
    for name in ("left", "bottom"):
        axis = item.getAxis(name)
        axis.setPen(frame_pen)
        axis.setTextPen(pg.mkPen(theme.axis))  # type: ignore[attr-defined]


__all__ = [
    "CLUSTERED_THEME",
    "LINE_THEME",
    "PlotTheme",
    "QCheckBox",
    "QComboBox",
    "QDoubleSpinBox",
    "QFormLayout",
    "QHBoxLayout",
    "QLabel",
    "QLineEdit",
    "QPushButton",
    "QT_IMPORT_ERROR",
    "QVBoxLayout",
    "QWidget",
    "SERIES_COLORS",
    "apply_plot_theme",
    "extract_clustered_values",
    "np",
    "pg",
    "series_color",
]
