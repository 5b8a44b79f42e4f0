# mypy: ignore-errors
"""Viewer widgets: settings controls and chart panes."""

from __future__ import annotations

from .charts import ClusteredChartPane, LineChartPane
from .common import QT_IMPORT_ERROR, extract_clustered_values, series_color
from .settings_pane import SettingsPane

__all__ = [
    "ClusteredChartPane",
    "LineChartPane",
    "QT_IMPORT_ERROR",
    "SettingsPane",
    "extract_clustered_values",
    "series_color",
]
