"""Line and clustered chart panes."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from .common import (
    CLUSTERED_THEME,
    LINE_THEME,
    QLabel,
    QVBoxLayout,
    QWidget,
    apply_plot_theme,
    extract_clustered_values,
    np,
    pg,
    series_color,
)

if TYPE_CHECKING:  # pragma: no cover - typing only
    from startup_visualizer.aggregated.descriptors import LineChartDataManager


class LineChartPane(QWidget):  # type: ignore[misc]
    """Per-run line chart of either duration or instant metrics."""

    def __init__(self, is_instant: bool, parent: Optional[QWidget] = None) -> None:  # type: ignore[override]
        super().__init__(parent)
        self.is_instant = is_instant
        title = "Instant events" if is_instant else "Durations"
        self.setObjectName("chartPane")
        self.setProperty("paneKind", "instant" if is_instant else "duration")
        layout = QVBoxLayout(self)  # type: ignore[call-arg]
        layout.setContentsMargins(8, 8, 8, 8)
        layout.setSpacing(6)
        self.status_label = QLabel("Waiting for metrics…")  # type: ignore[call-arg]
        layout.addWidget(self.status_label)

        self._curves: dict[str, Any] = {}
        self._region = None
        self._plot = None
        self._preview = None
        if pg is not None:
            self._plot = pg.PlotWidget(title=title)  # type: ignore[attr-defined]
            self._plot.setObjectName("lineDurationPlot" if not is_instant else "lineInstantPlot")
            self._plot.showGrid(x=True, y=True, alpha=0.3)  # type: ignore[attr-defined]
            self._plot.setLabel("bottom", "Run")  # type: ignore[attr-defined]
            self._plot.setLabel("left", "ms")  # type: ignore[attr-defined]
            self._plot.addLegend()  # type: ignore[attr-defined]
            apply_plot_theme(self._plot, title, LINE_THEME)
            layout.addWidget(self._plot, 1)

            self._preview = pg.PlotWidget()  # type: ignore[attr-defined]
            self._preview.setMaximumHeight(80)
            self._preview.hideAxis("left")  # type: ignore[attr-defined]
            self._region = pg.LinearRegionItem()  # type: ignore[attr-defined]
            self._preview.addItem(self._region)  # type: ignore[attr-defined]
            self._region.sigRegionChanged.connect(self._on_region_changed)  # type: ignore[attr-defined]
            self._preview.setVisible(False)
            layout.addWidget(self._preview)

    @property
    def series_keys(self) -> list[str]:
        return list(self._curves)

    def is_series_visible(self, key: str) -> bool:
        curve = self._curves.get(key)
        return bool(curve is not None and curve.isVisible())

    def render(self, data_manager: LineChartDataManager) -> None:
        self.clear()
        descriptors = data_manager.descriptors(self.is_instant)
        self.status_label.setText(
            f"{len(data_manager.metrics)} runs, {len(descriptors)} metrics"
        )
        if self._plot is None:
            return
        preview_x: list[float] = []
        for index, descriptor in enumerate(descriptors):
            xs, ys = data_manager.series_for(descriptor)
            pen = pg.mkPen(series_color(index), width=2.0)  # type: ignore[attr-defined]
            curve = self._plot.plot(xs, ys, pen=pen, name=descriptor.name)  # type: ignore[attr-defined]
            curve.setVisible(not descriptor.hidden_by_default)
            self._curves[descriptor.key] = curve
            preview_x.extend(xs)
        if self._preview is not None and preview_x and np is not None:
            self._preview.plot(np.asarray(sorted(preview_x)), np.zeros(len(preview_x)))  # type: ignore[attr-defined]
            self._region.setRegion((min(preview_x), max(preview_x)))  # type: ignore[union-attr]

    def set_series_visible(self, key: str, visible: bool) -> None:
        curve = self._curves.get(key)
        if curve is not None:
            curve.setVisible(visible)

    def set_preview_visible(self, visible: bool) -> None:
        if self._preview is not None:
            self._preview.setVisible(visible)

    def _on_region_changed(self) -> None:
        if self._plot is None or self._region is None:
            return
        low, high = self._region.getRegion()
        self._plot.setXRange(low, high, padding=0)  # type: ignore[attr-defined]

    def clear(self) -> None:
        self._curves.clear()
        if self._plot is not None:
            self._plot.clear()  # type: ignore[attr-defined]
        if self._preview is not None:
            for item in list(self._preview.listDataItems()):  # type: ignore[attr-defined]
                self._preview.removeItem(item)  # type: ignore[attr-defined]


class ClusteredChartPane(QWidget):  # type: ignore[misc]
    """Bar chart of one aggregated (median/min/max/quantile) metric group."""

    def __init__(self, is_instant: bool, parent: Optional[QWidget] = None) -> None:  # type: ignore[override]
        super().__init__(parent)
        self.is_instant = is_instant
        title = "Aggregated instant events" if is_instant else "Aggregated durations"
        self.setObjectName("chartPane")
        self.setProperty("paneKind", "clustered")
        layout = QVBoxLayout(self)  # type: ignore[call-arg]
        layout.setContentsMargins(8, 8, 8, 8)
        self.status_label = QLabel("No data")  # type: ignore[call-arg]
        layout.addWidget(self.status_label)
        self.values: list[tuple[str, float]] = []
        self._bars = None
        self._plot = None
        if pg is not None:
            self._plot = pg.PlotWidget(title=title)  # type: ignore[attr-defined]
            self._plot.setObjectName("clusteredPlot")
            self._plot.showGrid(x=False, y=True, alpha=0.25)  # type: ignore[attr-defined]
            self._plot.setLabel("left", "ms")  # type: ignore[attr-defined]
            apply_plot_theme(self._plot, title, CLUSTERED_THEME)
            layout.addWidget(self._plot, 1)

    def apply_data(self, payload: Any) -> None:
        self.clear()
        self.values = list(extract_clustered_values(payload))
        if not self.values:
            self.status_label.setText("No data")
            return
        self.status_label.setText(f"{len(self.values)} metrics")
        if self._plot is None:
            return
        xs = list(range(len(self.values)))
        heights = [value for _name, value in self.values]
        self._bars = pg.BarGraphItem(x=xs, height=heights, width=0.7, brush="#F97316")  # type: ignore[attr-defined]
        self._plot.addItem(self._bars)  # type: ignore[attr-defined]
        axis = self._plot.getPlotItem().getAxis("bottom")  # type: ignore[attr-defined]
        axis.setTicks([[(x, name) for x, (name, _value) in zip(xs, self.values)]])
        self._plot.getPlotItem().getViewBox().autoRange()  # type: ignore[attr-defined]

    def clear(self) -> None:
        self.values = []
        self._bars = None
        if self._plot is not None:
            self._plot.clear()  # type: ignore[attr-defined]


__all__ = ["ClusteredChartPane", "LineChartPane"]
