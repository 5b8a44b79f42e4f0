"""Metric descriptors and the line chart data manager."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from startup_visualizer.model import InfoResponse, Metrics

HIDDEN_METRICS_BY_DEFAULT = frozenset({"moduleLoading", "pluginDescriptorLoading"})

_TIMESTAMP_KEYS = ("t", "generated")


@dataclass(frozen=True)
class MetricDescriptor:
    key: str
    name: str
    hidden_by_default: bool


def build_duration_descriptors(names: Iterable[str]) -> list[MetricDescriptor]:
    return [
        MetricDescriptor(key=name, name=name, hidden_by_default=name in HIDDEN_METRICS_BY_DEFAULT)
        for name in names
    ]


def build_instant_descriptors(names: Iterable[str]) -> list[MetricDescriptor]:
    return [MetricDescriptor(key=name, name=name, hidden_by_default=False) for name in names]


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


class LineChartDataManager:
    """Descriptor-tagged view over one ``/metrics`` response.

    Instances are rebuilt whenever the metrics or the info response change.
    """

    def __init__(self, metrics: Sequence[Metrics], info: InfoResponse) -> None:
        self.metrics = metrics
        self.duration_metric_descriptors = build_duration_descriptors(info.duration_metrics_names)
        self.instant_metric_descriptors = build_instant_descriptors(info.instant_metrics_names)

    def descriptors(self, is_instant: bool) -> list[MetricDescriptor]:
        return self.instant_metric_descriptors if is_instant else self.duration_metric_descriptors

    def visible_descriptors(self, is_instant: bool) -> list[MetricDescriptor]:
        return [item for item in self.descriptors(is_instant) if not item.hidden_by_default]

    def series_for(self, descriptor: MetricDescriptor) -> tuple[list[float], list[float]]:
        """Return ``(x, y)`` points for one metric, skipping runs without a value."""

        xs: list[float] = []
        ys: list[float] = []
        for index, record in enumerate(self.metrics):
            value = _as_number(record.get(descriptor.key))
            if value is None:
                continue
            x = index
            for key in _TIMESTAMP_KEYS:
                stamp = _as_number(record.get(key))
                if stamp is not None:
                    x = stamp
                    break
            xs.append(float(x))
            ys.append(value)
        return xs, ys


__all__ = [
    "HIDDEN_METRICS_BY_DEFAULT",
    "LineChartDataManager",
    "MetricDescriptor",
    "build_duration_descriptors",
    "build_instant_descriptors",
]
