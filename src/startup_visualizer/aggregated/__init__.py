"""Selection, query and fetch pipeline for the aggregated stats page."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .debounce import DebounceRegistry
from .descriptors import (
    HIDDEN_METRICS_BY_DEFAULT,
    LineChartDataManager,
    MetricDescriptor,
    build_duration_descriptors,
    build_instant_descriptors,
)
from .query import (
    AGGREGATION_OPERATORS,
    DEFAULT_AGGREGATION_OPERATOR,
    QueryDescriptor,
    build_grouped_metrics_url,
    build_info_url,
    build_metrics_url,
)
from .selection import SelectionStateMachine

__all__ = [
    "AGGREGATION_OPERATORS",
    "AggregatedStatsPage",
    "DEFAULT_AGGREGATION_OPERATOR",
    "DebounceRegistry",
    "FetchOrchestrator",
    "HIDDEN_METRICS_BY_DEFAULT",
    "LineChartDataManager",
    "MetricDescriptor",
    "QueryDescriptor",
    "SelectionStateMachine",
    "build_duration_descriptors",
    "build_grouped_metrics_url",
    "build_info_url",
    "build_instant_descriptors",
    "build_metrics_url",
]


def __getattr__(name: str):  # pragma: no cover - thin re-export shim
    if name == "AggregatedStatsPage":
        from .page import AggregatedStatsPage

        return AggregatedStatsPage
    if name == "FetchOrchestrator":
        from .orchestrator import FetchOrchestrator

        return FetchOrchestrator
    raise AttributeError(name)


if TYPE_CHECKING:  # pragma: no cover - import-time typing only
    from .orchestrator import FetchOrchestrator
    from .page import AggregatedStatsPage
