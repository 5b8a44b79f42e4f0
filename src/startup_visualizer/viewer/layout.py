# mypy: ignore-errors
"""Containers used by the viewer window."""

from __future__ import annotations

from typing import Any, cast

try:  # pragma: no cover - only when PyQt6 is available
    from PyQt6.QtCore import Qt  # type: ignore[import-not-found]
    from PyQt6.QtWidgets import QDockWidget, QSplitter, QWidget  # type: ignore[import-not-found]
except Exception:  # pragma: no cover  # noqa: BLE001
    QDockWidget = QSplitter = QWidget = cast(Any, object)
    Qt = None  # type: ignore[assignment]


def stack_vertically(parent: QWidget | None, *children: QWidget) -> QSplitter:
    """Stack chart panes in a splitter so each can be resized."""

    splitter = QSplitter(Qt.Orientation.Vertical, parent)  # type: ignore[union-attr]
    splitter.setChildrenCollapsible(False)
    for child in children:
        splitter.addWidget(child)
    return splitter


def create_dock(title: str, widget: QWidget, area: Any) -> QDockWidget:
    """Pinned dock: movable within ``area`` but never closable."""

    dock = QDockWidget(title, widget.parent())  # type: ignore[call-arg]
    dock.setObjectName("dock_" + "_".join(title.lower().split()))
    dock.setAllowedAreas(area)
    dock.setFeatures(QDockWidget.DockWidgetFeature.DockWidgetMovable)
    dock.setWidget(widget)
    return dock
