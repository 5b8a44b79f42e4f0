"""Selection and aggregation controls."""

from __future__ import annotations

from collections.abc import Sequence
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from startup_visualizer.aggregated.query import AGGREGATION_OPERATORS

from .common import (
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


class SettingsPane(QWidget):  # type: ignore[misc]
    """Server URL, product/machine pickers and aggregation options."""

    def __init__(self, parent: Optional[QWidget] = None) -> None:  # type: ignore[override]
        super().__init__(parent)
        self.setObjectName("settingsPane")
        layout = QVBoxLayout(self)  # type: ignore[call-arg]
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(10)
        heading = QLabel("Aggregated Stats")  # type: ignore[call-arg]
        heading.setObjectName("paneHeading")
        layout.addWidget(heading)

        server_row = QHBoxLayout()  # type: ignore[call-arg]
        self.server_edit = QLineEdit()  # type: ignore[call-arg]
        self.server_edit.setPlaceholderText("http://localhost:9044/stats")
        self.reload_button = QPushButton("Reload")  # type: ignore[call-arg]
        server_row.addWidget(self.server_edit, 1)
        server_row.addWidget(self.reload_button)
        layout.addLayout(server_row)

        form = QFormLayout()  # type: ignore[call-arg]
        self.product_combo = QComboBox()  # type: ignore[call-arg]
        self.machine_combo = QComboBox()  # type: ignore[call-arg]
        self.operator_combo = QComboBox()  # type: ignore[call-arg]
        self.operator_combo.addItems(list(AGGREGATION_OPERATORS))
        self.quantile_spin = QDoubleSpinBox()  # type: ignore[call-arg]
        self.quantile_spin.setRange(0.0, 1.0)
        self.quantile_spin.setSingleStep(0.05)
        self.quantile_spin.setDecimals(2)
        self.quantile_spin.setEnabled(False)
        self.preview_checkbox = QCheckBox("Show scrollbar X preview")  # type: ignore[call-arg]
        form.addRow("Product", self.product_combo)
        form.addRow("Machine", self.machine_combo)
        form.addRow("Operator", self.operator_combo)
        form.addRow("Quantile", self.quantile_spin)
        layout.addLayout(form)
        layout.addWidget(self.preview_checkbox)

        self.status_label = QLabel("Idle")  # type: ignore[call-arg]
        self.status_label.setObjectName("statusLabel")
        self.status_label.setProperty("state", "idle")
        self.status_label.setWordWrap(True)
        layout.addWidget(self.status_label)
        layout.addStretch()

        self.operator_combo.currentTextChanged.connect(self._sync_quantile_enabled)  # type: ignore[attr-defined]

    @contextmanager
    def _signals_blocked(self) -> Iterator[None]:
        widgets = (
            self.server_edit,
            self.product_combo,
            self.machine_combo,
            self.operator_combo,
            self.quantile_spin,
            self.preview_checkbox,
        )
        previous = [widget.blockSignals(True) for widget in widgets]
        try:
            yield
        finally:
            for widget, state in zip(widgets, previous):
                widget.blockSignals(state)

    def _sync_quantile_enabled(self, operator: str) -> None:
        self.quantile_spin.setEnabled(operator == "quantile")

    def selected_machine_id(self) -> int | None:
        data = self.machine_combo.currentData()
        return int(data) if data is not None else None

    def apply_state(
        self,
        products: Sequence[str],
        machines: Sequence[tuple[int, str]],
        settings: dict[str, Any],
    ) -> None:
        """Show ``settings`` without re-emitting change signals."""

        with self._signals_blocked():
            if self.server_edit.text() != settings["server_url"]:
                self.server_edit.setText(settings["server_url"])

            self.product_combo.clear()
            self.product_combo.addItems(list(products))
            product = settings.get("selected_product") or ""
            self.product_combo.setCurrentIndex(self.product_combo.findText(product))

            self.machine_combo.clear()
            for machine_id, label in machines:
                self.machine_combo.addItem(label, machine_id)
            machine = settings.get("selected_machine")
            self.machine_combo.setCurrentIndex(
                self.machine_combo.findData(machine) if machine is not None else -1
            )

            operator = settings.get("aggregation_operator") or AGGREGATION_OPERATORS[0]
            self.operator_combo.setCurrentText(operator)
            self.quantile_spin.setValue(float(settings.get("quantile", 0.5)))
            self.preview_checkbox.setChecked(bool(settings.get("show_scrollbar_x_preview")))
        self._sync_quantile_enabled(self.operator_combo.currentText())

    def set_status(self, text: str, state: str = "idle") -> None:
        self.status_label.setText(text)
        self.status_label.setProperty("state", state)
        style = self.status_label.style()
        if style is not None:
            style.unpolish(self.status_label)
            style.polish(self.status_label)


__all__ = ["SettingsPane"]
