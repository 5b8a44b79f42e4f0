import logging
import os
import sys
from pathlib import Path

import pytest

# Ensure PyQt widgets render without an attached display.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
if SRC.exists():
    sys.path.insert(0, str(SRC))

# Register shared Hypothesis profiles for deterministic CI runs and fast local loops.
from tests.util import hypothesis_profiles  # noqa: E402,F401  pylint: disable=unused-import

INFO_PAYLOAD = {
    "productNames": ["A", "B"],
    "productToMachine": {
        "A": [{"id": 1, "name": "mac-mini"}],
        "B": [{"id": 2, "name": "linux-x64"}, {"id": 3}],
    },
    "durationMetricsNames": ["bootstrap", "moduleLoading", "appInitPreparation"],
    "instantMetricsNames": ["splash"],
}


@pytest.fixture()
def info_payload() -> dict:
    """Fresh copy of the two-product info response used across the suite."""

    return {
        "productNames": list(INFO_PAYLOAD["productNames"]),
        "productToMachine": {
            key: [dict(item) for item in value]
            for key, value in INFO_PAYLOAD["productToMachine"].items()
        },
        "durationMetricsNames": list(INFO_PAYLOAD["durationMetricsNames"]),
        "instantMetricsNames": list(INFO_PAYLOAD["instantMetricsNames"]),
    }


@pytest.fixture(autouse=True)
def _propagate_package_logs(monkeypatch: pytest.MonkeyPatch) -> None:
    """The CLI logger stops propagation; caplog listens on the root logger."""

    monkeypatch.setattr(logging.getLogger("startup_visualizer"), "propagate", True)


@pytest.fixture(autouse=True)
def _isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tests away from the real settings file and env overrides."""

    monkeypatch.setenv("STARTUP_VISUALIZER_SETTINGS", str(tmp_path / "settings.toml"))
    for key in (
        "STARTUP_VISUALIZER_SERVER_URL",
        "STARTUP_VISUALIZER_OPERATOR",
        "STARTUP_VISUALIZER_QUANTILE",
        "STARTUP_VISUALIZER_TOKEN",
    ):
        monkeypatch.delenv(key, raising=False)


def pytest_configure(config: pytest.Config) -> None:
    """Ensure custom marks remain registered even when pytest.ini isn't picked up."""
    config.addinivalue_line("markers", "qt: Qt / pyqtgraph dependent tests")
