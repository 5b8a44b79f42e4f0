from __future__ import annotations

import json

import pytest

from startup_visualizer.contracts.error import (
    BadInputError,
    ErrorEnvelope,
    Exit,
    TransportError,
    guard_cli,
)


def test_envelope_omits_empty_hint() -> None:
    assert json.loads(ErrorEnvelope("BadInput", "nope").to_json()) == {
        "error": "BadInput",
        "detail": "nope",
    }


@pytest.mark.parametrize(
    ("exc", "code", "label"),
    [
        (BadInputError("quantile must be within [0, 1]"), Exit.BAD_INPUT, "BadInput"),
        (KeyError("selected_machine"), Exit.INVARIANT, "Unhandled"),
        (TransportError("server down", hint="check --server"), Exit.IO, "Transport"),
        (FileNotFoundError("settings.toml"), Exit.IO, "FileNotFound"),
    ],
)
def test_guard_cli_maps_exceptions(
    exc: Exception, code: Exit, label: str, capsys: pytest.CaptureFixture[str]
) -> None:
    @guard_cli
    def handler() -> int:
        raise exc

    with pytest.raises(SystemExit) as excinfo:
        handler()
    assert excinfo.value.code == code
    envelope = json.loads(capsys.readouterr().err.strip())
    assert envelope["error"] == label


def test_guard_cli_passes_results_through() -> None:
    assert guard_cli(lambda: 0)() == 0
