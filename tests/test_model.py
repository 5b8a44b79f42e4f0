from __future__ import annotations

import pytest

from startup_visualizer.contracts.error import BadInputError
from startup_visualizer.model import InfoResponse, Machine, parse_metrics_list


def test_info_from_json(info_payload: dict) -> None:
    info = InfoResponse.from_json(info_payload)
    assert info.product_names == ("A", "B")
    assert info.machines_for("B") == (Machine(2, "linux-x64"), Machine(3))
    assert info.machines_for("Z") == ()
    assert info.machines_for(None) == ()
    assert info.instant_metrics_names == ("splash",)


def test_machine_label_and_extra() -> None:
    machine = Machine.from_dict({"id": 9, "cpu": "M2"})
    assert machine.label == "9"
    assert machine.extra == {"cpu": "M2"}
    assert Machine.from_dict({"id": 9, "name": "mini"}).label == "mini"


@pytest.mark.parametrize(
    ("mutate", "location"),
    [
        (lambda payload: payload.pop("productNames"), "<root>"),
        (lambda payload: payload["productToMachine"]["A"][0].update(id="one"), "productToMachine/A/0/id"),
        (lambda payload: payload.update(productNames=["A", "A"]), "productNames"),
    ],
)
def test_info_schema_violations(info_payload: dict, mutate, location: str) -> None:
    mutate(info_payload)
    with pytest.raises(BadInputError) as excinfo:
        InfoResponse.from_json(info_payload)
    assert location in str(excinfo.value)


def test_info_rejects_non_object() -> None:
    with pytest.raises(BadInputError):
        InfoResponse.from_json(["A"])


def test_parse_metrics_list_filters_records() -> None:
    assert parse_metrics_list([{"t": 1}, 3, "x", {"t": 2}]) == [{"t": 1}, {"t": 2}]
    with pytest.raises(BadInputError):
        parse_metrics_list({"t": 1})
    with pytest.raises(BadInputError):
        parse_metrics_list("[]")
