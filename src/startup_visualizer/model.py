"""Data model for the aggregated stats server payloads."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from functools import lru_cache
from importlib import resources
from typing import Any

from jsonschema import Draft202012Validator

from .contracts.error import BadInputError

Metrics = Mapping[str, Any]


@lru_cache(maxsize=1)
def _info_validator() -> Draft202012Validator:
    schema_resource = resources.files("startup_visualizer.contracts") / "info_schema.json"
    with schema_resource.open(encoding="utf-8") as stream:
        schema = json.load(stream)
    return Draft202012Validator(schema)


@dataclass(frozen=True)
class Machine:
    id: int
    name: str = ""
    extra: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Machine:
        extra = {key: value for key, value in data.items() if key not in {"id", "name"}}
        name = data.get("name")
        return cls(id=int(data["id"]), name=str(name) if name is not None else "", extra=extra)

    @property
    def label(self) -> str:
        return self.name or str(self.id)


@dataclass(frozen=True)
class InfoResponse:
    """Products, machines and metric names known to the server."""

    product_names: tuple[str, ...] = ()
    product_to_machine: Mapping[str, tuple[Machine, ...]] = field(default_factory=dict)
    duration_metrics_names: tuple[str, ...] = ()
    instant_metrics_names: tuple[str, ...] = ()

    @classmethod
    def from_json(cls, payload: Any) -> InfoResponse:
        errors = sorted(_info_validator().iter_errors(payload), key=lambda err: list(err.path))
        if errors:
            first = errors[0]
            location = "/".join(str(part) for part in first.path) or "<root>"
            raise BadInputError(f"Invalid info response at {location}: {first.message}")
        product_to_machine = {
            product: tuple(Machine.from_dict(item) for item in machines)
            for product, machines in payload["productToMachine"].items()
        }
        return cls(
            product_names=tuple(payload["productNames"]),
            product_to_machine=product_to_machine,
            duration_metrics_names=tuple(payload["durationMetricsNames"]),
            instant_metrics_names=tuple(payload["instantMetricsNames"]),
        )

    def machines_for(self, product: str | None) -> tuple[Machine, ...]:
        if not product:
            return ()
        return self.product_to_machine.get(product, ())


def parse_metrics_list(payload: Any) -> list[Metrics]:
    """Keep the per-run records of a ``/metrics`` response."""

    if not isinstance(payload, Sequence) or isinstance(payload, (str, bytes)):
        raise BadInputError("Metrics response must be a JSON array")
    return [item for item in payload if isinstance(item, Mapping)]


__all__ = ["InfoResponse", "Machine", "Metrics", "parse_metrics_list"]
