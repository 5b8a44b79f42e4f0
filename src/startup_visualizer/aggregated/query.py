"""URL builders for the metrics server query contract."""

from __future__ import annotations

import math
from dataclasses import dataclass
from urllib.parse import quote

from startup_visualizer.contracts.error import BadInputError

DEFAULT_AGGREGATION_OPERATOR = "median"
QUANTILE_OPERATOR = "quantile"
AGGREGATION_OPERATORS: tuple[str, ...] = ("median", "min", "max", QUANTILE_OPERATOR)

DURATION_EVENT_TYPE = "d"
INSTANT_EVENT_TYPE = "i"


def format_number(value: float) -> str:
    """Render ``value`` the way the metrics server expects query numbers."""

    number = float(value)
    if not math.isfinite(number):
        raise BadInputError(f"Query argument must be finite; got {value!r}")
    if number.is_integer():
        return str(int(number))
    return repr(number)


def encode_component(value: str) -> str:
    """Percent-encode ``value`` as a single URL component."""

    return quote(value, safe="-_.!~*'()")


def normalize_operator(operator: str | None) -> str:
    if not operator:
        return DEFAULT_AGGREGATION_OPERATOR
    if operator not in AGGREGATION_OPERATORS:
        raise BadInputError(
            f"Unknown aggregation operator {operator!r}",
            hint=f"Use one of: {', '.join(AGGREGATION_OPERATORS)}",
        )
    return operator


@dataclass(frozen=True)
class QueryDescriptor:
    """One grouped metrics request."""

    product: str
    machine_id: int
    operator: str
    operator_arg: float | None
    event_type: str

    @classmethod
    def create(
        cls,
        product: str,
        machine_id: int,
        operator: str | None,
        quantile: float,
        is_instant: bool,
    ) -> QueryDescriptor:
        resolved = normalize_operator(operator)
        return cls(
            product=product,
            machine_id=int(machine_id),
            operator=resolved,
            operator_arg=quantile if resolved == QUANTILE_OPERATOR else None,
            event_type=INSTANT_EVENT_TYPE if is_instant else DURATION_EVENT_TYPE,
        )

    @property
    def is_instant(self) -> bool:
        return self.event_type == INSTANT_EVENT_TYPE

    def to_url(self, server_url: str) -> str:
        result = (
            f"{server_url}/groupedMetrics/"
            f"product={encode_component(self.product)}"
            f"&machine={self.machine_id}"
            f"&operator={self.operator}"
        )
        if self.operator_arg is not None:
            result += f"&operatorArg={format_number(self.operator_arg)}"
        result += f"&eventType={self.event_type}"
        return result


def build_info_url(server_url: str) -> str:
    return f"{server_url}/info"


def build_metrics_url(server_url: str, product: str, machine_id: int) -> str:
    return f"{server_url}/metrics/product={encode_component(product)}&machine={int(machine_id)}"


def build_grouped_metrics_url(
    server_url: str,
    product: str,
    machine_id: int,
    operator: str | None,
    quantile: float,
    is_instant: bool,
) -> str:
    """Build the grouped metrics URL.

    The operator falls back to ``median`` when unset, so stored settings may keep
    ``None``. ``operatorArg`` is only sent for the ``quantile`` operator and
    ``eventType`` always comes last.
    """

    descriptor = QueryDescriptor.create(product, machine_id, operator, quantile, is_instant)
    return descriptor.to_url(server_url)


__all__ = [
    "AGGREGATION_OPERATORS",
    "DEFAULT_AGGREGATION_OPERATOR",
    "QUANTILE_OPERATOR",
    "QueryDescriptor",
    "build_grouped_metrics_url",
    "build_info_url",
    "build_metrics_url",
    "encode_component",
    "format_number",
    "normalize_operator",
]
