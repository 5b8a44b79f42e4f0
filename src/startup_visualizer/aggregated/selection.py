"""Product/machine selection state and its repair rules."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from startup_visualizer.model import InfoResponse, Machine

if TYPE_CHECKING:  # pragma: no cover - typing only
    from startup_visualizer.config import ChartSettings

logger = logging.getLogger(__name__)

FetchCallback = Callable[[str, int], None]


class SelectionStateMachine:
    """Keeps ``selected_product``/``selected_machine`` valid for the latest info.

    Every ``info_arrived`` or ``product_changed`` event results in exactly one call
    of ``on_fetch(product, machine_id)`` once both axes are set, and none otherwise.
    """

    def __init__(self, settings: ChartSettings, on_fetch: FetchCallback) -> None:
        self._settings = settings
        self._on_fetch = on_fetch
        self._info: InfoResponse | None = None
        self._products: tuple[str, ...] = ()
        self._machines: tuple[Machine, ...] = ()
        self._fetch_rounds = 0

    @property
    def info(self) -> InfoResponse | None:
        return self._info

    @property
    def products(self) -> tuple[str, ...]:
        return self._products

    @property
    def machines(self) -> tuple[Machine, ...]:
        return self._machines

    @property
    def fetch_rounds(self) -> int:
        return self._fetch_rounds

    def info_arrived(self, info: InfoResponse) -> None:
        self._info = info
        self._products = info.product_names

        previous = self._settings.selected_product
        selected = previous
        if not self._products:
            selected = ""
        elif not selected or selected not in self._products:
            selected = self._products[0]
        self._settings.selected_product = selected
        if selected != previous:
            logger.debug("product repaired: %r -> %r", previous, selected)

        rounds_before = self._fetch_rounds
        self.product_changed(selected, previous)
        if self._fetch_rounds == rounds_before:
            self.machine_changed(self._settings.selected_machine, None)

    def product_changed(self, product: str | None, old_product: str | None) -> None:
        logger.debug("product changed: %r -> %r", old_product, product)
        info = self._info
        if info is None:
            return

        self._machines = info.machines_for(product)

        stored = self._settings.selected_machine
        machine = stored
        if not self._machines:
            machine = None
        elif machine is None or all(item.id != machine for item in self._machines):
            machine = self._machines[0].id

        if machine == stored:
            # No machine change will follow, so the reload has to happen here.
            if product and machine is not None:
                self._fetch(product, machine)
            return

        self._settings.selected_machine = machine
        self.machine_changed(machine, stored)

    def machine_changed(self, machine: int | None, old_machine: int | None) -> None:
        logger.debug("machine changed: %r -> %r", old_machine, machine)
        if machine is None:
            return
        product = self._settings.selected_product
        if not product:
            return
        self._fetch(product, machine)

    def _fetch(self, product: str, machine: int) -> None:
        self._fetch_rounds += 1
        self._on_fetch(product, machine)


__all__ = ["FetchCallback", "SelectionStateMachine"]
