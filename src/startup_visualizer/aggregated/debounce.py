"""Keyed debounce timers."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


CallLater = Callable[[float, Callable[[], None]], TimerHandle]


class DebounceRegistry:
    """Run a callback once a key has been quiet for its delay.

    ``call_later`` has the shape of :meth:`asyncio.AbstractEventLoop.call_later`
    (delay in seconds). Scheduling a key that is already pending cancels the
    pending timer first.
    """

    def __init__(self, call_later: CallLater) -> None:
        self._call_later = call_later
        self._pending: dict[str, TimerHandle] = {}

    def schedule(self, key: str, delay_ms: int, callback: Callable[[], Any]) -> None:
        self.cancel(key)

        def _fire() -> None:
            self._pending.pop(key, None)
            callback()

        self._pending[key] = self._call_later(delay_ms / 1000.0, _fire)

    def cancel(self, key: str) -> bool:
        handle = self._pending.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> None:
        for key in list(self._pending):
            self.cancel(key)

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    @property
    def pending_keys(self) -> tuple[str, ...]:
        return tuple(self._pending)


__all__ = ["CallLater", "DebounceRegistry", "TimerHandle"]
