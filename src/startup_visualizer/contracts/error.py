"""Exit codes, error envelopes and the CLI guard.

Every failure the CLI reports is written to stderr as one JSON object::

    {"error": "Transport", "detail": "...", "hint": "..."}

and the process exits with the code bound to the exception class.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable
from dataclasses import asdict, dataclass
from enum import IntEnum
from functools import wraps
from typing import Any, ClassVar, NoReturn, TypeVar

logger = logging.getLogger(__name__)
R = TypeVar("R")


class Exit(IntEnum):
    OK = 0
    BAD_INPUT = 2
    INVARIANT = 3
    IO = 5


@dataclass(frozen=True, slots=True)
class ErrorEnvelope:
    error: str
    detail: str
    hint: str | None = None

    def to_json(self) -> str:
        payload = {key: value for key, value in asdict(self).items() if value}
        payload.setdefault("detail", self.detail)
        return json.dumps(payload, ensure_ascii=False)


def die(code: Exit, kind: str, detail: str, hint: str | None = None) -> NoReturn:
    """Write the envelope for ``kind`` to stderr and exit with ``code``."""

    print(ErrorEnvelope(kind, detail, hint).to_json(), file=sys.stderr, flush=True)
    raise SystemExit(int(code))


class EnvelopeError(Exception):
    """An error the CLI reports as an envelope instead of a traceback."""

    exit_code: ClassVar[Exit] = Exit.INVARIANT
    kind: ClassVar[str] = "Unhandled"

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint

    def to_envelope(self) -> ErrorEnvelope:
        return ErrorEnvelope(self.kind, str(self), self.hint)


class BadInputError(EnvelopeError):
    """Malformed settings, flags or server payloads."""

    exit_code = Exit.BAD_INPUT
    kind = "BadInput"


class TransportError(EnvelopeError):
    """A stats server request produced no usable data."""

    exit_code = Exit.IO
    kind = "Transport"


def guard_cli(handler: Callable[..., R]) -> Callable[..., R]:
    """Turn exceptions escaping a CLI handler into envelopes and exit codes."""

    @wraps(handler)
    def _guarded(*args: Any, **kwargs: Any) -> R:
        try:
            return handler(*args, **kwargs)
        except EnvelopeError as exc:
            envelope = exc.to_envelope()
            die(exc.exit_code, envelope.error, envelope.detail, envelope.hint)
        except FileNotFoundError as exc:
            die(Exit.IO, "FileNotFound", str(exc))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unhandled CLI exception")
            die(Exit.INVARIANT, "Unhandled", f"{type(exc).__name__}: {exc}")

    return _guarded


__all__ = [
    "BadInputError",
    "EnvelopeError",
    "ErrorEnvelope",
    "Exit",
    "TransportError",
    "die",
    "guard_cli",
]
