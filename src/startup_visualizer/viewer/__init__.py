"""Desktop viewer public exports."""

from __future__ import annotations

from typing import TYPE_CHECKING

__all__ = [
    "build_app",
    "build_controller",
    "build_widgets",
    "build_window",
    "ViewerController",
    "run_viewer",
]


def __getattr__(name: str):  # pragma: no cover - thin re-export shim
    if name == "run_viewer":
        from .app import run_viewer as func

        return func
    if name in {"build_app", "build_controller", "build_widgets", "build_window"}:
        from . import builders

        return getattr(builders, name)
    if name == "ViewerController":
        from .controller import ViewerController as controller_class  # noqa: N813

        return controller_class
    raise AttributeError(name)


if TYPE_CHECKING:  # pragma: no cover - import-time typing only
    from .app import run_viewer
    from .builders import build_app, build_controller, build_widgets, build_window
    from .controller import ViewerController
