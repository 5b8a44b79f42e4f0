"""Chart settings and their TOML-backed store."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Callable, Mapping
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from .aggregated.query import AGGREGATION_OPERATORS
from .contracts.error import BadInputError

SETTINGS_ENV_VAR = "STARTUP_VISUALIZER_SETTINGS"
DEFAULT_SETTINGS_PATH = Path("~/.config/startup-visualizer/settings.toml")
ALLOWED_SERVER_SCHEMES = {"http", "https"}

# Keys used by the browser version of the page when it persisted settings.
_CAMEL_CASE_KEYS = {
    "serverUrl": "server_url",
    "selectedProduct": "selected_product",
    "selectedMachine": "selected_machine",
    "aggregationOperator": "aggregation_operator",
    "quantile": "quantile",
    "showScrollbarXPreview": "show_scrollbar_x_preview",
}


def _parse_bool(raw: Any, name: str) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        normalized = raw.strip().lower()
        if normalized in {"1", "true", "yes", "on"}:
            return True
        if normalized in {"0", "false", "no", "off"}:
            return False
    raise BadInputError(f"{name} must be boolean")


@dataclass
class ChartSettings:
    server_url: str = ""
    selected_product: str | None = None
    selected_machine: int | None = None
    aggregation_operator: str | None = None
    quantile: float = 0.5
    show_scrollbar_x_preview: bool = False

    def validate(self) -> None:
        if self.server_url:
            parsed = urlparse(self.server_url)
            if parsed.scheme not in ALLOWED_SERVER_SCHEMES or not parsed.netloc:
                raise BadInputError(
                    f"server_url must be an http(s) URL; got {self.server_url!r}",
                    hint="Example: http://localhost:9044/stats",
                )
        if self.aggregation_operator and self.aggregation_operator not in AGGREGATION_OPERATORS:
            raise BadInputError(
                f"aggregation_operator must be one of {', '.join(AGGREGATION_OPERATORS)}"
            )
        if not 0.0 <= self.quantile <= 1.0:
            raise BadInputError("quantile must be within [0, 1]")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ChartSettings:
        kwargs: dict[str, Any] = {}
        known = {item.name for item in fields(cls)}
        for raw_key, value in data.items():
            key = _CAMEL_CASE_KEYS.get(raw_key, raw_key)
            if key not in known:
                raise BadInputError(f"Unknown chart setting {raw_key!r}")
            kwargs[key] = value

        if "server_url" in kwargs:
            kwargs["server_url"] = str(kwargs["server_url"] or "").rstrip("/")
        if kwargs.get("selected_product") == "":
            kwargs["selected_product"] = None
        machine = kwargs.get("selected_machine")
        if machine is not None:
            try:
                kwargs["selected_machine"] = int(machine)
            except (TypeError, ValueError) as exc:
                raise BadInputError("selected_machine must be an integer") from exc
        if kwargs.get("aggregation_operator") in {"", "none"}:
            kwargs["aggregation_operator"] = None
        if "quantile" in kwargs:
            try:
                kwargs["quantile"] = float(kwargs["quantile"])
            except (TypeError, ValueError) as exc:
                raise BadInputError("quantile must be a number") from exc
        if "show_scrollbar_x_preview" in kwargs:
            kwargs["show_scrollbar_x_preview"] = _parse_bool(
                kwargs["show_scrollbar_x_preview"], "show_scrollbar_x_preview"
            )
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {
            "server_url": self.server_url,
            "selected_product": self.selected_product,
            "selected_machine": self.selected_machine,
            "aggregation_operator": self.aggregation_operator,
            "quantile": self.quantile,
            "show_scrollbar_x_preview": self.show_scrollbar_x_preview,
        }

    def apply_env_overrides(self, env: Mapping[str, str]) -> None:
        mapping: dict[str, tuple[str, Callable[[str], Any]]] = {
            "STARTUP_VISUALIZER_SERVER_URL": ("server_url", lambda raw: raw.strip().rstrip("/")),
            "STARTUP_VISUALIZER_OPERATOR": ("aggregation_operator", lambda raw: raw.strip() or None),
            "STARTUP_VISUALIZER_QUANTILE": ("quantile", float),
        }
        for key, (attr, caster) in mapping.items():
            raw_value = env.get(key)
            if raw_value is None:
                continue
            try:
                value = caster(raw_value)
            except ValueError as exc:
                raise BadInputError(f"Invalid env override {key}={raw_value!r}") from exc
            setattr(self, attr, value)


def _format_toml_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def format_settings_to_toml(settings: ChartSettings) -> str:
    lines = [
        "[chart]",
        f"server_url = {_format_toml_string(settings.server_url)}",
        f"quantile = {settings.quantile!r}",
        f"show_scrollbar_x_preview = {str(settings.show_scrollbar_x_preview).lower()}",
    ]
    if settings.selected_product:
        lines.append(f"selected_product = {_format_toml_string(settings.selected_product)}")
    if settings.selected_machine is not None:
        lines.append(f"selected_machine = {settings.selected_machine}")
    if settings.aggregation_operator:
        lines.append(f"aggregation_operator = {_format_toml_string(settings.aggregation_operator)}")
    lines.append("")
    return "\n".join(lines)


def resolve_settings_path(path: str | Path | None = None) -> Path:
    if path is None:
        env_path = os.getenv(SETTINGS_ENV_VAR)
        path = Path(env_path) if env_path else DEFAULT_SETTINGS_PATH
    return Path(path).expanduser()


class SettingsStore:
    """Load and persist :class:`ChartSettings` as a small TOML file."""

    def __init__(self, path: str | Path | None = None, *, env: Mapping[str, str] | None = None) -> None:
        self.path = resolve_settings_path(path)
        self._env = os.environ if env is None else env

    def load(self) -> ChartSettings:
        try:
            data = tomllib.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            data = {}
        except tomllib.TOMLDecodeError as exc:
            raise BadInputError(f"Invalid TOML in {self.path}: {exc}") from exc
        section = data.get("chart", {})
        if not isinstance(section, dict):
            raise BadInputError("[chart] section must be a table")
        settings = ChartSettings.from_dict(section)
        settings.apply_env_overrides(self._env)
        settings.validate()
        return settings

    def save(self, settings: ChartSettings) -> Path:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(format_settings_to_toml(settings), encoding="utf-8")
        return self.path


class MemorySettingsStore:
    """Settings store that keeps the last saved copy in memory."""

    def __init__(self, settings: ChartSettings | None = None) -> None:
        self.saved: ChartSettings | None = None
        self._initial = settings or ChartSettings()
        self.save_count = 0

    def load(self) -> ChartSettings:
        return ChartSettings(**(self.saved or self._initial).to_dict())

    def save(self, settings: ChartSettings) -> None:
        self.saved = ChartSettings(**settings.to_dict())
        self.save_count += 1


__all__ = [
    "ChartSettings",
    "DEFAULT_SETTINGS_PATH",
    "MemorySettingsStore",
    "SETTINGS_ENV_VAR",
    "SettingsStore",
    "format_settings_to_toml",
    "resolve_settings_path",
]
