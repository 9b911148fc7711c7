"""Settings dataclasses and persistence helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Union

__all__ = [
    "AutoRender",
    "EditorEvent",
    "Enabled",
    "JumpSettings",
    "NesSettings",
    "SettingsStore",
]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".nextedit"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "NEXTEDIT_ENABLED": "enabled",
    "NEXTEDIT_CLEAR_ON_ESCAPE": "clear_on_escape",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "NEXTEDIT_DEBOUNCE_MS": "debounce_ms",
}
_JUMP_HISTORY_ENV = "NEXTEDIT_JUMP_HISTORY"
_TRUE_VALUES = {"1", "true", "yes", "on"}
_RUNTIME_ONLY_FIELDS = frozenset({"enabled", "auto_render"})


@dataclass(slots=True, frozen=True)
class EditorEvent:
    """An editor event as seen by trigger predicates."""

    name: str
    document_id: str | None = None
    data: Mapping[str, Any] = field(default_factory=dict)


Enabled = Union[bool, Callable[[str], bool]]
AutoRender = Union[bool, Callable[[EditorEvent], bool]]


@dataclass(slots=True)
class JumpSettings:
    """Cursor jump behaviour."""

    jump_history: bool = True


@dataclass(slots=True)
class NesSettings:
    """User-configurable next edit suggestion settings.

    ``enabled`` and ``auto_render`` accept a callable for per-document and
    per-event decisions; callables are runtime-only and never persisted.
    """

    enabled: Enabled = True
    auto_render: AutoRender = True
    debounce_ms: int = 100
    focus_debounce_ms: int = 10
    trigger_events: tuple[str, ...] = ("insert_leave", "text_changed", "mode_changed")
    clear_events: tuple[str, ...] = ("insert_enter", "text_changed_insert")
    clear_on_escape: bool = True
    request_method: str = "textDocument/copilotInlineEdit"
    jump: JumpSettings = field(default_factory=JumpSettings)

    def is_enabled_for(self, document_id: str) -> bool:
        """Evaluate the ``enabled`` flag or predicate for ``document_id``."""

        enabled = self.enabled
        if callable(enabled):
            try:
                return bool(enabled(document_id))
            except Exception:
                LOGGER.debug("enabled predicate failed for %s", document_id, exc_info=True)
                return False
        return enabled is not False

    def should_auto_render(self, event: EditorEvent) -> bool:
        auto_render = self.auto_render
        if callable(auto_render):
            try:
                return bool(auto_render(event))
            except Exception:
                LOGGER.debug("auto_render predicate failed for %s", event.name, exc_info=True)
                return False
        return auto_render is True


class SettingsStore:
    """Persistence adapter for :class:`NesSettings`."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        """Return the resolved path backing this store."""

        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> NesSettings:
        """Load settings from disk, applying caller and environment overrides."""

        payload = self._read_payload()
        settings = NesSettings()
        if payload:
            data = _filter_fields(payload)
            jump_payload = data.get("jump")
            if isinstance(jump_payload, Mapping):
                try:
                    data["jump"] = JumpSettings(**jump_payload)
                except TypeError:
                    data["jump"] = JumpSettings()
            for key in ("trigger_events", "clear_events"):
                if isinstance(data.get(key), list):
                    data[key] = tuple(str(item) for item in data[key])
            try:
                settings = NesSettings(**data)
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = NesSettings()

        if overrides:
            settings = self._apply_overrides(settings, overrides, source="caller")
        return self._apply_env_overrides(settings)

    def save(self, settings: NesSettings) -> Path:
        """Persist settings to disk with an atomic file write."""

        payload = self._serialize(settings)
        body = json.dumps(payload, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _serialize(self, settings: NesSettings) -> Dict[str, Any]:
        runtime = {name: getattr(settings, name) for name in _RUNTIME_ONLY_FIELDS}
        data = asdict(replace(settings, enabled=True, auto_render=True))
        for name, value in runtime.items():
            if isinstance(value, bool):
                data[name] = value
            else:
                data.pop(name, None)
        data["version"] = _SETTINGS_VERSION
        return data

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            text = self._path.read_text(encoding="utf-8")
            payload = json.loads(text)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Settings file %s does not contain an object", self._path)
            return {}
        return payload

    def _apply_overrides(self, settings: NesSettings, overrides: Mapping[str, Any], *, source: str) -> NesSettings:
        data = _filter_fields(overrides)
        if not data:
            return settings
        LOGGER.debug("Applying %s settings overrides: %s", source, sorted(data))
        return replace(settings, **data)

    def _apply_env_overrides(self, settings: NesSettings) -> NesSettings:
        updates: Dict[str, Any] = {}
        for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                updates[field_name] = value.strip().lower() in _TRUE_VALUES
        for env_name, field_name in _INT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                updates[field_name] = max(0, int(value))
            except ValueError:
                LOGGER.warning("Ignoring %s=%r: expected an integer", env_name, value)
        if updates:
            settings = self._apply_overrides(settings, updates, source="environment")
        jump_history = os.environ.get(_JUMP_HISTORY_ENV)
        if jump_history is not None:
            settings = replace(settings, jump=JumpSettings(jump_history=jump_history.strip().lower() in _TRUE_VALUES))
        return settings


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {item.name for item in fields(NesSettings)}
    return {key: value for key, value in payload.items() if key in allowed}
