"""Persistent key/value settings read on demand by the pipeline."""

import json
import os
from pathlib import Path
from typing import Any

from .logging_utils import get_logger

logger = get_logger(__name__)

ENV_PREFIX = "MEETING_MIND_"

DEFAULT_SETTINGS: dict[str, Any] = {
    "ai_provider": "groq",
    "transcription_provider": "groq",
    "transcription_language": None,
    "overlay_dismiss_seconds": 30,
    "audio_input_device": None,
}


def default_config_path() -> Path:
    """Return the default location of the settings file."""
    return Path.home() / ".meeting-mind" / "config.json"


class SettingsStore:
    """
    JSON-file backed configuration store.

    Values are resolved in order: per-run overrides, the
    ``MEETING_MIND_<KEY>`` environment variable, the settings file, then
    :data:`DEFAULT_SETTINGS`. The file is re-read whenever its modification
    time changes, so edits made while the pipeline runs are seen on the next
    ``get``.
    """

    def __init__(
        self,
        path: Path | str | None = None,
        overrides: dict[str, Any] | None = None,
    ) -> None:
        self.path = Path(path) if path is not None else default_config_path()
        self.overrides: dict[str, Any] = dict(overrides or {})
        self._data: dict[str, Any] = {}
        self._loaded_mtime: float | None = None

    def _load(self) -> None:
        try:
            mtime = self.path.stat().st_mtime
        except OSError:
            self._data = {}
            self._loaded_mtime = None
            return

        if mtime == self._loaded_mtime:
            return

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
            self._data = data if isinstance(data, dict) else {}
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"⚠️ Could not read settings from {self.path}: {e}")
            self._data = {}
        self._loaded_mtime = mtime

    def _save(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2)
            self._loaded_mtime = self.path.stat().st_mtime
        except OSError as e:
            logger.error(f"❌ Failed to write settings to {self.path}: {e}")
            raise

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a setting value.

        Args:
            key: Setting name
            default: Returned when the key is unset everywhere

        Returns:
            The resolved value
        """
        if self.overrides.get(key) is not None:
            return self.overrides[key]

        env_value = os.environ.get(ENV_PREFIX + key.upper())
        if env_value:
            return env_value

        self._load()
        if key in self._data and self._data[key] is not None:
            return self._data[key]
        if DEFAULT_SETTINGS.get(key) is not None:
            return DEFAULT_SETTINGS[key]
        return default

    def set(self, key: str, value: Any) -> None:
        """Set a value; ``None`` deletes the key."""
        self._load()
        if value is None:
            self._data.pop(key, None)
        else:
            self._data[key] = value
        self._save()
        logger.debug(f"Setting updated: {key}")

    def delete(self, key: str) -> None:
        """Remove a key from the settings file."""
        self.set(key, None)

    def update(self, values: dict[str, Any]) -> None:
        """Apply several updates with one write."""
        self._load()
        for key, value in values.items():
            if value is None:
                self._data.pop(key, None)
            else:
                self._data[key] = value
        self._save()

    def all(self) -> dict[str, Any]:
        """Return defaults merged with stored values (environment not included)."""
        self._load()
        merged = dict(DEFAULT_SETTINGS)
        merged.update(self._data)
        return merged


class MemorySettingsStore(SettingsStore):
    """In-memory store with the same interface, for tests and embedding."""

    def __init__(self, values: dict[str, Any] | None = None) -> None:
        super().__init__(path=os.devnull)
        self._data = dict(values or {})

    def _load(self) -> None:
        return

    def _save(self) -> None:
        return

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._data and self._data[key] is not None:
            return self._data[key]
        if DEFAULT_SETTINGS.get(key) is not None:
            return DEFAULT_SETTINGS[key]
        return default
