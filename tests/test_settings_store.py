"""Tests for the settings store."""

import json
import os

import pytest

from meeting_mind.settings_store import DEFAULT_SETTINGS, MemorySettingsStore, SettingsStore


@pytest.mark.unit
class TestSettingsStore:
    """Test cases for the JSON-file settings store."""

    def test_defaults_without_file(self, tmp_path) -> None:
        store = SettingsStore(tmp_path / "missing.json")

        assert store.get("ai_provider") == "groq"
        assert store.get("groq_api_key") is None
        assert store.get("groq_api_key", "fallback") == "fallback"

    def test_set_persists(self, tmp_path) -> None:
        path = tmp_path / "nested" / "config.json"
        SettingsStore(path).set("groq_api_key", "gsk-1")

        assert json.loads(path.read_text()) == {"groq_api_key": "gsk-1"}
        assert SettingsStore(path).get("groq_api_key") == "gsk-1"

    def test_external_edit_seen_on_next_get(self, tmp_path) -> None:
        """Test that the file is re-read after its modification time changes."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"ai_provider": "groq"}))
        store = SettingsStore(path)
        assert store.get("ai_provider") == "groq"

        path.write_text(json.dumps({"ai_provider": "claude"}))
        stat = path.stat()
        os.utime(path, (stat.st_atime, stat.st_mtime + 10))

        assert store.get("ai_provider") == "claude"

    def test_environment_overrides_file(self, tmp_path, monkeypatch) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"groq_api_key": "from-file"}))
        monkeypatch.setenv("MEETING_MIND_GROQ_API_KEY", "from-env")

        assert SettingsStore(path).get("groq_api_key") == "from-env"

    def test_overrides_win(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("MEETING_MIND_OVERLAY_DISMISS_SECONDS", "10")
        store = SettingsStore(tmp_path / "c.json", overrides={"overlay_dismiss_seconds": 0})

        assert store.get("overlay_dismiss_seconds") == 0

    def test_delete_and_update(self, tmp_path) -> None:
        store = SettingsStore(tmp_path / "config.json")
        store.update({"a": 1, "b": 2})
        store.delete("a")

        assert store.get("a") is None
        assert store.all()["b"] == 2

    def test_corrupt_file_ignored(self, tmp_path) -> None:
        path = tmp_path / "config.json"
        path.write_text("{not json")

        assert SettingsStore(path).get("ai_provider") == DEFAULT_SETTINGS["ai_provider"]


@pytest.mark.unit
class TestMemorySettingsStore:
    """Test cases for MemorySettingsStore."""

    def test_values_and_defaults(self, monkeypatch) -> None:
        monkeypatch.setenv("MEETING_MIND_AI_PROVIDER", "openai")
        store = MemorySettingsStore({"groq_api_key": "k"})

        assert store.get("groq_api_key") == "k"
        assert store.get("ai_provider") == "groq"

    def test_set_in_memory(self) -> None:
        store = MemorySettingsStore()
        store.set("ai_provider", "claude")
        assert store.get("ai_provider") == "claude"
