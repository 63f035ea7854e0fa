"""Tests for device signals and the JSON file storage used by the fallback path."""

import json
from pathlib import Path

from visitor_quota.utils.device_signals import (
    FALLBACK_PREFIX,
    DeviceSignals,
    collect_local_signals,
    fallback_token,
)
from visitor_quota.utils.local_storage import JsonFileStorage


class TestDeviceSignals:
    def test_canonical_form(self) -> None:
        signals = DeviceSignals(1920, 1080, "UTC", "en-US", "linux", 24, 1.0)

        assert signals.canonical() == "1920x1080-UTC-en-US-linux-24-1.0"

    def test_fallback_token_shape(self) -> None:
        token = fallback_token(DeviceSignals(1920, 1080, "UTC", "en-US", "linux", 24, 1.0))

        assert token.startswith(FALLBACK_PREFIX)
        assert len(token) == len(FALLBACK_PREFIX) + 16

    def test_any_signal_change_changes_token(self) -> None:
        base = DeviceSignals(1920, 1080, "UTC", "en-US", "linux", 24, 1.0)
        moved = DeviceSignals(1920, 1080, "Europe/Lisbon", "en-US", "linux", 24, 1.0)

        assert fallback_token(base) == fallback_token(DeviceSignals(1920, 1080, "UTC", "en-US", "linux", 24, 1.0))
        assert fallback_token(base) != fallback_token(moved)

    def test_collect_local_signals_uses_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("TZ", "America/Sao_Paulo")
        monkeypatch.setenv("COLORTERM", "truecolor")

        signals = collect_local_signals()

        assert signals.timezone == "America/Sao_Paulo"
        assert signals.color_depth == 24
        assert signals.pixel_ratio == 1.0
        assert signals.screen_width > 0


class TestJsonFileStorage:
    def test_missing_file_reads_as_empty(self, tmp_path: Path) -> None:
        assert JsonFileStorage(tmp_path / "visitor.json").get_item("visitorFallbackId") is None

    def test_set_creates_parent_and_persists(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "visitor.json"

        JsonFileStorage(path).set_item("visitorFallbackId", "fallback-abc")

        assert JsonFileStorage(path).get_item("visitorFallbackId") == "fallback-abc"
        assert json.loads(path.read_text(encoding="utf-8")) == {"visitorFallbackId": "fallback-abc"}

    def test_set_keeps_other_keys(self, tmp_path: Path) -> None:
        storage = JsonFileStorage(tmp_path / "visitor.json")
        storage.set_item("a", "1")
        storage.set_item("b", "2")

        assert storage.get_item("a") == "1"
        assert storage.get_item("b") == "2"

    def test_corrupt_file_is_treated_as_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "visitor.json"
        path.write_text("{truncated", encoding="utf-8")
        storage = JsonFileStorage(path)

        assert storage.get_item("visitorFallbackId") is None
        storage.set_item("visitorFallbackId", "fallback-new")
        assert storage.get_item("visitorFallbackId") == "fallback-new"

    def test_leaves_no_temp_files(self, tmp_path: Path) -> None:
        JsonFileStorage(tmp_path / "visitor.json").set_item("k", "v")

        assert [p.name for p in tmp_path.iterdir()] == ["visitor.json"]

    def test_non_utf8_file_is_treated_as_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "visitor.json"
        path.write_bytes(b"\xff\xfe\x00garbage")
        storage = JsonFileStorage(path)

        assert storage.get_item("visitorFallbackId") is None
        storage.set_item("visitorFallbackId", "fallback-repaired")
        assert JsonFileStorage(path).get_item("visitorFallbackId") == "fallback-repaired"
