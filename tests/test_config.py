from __future__ import annotations

import logging

import pytest

from goalsync.config import get_settings
from goalsync.errors import StorageFailure
from goalsync.telemetry import SyncEvent, emit_event


def test_settings_read_environment(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("GOALSYNC_LOCAL_STORE_PATH", str(tmp_path / "store.json"))
    monkeypatch.setenv("GOALSYNC_DATABASE_URL", "sqlite://")
    monkeypatch.setenv("GOALSYNC_REMOTE_TIMEOUT_SECONDS", "2.5")

    settings = get_settings()

    assert settings.local_store_path == str(tmp_path / "store.json")
    assert settings.remote_enabled
    assert settings.remote_timeout_seconds == 2.5
    assert settings.remote_collection == "goals"


def test_invalid_settings_raise_runtime_error(monkeypatch) -> None:
    monkeypatch.setenv("GOALSYNC_REMOTE_TIMEOUT_SECONDS", "-1")
    with pytest.raises(RuntimeError, match="Invalid goalsync configuration"):
        get_settings()


def test_emit_event_fans_out_and_logs(events, caplog) -> None:
    failure = StorageFailure("Failed to save data to storage", "write", "daily_goals", OSError("disk full"))

    with caplog.at_level(logging.INFO, logger="goalsync.telemetry"):
        emit_event("goal_mutation_reverted", date="2024-03-10", error=failure)

    assert events[0].name == "goal_mutation_reverted"
    assert events[0].payload["error"].startswith("StorageFailure: Failed to save data")
    assert "TELEMETRY" in caplog.text
    assert '"event": "goal_mutation_reverted"' in caplog.text


def test_storage_failure_str_includes_context() -> None:
    failure = StorageFailure("Failed to read data from storage", "read", "goal_stats", ValueError("bad"))
    assert str(failure) == "Failed to read data from storage (operation=read, key=goal_stats): bad"
    assert StorageFailure("x", "delete").readable_message() == "Unable to delete the data. Please try again."


def test_failure_events_log_at_warning_and_others_at_info(events, caplog) -> None:
    with caplog.at_level(logging.INFO, logger="goalsync.telemetry"):
        emit_event(SyncEvent.GOAL_SYNC_PUSH_FAILED, user_id="u1", reason="timeout")
        emit_event(SyncEvent.GOAL_SYNC_PUSH_SUCCEEDED, user_id="u1", state=SyncEvent.GOAL_SYNC_PUSH_SUCCEEDED)

    assert [record.levelno for record in caplog.records] == [logging.WARNING, logging.INFO]
    assert [event.name for event in events] == ["goal_sync_push_failed", "goal_sync_push_succeeded"]
    assert events[1].payload["state"] == "goal_sync_push_succeeded"


def test_unregistered_event_names_are_still_emitted(events) -> None:
    emit_event("custom_dashboard_event", count=1)

    assert events[0].name == "custom_dashboard_event"
    assert not SyncEvent.PROFILE_RECOVERED.is_failure
    assert SyncEvent.GOAL_MUTATION_REVERTED.is_failure
