from __future__ import annotations

from typing import List

import pytest

from goalsync.config import Settings, get_settings
from goalsync.telemetry import TelemetryEvent, clear_listeners, register_listener


@pytest.fixture(autouse=True)
def _reset_globals():
    get_settings.cache_clear()
    clear_listeners()
    yield
    clear_listeners()
    get_settings.cache_clear()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        GOALSYNC_LOCAL_STORE_PATH=str(tmp_path / "local_store.json"),
        GOALSYNC_REMOTE_TIMEOUT_SECONDS=0.5,
        GOALSYNC_BOOTSTRAP_TIMEOUT_SECONDS=0.5,
        GOALSYNC_DEVICE_PLATFORM="test",
    )


@pytest.fixture
def events() -> List[TelemetryEvent]:
    captured: List[TelemetryEvent] = []
    register_listener(captured.append)
    return captured
