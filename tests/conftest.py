# =============================================================================
# File: tests/conftest.py
# Description: Shared fixtures for replay tests
# =============================================================================

from __future__ import annotations

import pytest

from groupsync.config.replay_config import ReplayConfig, reset_replay_config
from groupsync.utils.key_utils import b64_encode_bytes

from tests.fakes.call_journal import CallJournal
from tests.fakes.fake_projection_handler import FakeLocalStore, RecordingProjectionHandler
from tests.fakes.fake_protocol_client import FakeProtocolClient, make_group_pk


@pytest.fixture(autouse=True)
def _isolated_replay_config(monkeypatch):
    for key in ("REPLAY_ENABLED", "REPLAY_ACCOUNT_DISPLAY_NAME",
                "REPLAY_HANDLER_LOGGING", "REPLAY_DEACTIVATE_ON_FAILURE"):
        monkeypatch.delenv(key, raising=False)
    reset_replay_config()
    yield
    reset_replay_config()


@pytest.fixture
def replay_config() -> ReplayConfig:
    return ReplayConfig(_env_file=None)


@pytest.fixture
def home_pk() -> bytes:
    return make_group_pk("home")


@pytest.fixture
def group_a() -> bytes:
    return make_group_pk("group-a")


@pytest.fixture
def group_b() -> bytes:
    return make_group_pk("group-b")


@pytest.fixture
def journal() -> CallJournal:
    return CallJournal()


@pytest.fixture
def client(home_pk, journal) -> FakeProtocolClient:
    return FakeProtocolClient(home_pk, journal=journal)


@pytest.fixture
def handler(journal) -> RecordingProjectionHandler:
    return RecordingProjectionHandler(journal=journal)


@pytest.fixture
def store(home_pk, group_a, group_b, journal) -> FakeLocalStore:
    return FakeLocalStore(
        [b64_encode_bytes(home_pk), b64_encode_bytes(group_a), b64_encode_bytes(group_b)],
        journal=journal,
    )
