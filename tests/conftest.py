import pytest
from fastapi.testclient import TestClient

from handoff_relay.config import Settings
from handoff_relay.dependencies import (
    get_chat_client,
    get_fallback_tracker,
    get_nlu_client_factory,
    get_settings,
)
from handoff_relay.main import app
from handoff_relay.services.fallback_tracker import FallbackTracker
from tests.fakes import SERVICE_ACCOUNT, FakeChatClient, FakeNluClient


@pytest.fixture
def settings():
    return Settings(
        bot_credentials={"bot1": SERVICE_ACCOUNT},
        max_fallbacks=4,
        business_hours_offset_hours=0.0,
        business_timezone=None,
    )


@pytest.fixture
def tracker():
    return FallbackTracker()


@pytest.fixture
def nlu_client():
    return FakeNluClient()


@pytest.fixture
def chat_client():
    return FakeChatClient()


@pytest.fixture
def client(settings, tracker, nlu_client, chat_client):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_fallback_tracker] = lambda: tracker
    app.dependency_overrides[get_nlu_client_factory] = lambda: (lambda bot_id, credentials, cfg: nlu_client)
    app.dependency_overrides[get_chat_client] = lambda: chat_client
    yield TestClient(app)
    app.dependency_overrides.clear()
