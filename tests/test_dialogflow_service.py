import json
from types import SimpleNamespace
from unittest.mock import Mock, patch

import httpx
import pytest

from handoff_relay.config import Settings
from handoff_relay.services.dialogflow_service import (
    CredentialsError,
    DialogflowClient,
    DialogflowClientCache,
    NluError,
    NluResult,
    build_dialogflow_client,
    load_bot_credentials,
)
from tests.fakes import SERVICE_ACCOUNT

QUERY_RESULT = {
    "queryText": "hello",
    "languageCode": "en",
    "fulfillmentText": "Hi! How can I help?",
    "intentDetectionConfidence": 0.87,
    "intent": {"displayName": "Default Welcome Intent", "isFallback": False},
}


def make_client(handler, credentials=None):
    return DialogflowClient(
        project_id="test-agent",
        credentials=credentials or SimpleNamespace(valid=True, token="access-token"),
        transport=httpx.MockTransport(handler),
    )


class TestLoadBotCredentials:
    def test_dict_credentials(self):
        settings = Settings(bot_credentials={"bot1": SERVICE_ACCOUNT})
        assert load_bot_credentials(settings, "bot1") == SERVICE_ACCOUNT

    def test_json_string_credentials(self):
        settings = Settings(bot_credentials={"bot1": json.dumps(SERVICE_ACCOUNT)})
        assert load_bot_credentials(settings, "bot1")["project_id"] == "test-agent"

    def test_missing_bot(self):
        with pytest.raises(CredentialsError) as exc:
            load_bot_credentials(Settings(bot_credentials={}), "bot1")
        assert exc.value.bot_id == "bot1"
        assert "not configured" in str(exc.value)

    def test_malformed_json(self):
        settings = Settings(bot_credentials={"bot1": "{not json"})
        with pytest.raises(CredentialsError) as exc:
            load_bot_credentials(settings, "bot1")
        assert "invalid JSON" in exc.value.message

    def test_missing_project_id(self):
        settings = Settings(bot_credentials={"bot1": {"type": "service_account"}})
        with pytest.raises(CredentialsError):
            load_bot_credentials(settings, "bot1")

    def test_not_an_object(self):
        settings = Settings(bot_credentials={"bot1": "[1, 2]"})
        with pytest.raises(CredentialsError):
            load_bot_credentials(settings, "bot1")


class TestBuildClient:
    def test_unusable_service_account_is_credentials_error(self):
        with pytest.raises(CredentialsError) as exc:
            build_dialogflow_client("bot1", SERVICE_ACCOUNT, Settings())
        assert exc.value.bot_id == "bot1"

    @patch("handoff_relay.services.dialogflow_service.service_account.Credentials.from_service_account_info")
    def test_uses_project_and_timeout(self, mock_from_info):
        mock_from_info.return_value = Mock()
        client = build_dialogflow_client("bot1", SERVICE_ACCOUNT, Settings(nlu_timeout_seconds=5))

        assert client.project_id == "test-agent"
        assert client.timeout == 5
        assert mock_from_info.call_args[1]["scopes"] == ["https://www.googleapis.com/auth/dialogflow"]


class TestClientCache:
    @patch("handoff_relay.services.dialogflow_service.service_account.Credentials.from_service_account_info")
    def test_same_bot_reuses_client(self, mock_from_info):
        mock_from_info.return_value = Mock()
        cache = DialogflowClientCache()
        settings = Settings()

        first = cache("bot1", SERVICE_ACCOUNT, settings)
        second = cache("bot1", SERVICE_ACCOUNT, settings)

        assert first is second
        assert mock_from_info.call_count == 1
        assert len(cache) == 1

    @patch("handoff_relay.services.dialogflow_service.service_account.Credentials.from_service_account_info")
    def test_each_bot_gets_its_own_client(self, mock_from_info):
        mock_from_info.side_effect = lambda info, scopes: Mock()
        cache = DialogflowClientCache()
        settings = Settings()

        first = cache("bot1", SERVICE_ACCOUNT, settings)
        second = cache("bot2", {**SERVICE_ACCOUNT, "project_id": "other-agent"}, settings)

        assert first is not second
        assert second.project_id == "other-agent"
        assert mock_from_info.call_count == 2

    def test_failed_build_is_not_cached(self):
        builder = Mock(side_effect=CredentialsError("bot1", "unusable service account"))
        cache = DialogflowClientCache(builder=builder)

        for _ in range(2):
            with pytest.raises(CredentialsError):
                cache("bot1", SERVICE_ACCOUNT, Settings())

        assert builder.call_count == 2
        assert len(cache) == 0

    def test_app_holds_a_shared_cache(self):
        from handoff_relay.main import app

        assert isinstance(app.state.nlu_clients, DialogflowClientCache)


class TestNluResult:
    def test_from_query_result(self):
        result = NluResult.from_query_result(QUERY_RESULT)
        assert result.intent_name == "Default Welcome Intent"
        assert result.is_fallback is False
        assert result.confidence == 0.87
        assert result.fulfillment_text == "Hi! How can I help?"

    def test_missing_fields_default(self):
        result = NluResult.from_query_result({})
        assert result.intent_name == ""
        assert result.is_fallback is False
        assert result.confidence == 0.0
        assert result.fulfillment_text == ""


class TestDetectIntent:
    @pytest.mark.asyncio
    async def test_sends_text_query(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"responseId": "r1", "queryResult": QUERY_RESULT})

        result = await make_client(handler).detect_intent("hello", "support-group-1", "en-EN")

        assert result.fulfillment_text == "Hi! How can I help?"
        request = requests[0]
        assert request.url.path == "/v2/projects/test-agent/agent/sessions/support-group-1:detectIntent"
        assert request.headers["Authorization"] == "Bearer access-token"
        assert json.loads(request.content) == {"queryInput": {"text": {"text": "hello", "languageCode": "en-EN"}}}

    @pytest.mark.asyncio
    async def test_fallback_flag(self):
        fallback = {**QUERY_RESULT, "intent": {"displayName": "Default Fallback Intent", "isFallback": True}}
        client = make_client(lambda request: httpx.Response(200, json={"queryResult": fallback}))

        result = await client.detect_intent("???", "s1", "en-EN")

        assert result.is_fallback is True

    @pytest.mark.asyncio
    async def test_refreshes_expired_token(self):
        credentials = Mock()
        credentials.valid = False
        credentials.token = "fresh-token"
        seen = []

        def handler(request):
            seen.append(request.headers["Authorization"])
            return httpx.Response(200, json={"queryResult": QUERY_RESULT})

        await make_client(handler, credentials).detect_intent("hello", "s1", "en-EN")

        credentials.refresh.assert_called_once()
        assert seen == ["Bearer fresh-token"]

    @pytest.mark.asyncio
    async def test_http_error_raises_nlu_error(self):
        client = make_client(lambda request: httpx.Response(403, text="permission denied"))
        with pytest.raises(NluError) as exc:
            await client.detect_intent("hello", "s1", "en-EN")
        assert "403" in str(exc.value)

    @pytest.mark.asyncio
    async def test_transport_error_raises_nlu_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        with pytest.raises(NluError):
            await make_client(handler).detect_intent("hello", "s1", "en-EN")

    @pytest.mark.asyncio
    async def test_malformed_body_raises_nlu_error(self):
        client = make_client(lambda request: httpx.Response(200, json={"unexpected": True}))
        with pytest.raises(NluError):
            await client.detect_intent("hello", "s1", "en-EN")
