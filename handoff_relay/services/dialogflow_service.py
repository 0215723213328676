import asyncio
import json
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import quote

import httpx
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

from handoff_relay.config import Settings
from handoff_relay.logging_config import get_logger

logger = get_logger("dialogflow_service")

DIALOGFLOW_SCOPES = ["https://www.googleapis.com/auth/dialogflow"]


class CredentialsError(Exception):
    def __init__(self, bot_id: str, message: str):
        self.bot_id = bot_id
        self.message = message
        super().__init__(f"Credentials for bot {bot_id}: {message}")


class NluError(Exception):
    pass


@dataclass(frozen=True)
class NluResult:
    query_text: str
    intent_name: str
    is_fallback: bool
    confidence: float
    fulfillment_text: str
    language_code: str

    @classmethod
    def from_query_result(cls, query_result: dict) -> "NluResult":
        intent = query_result.get("intent") or {}
        return cls(
            query_text=query_result.get("queryText", ""),
            intent_name=intent.get("displayName", ""),
            is_fallback=bool(intent.get("isFallback", False)),
            confidence=float(query_result.get("intentDetectionConfidence", 0.0)),
            fulfillment_text=query_result.get("fulfillmentText", ""),
            language_code=query_result.get("languageCode", ""),
        )


def load_bot_credentials(settings: Settings, bot_id: str) -> dict[str, Any]:
    """Resolve service-account credentials for a bot. Raises CredentialsError."""
    raw = settings.bot_credentials.get(bot_id)
    if raw is None:
        raise CredentialsError(bot_id, "not configured")

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CredentialsError(bot_id, f"invalid JSON ({e})") from e

    if not isinstance(raw, dict):
        raise CredentialsError(bot_id, "expected a JSON object")
    if not raw.get("project_id"):
        raise CredentialsError(bot_id, "missing project_id")
    return raw


class DialogflowClient:
    """Dialogflow ES v2 detectIntent client authenticated with a service account."""

    BASE_URL = "https://dialogflow.googleapis.com/v2"

    def __init__(
        self,
        project_id: str,
        credentials: Any,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.project_id = project_id
        self.credentials = credentials
        self.timeout = timeout
        self.transport = transport
        self._token_lock = asyncio.Lock()

    @classmethod
    def from_service_account_info(cls, info: dict[str, Any], timeout: float = 30.0) -> "DialogflowClient":
        credentials = service_account.Credentials.from_service_account_info(info, scopes=DIALOGFLOW_SCOPES)
        return cls(project_id=info["project_id"], credentials=credentials, timeout=timeout)

    def session_url(self, session_id: str) -> str:
        session = quote(session_id, safe="")
        return f"{self.BASE_URL}/projects/{self.project_id}/agent/sessions/{session}:detectIntent"

    async def _access_token(self) -> str:
        async with self._token_lock:
            if not self.credentials.valid:
                # google-auth refresh is blocking
                await asyncio.to_thread(self.credentials.refresh, GoogleAuthRequest())
            return self.credentials.token

    async def detect_intent(self, text: str, session_id: str, language_code: str) -> NluResult:
        """Run one text query against the agent. Raises NluError on any failure."""
        payload = {
            "queryInput": {
                "text": {
                    "text": text,
                    "languageCode": language_code,
                }
            }
        }

        try:
            token = await self._access_token()
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    self.session_url(session_id),
                    headers={"Authorization": f"Bearer {token}"},
                    json=payload,
                )
        except Exception as e:
            raise NluError(f"Dialogflow request failed: {e}") from e

        if response.status_code != 200:
            raise NluError(f"Dialogflow API error: {response.status_code} - {response.text}")

        try:
            query_result = response.json()["queryResult"]
        except (ValueError, KeyError) as e:
            raise NluError(f"Malformed Dialogflow response: {e}") from e

        result = NluResult.from_query_result(query_result)
        logger.info(
            "Query result",
            extra={
                "context": {
                    "session_id": session_id,
                    "intent": result.intent_name,
                    "is_fallback": result.is_fallback,
                    "confidence": result.confidence,
                }
            },
        )
        return result


def build_dialogflow_client(bot_id: str, credentials: dict[str, Any], settings: Settings) -> DialogflowClient:
    """Create the NLU client for a bot. Raises CredentialsError for unusable keys."""
    try:
        return DialogflowClient.from_service_account_info(credentials, timeout=settings.nlu_timeout_seconds)
    except (ValueError, KeyError) as e:
        raise CredentialsError(bot_id, f"unusable service account ({e})") from e


class DialogflowClientCache:
    """One client per bot, so access tokens are reused until they expire."""

    def __init__(self, builder=build_dialogflow_client):
        self._builder = builder
        self._clients: dict[str, DialogflowClient] = {}

    def __len__(self) -> int:
        return len(self._clients)

    def __call__(self, bot_id: str, credentials: dict[str, Any], settings: Settings) -> DialogflowClient:
        client = self._clients.get(bot_id)
        if client is None:
            client = self._builder(bot_id, credentials, settings)
            self._clients[bot_id] = client
            logger.info(f"NLU client created for bot {bot_id}", extra={"context": {"bot_id": bot_id}})
        return client
