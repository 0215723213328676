from typing import Iterable, Optional

import httpx

from handoff_relay.logging_config import get_logger
from handoff_relay.schemas.tiledesk import ChatbotWebhookRequest, OutboundMessage

logger = get_logger("tiledesk_service")


class TiledeskService:
    """Delivers bot messages into a chat platform conversation."""

    def __init__(
        self,
        api_url: str = "https://api.tiledesk.com/v2",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def messages_url(self, project_id: str, request_id: str) -> str:
        return f"{self.api_url}/{project_id}/requests/{request_id}/messages"

    async def send_message(self, conversation: ChatbotWebhookRequest, message: OutboundMessage) -> bool:
        """Send one message. Returns False on failure, never raises."""
        if not conversation.project_id:
            logger.error(f"No project id for request {conversation.request_id}, message dropped")
            return False

        url = self.messages_url(conversation.project_id, conversation.request_id)
        headers = {"Content-Type": "application/json"}
        if conversation.token:
            headers["Authorization"] = conversation.token

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(url, headers=headers, json=message.to_payload())
        except Exception as e:
            logger.error(f"Chat platform API error: {e}", extra={"context": {"request_id": conversation.request_id}})
            return False

        if response.status_code >= 400:
            logger.error(
                f"Message rejected: {response.status_code} - {response.text}",
                extra={"context": {"request_id": conversation.request_id}},
            )
            return False

        logger.info(f"Message sent: {message.text[:50]}", extra={"context": {"request_id": conversation.request_id}})
        return True


async def deliver_messages(
    chat: TiledeskService,
    conversation: ChatbotWebhookRequest,
    messages: Iterable[OutboundMessage],
) -> list[bool]:
    """Send messages one after another, continuing past failed ones."""
    results = []
    for message in messages:
        results.append(await chat.send_message(conversation, message))
    return results
