from typing import Any, Optional

from pydantic import BaseModel


class SupportRequest(BaseModel):
    request_id: str
    id_project: Optional[str] = None


class ChatbotPayload(BaseModel):
    text: str = ""
    id_project: Optional[str] = None
    request: SupportRequest
    sender: Optional[str] = None
    senderFullname: Optional[str] = None
    attributes: Optional[dict[str, Any]] = None


class ChatbotWebhookRequest(BaseModel):
    """Body posted by the chat platform to an external bot endpoint."""

    payload: ChatbotPayload
    token: Optional[str] = None

    @property
    def request_id(self) -> str:
        return self.payload.request.request_id

    @property
    def project_id(self) -> Optional[str]:
        return self.payload.id_project or self.payload.request.id_project

    @property
    def text(self) -> str:
        return self.payload.text


class ChatbotAck(BaseModel):
    success: bool = True


class OutboundMessage(BaseModel):
    text: str
    type: Optional[str] = None
    attributes: Optional[dict[str, Any]] = None
    metadata: Optional[dict[str, Any]] = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)
