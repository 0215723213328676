from handoff_relay.schemas.dialogflow import (
    FulfillmentWebhookRequest,
    FulfillmentWebhookResponse,
)
from handoff_relay.schemas.tiledesk import (
    ChatbotAck,
    ChatbotWebhookRequest,
    OutboundMessage,
)
