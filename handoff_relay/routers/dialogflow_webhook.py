from datetime import datetime
from typing import Callable, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from handoff_relay.config import Settings
from handoff_relay.dependencies import get_business_hours_policy, get_clock, get_settings
from handoff_relay.logging_config import get_logger
from handoff_relay.schemas.dialogflow import FulfillmentWebhookRequest, FulfillmentWebhookResponse
from handoff_relay.services.business_hours import BusinessHoursPolicy, business_now
from handoff_relay.services.escalation_service import decide_agent_request

logger = get_logger("dialogflow_webhook")

router = APIRouter()


async def parse_fulfillment_request(request: Request) -> Optional[FulfillmentWebhookRequest]:
    """Returns None for payloads that are not a usable fulfillment call."""
    try:
        body = await request.json()
    except Exception as e:
        logger.warning(f"Unreadable fulfillment payload: {e}")
        return None

    try:
        return FulfillmentWebhookRequest.model_validate(body)
    except ValidationError as e:
        logger.warning(f"Fulfillment payload without intent: {e.error_count()} validation errors")
        return None


@router.post("/dfwebhook/{project_id}")
async def handle_fulfillment_webhook(
    project_id: str,
    request: Request,
    settings: Settings = Depends(get_settings),
    policy: BusinessHoursPolicy = Depends(get_business_hours_policy),
    clock: Optional[Callable[[], datetime]] = Depends(get_clock),
):
    """
    Answer "talk to agent" requests synchronously:
    - inside business hours -> handoff phrase with the directive token
    - outside -> agents unavailable message
    Any other intent gets an empty body, leaving the agent's own response in place.
    """
    try:
        fulfillment = await parse_fulfillment_request(request)
        if fulfillment is None:
            return {}

        query_result = fulfillment.queryResult
        logger.info(
            "Fulfillment received",
            extra={
                "context": {
                    "project_id": project_id,
                    "intent": query_result.intent.displayName,
                    "language_code": query_result.languageCode,
                }
            },
        )

        now = business_now(
            offset_hours=settings.business_hours_offset_hours,
            timezone_name=settings.business_timezone,
            clock=clock,
        )
        decision = decide_agent_request(
            intent_name=query_result.intent.displayName,
            language_code=query_result.languageCode,
            now=now,
            policy=policy,
            agent_intent=settings.agent_request_intent,
            directive=settings.handoff_directive,
            contact_urls=settings.contact_urls,
        )
        if decision is None:
            return {}

        return FulfillmentWebhookResponse(fulfillmentText=decision.text).model_dump()

    except Exception as e:
        logger.error(f"Fulfillment webhook error: {e}", exc_info=True, extra={"context": {"project_id": project_id}})
        return {}
