from enum import Enum
from typing import Any, Callable

from handoff_relay.config import Settings
from handoff_relay.logging_config import get_logger
from handoff_relay.schemas.tiledesk import ChatbotWebhookRequest, OutboundMessage
from handoff_relay.services.dialogflow_service import CredentialsError, NluError, load_bot_credentials
from handoff_relay.services.escalation_service import decide_fallback_handoff, decide_reply
from handoff_relay.services.fallback_tracker import FallbackTracker
from handoff_relay.services.reply_composer import compose
from handoff_relay.services.result import CREDENTIALS_ERROR, NLU_ERROR, Result
from handoff_relay.services.tiledesk_service import TiledeskService, deliver_messages

logger = get_logger("relay_service")

# (bot_id, credentials, settings) -> client exposing async detect_intent()
NluClientFactory = Callable[[str, dict, Settings], Any]


class ReplyFlow(str, Enum):
    PLAIN = "plain"
    MICROLANG = "microlang"
    FALLBACK_HANDOFF = "fallback_handoff"


async def relay_message(
    flow: ReplyFlow,
    bot_id: str,
    conversation: ChatbotWebhookRequest,
    settings: Settings,
    tracker: FallbackTracker,
    nlu_factory: NluClientFactory,
    chat: TiledeskService,
) -> Result[list[OutboundMessage]]:
    """
    Query the NLU service with the user's text and deliver the bot reply.

    The conversation's request id doubles as the NLU session id and the
    fallback tracker key. Credential and NLU failures are logged and
    returned as failed results; nothing is delivered and the fallback count
    is left as it was.
    """
    context = {"bot_id": bot_id, "request_id": conversation.request_id, "flow": flow.value}

    try:
        credentials = load_bot_credentials(settings, bot_id)
        nlu = nlu_factory(bot_id, credentials, settings)
        result = await nlu.detect_intent(conversation.text, conversation.request_id, settings.nlu_language_code)
    except CredentialsError as e:
        logger.error(f"Cannot load credentials: {e.message}", extra={"context": context})
        return Result.from_exception(e, CREDENTIALS_ERROR)
    except NluError as e:
        logger.error(f"NLU query failed: {e}", extra={"context": context})
        return Result.from_exception(e, NLU_ERROR)

    if flow == ReplyFlow.FALLBACK_HANDOFF:
        decision = decide_fallback_handoff(
            tracker,
            conversation.request_id,
            result,
            max_fallbacks=settings.max_fallbacks,
            directive=settings.handoff_directive,
            language_code=settings.nlu_language_code,
            confidence_threshold=settings.fallback_confidence_threshold,
        )
    else:
        decision = decide_reply(result, rich=flow == ReplyFlow.MICROLANG)

    messages = compose(decision)
    sent = await deliver_messages(chat, conversation, messages)
    if not all(sent):
        logger.warning(
            f"{sent.count(False)} of {len(sent)} messages not delivered",
            extra={"context": context},
        )
    return Result.success(messages)


async def run_relay_task(**kwargs) -> None:
    """Background entry point; the HTTP response is already sent, so errors stop here."""
    try:
        await relay_message(**kwargs)
    except Exception as e:
        logger.error(
            f"Relay task failed: {e}",
            exc_info=True,
            extra={"context": {"bot_id": kwargs.get("bot_id"), "flow": getattr(kwargs.get("flow"), "value", None)}},
        )
