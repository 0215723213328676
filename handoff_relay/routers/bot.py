from fastapi import APIRouter, BackgroundTasks, Depends

from handoff_relay.config import Settings
from handoff_relay.dependencies import get_chat_client, get_fallback_tracker, get_nlu_client_factory, get_settings
from handoff_relay.logging_config import get_logger
from handoff_relay.schemas.tiledesk import ChatbotAck, ChatbotWebhookRequest
from handoff_relay.services.fallback_tracker import FallbackTracker
from handoff_relay.services.relay_service import NluClientFactory, ReplyFlow, run_relay_task
from handoff_relay.services.tiledesk_service import TiledeskService

logger = get_logger("bot_router")

router = APIRouter()


def _schedule_reply(
    flow: ReplyFlow,
    bot_id: str,
    body: ChatbotWebhookRequest,
    background_tasks: BackgroundTasks,
    settings: Settings,
    tracker: FallbackTracker,
    nlu_factory: NluClientFactory,
    chat: TiledeskService,
) -> ChatbotAck:
    logger.info(
        f"Bot message received for {bot_id}",
        extra={"context": {"bot_id": bot_id, "request_id": body.request_id, "flow": flow.value}},
    )
    # Runs after the acknowledgement has been sent
    background_tasks.add_task(
        run_relay_task,
        flow=flow,
        bot_id=bot_id,
        conversation=body,
        settings=settings,
        tracker=tracker,
        nlu_factory=nlu_factory,
        chat=chat,
    )
    return ChatbotAck(success=True)


@router.post("/bot/{bot_id}", response_model=ChatbotAck)
async def handle_bot(
    bot_id: str,
    body: ChatbotWebhookRequest,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_settings),
    tracker: FallbackTracker = Depends(get_fallback_tracker),
    nlu_factory: NluClientFactory = Depends(get_nlu_client_factory),
    chat: TiledeskService = Depends(get_chat_client),
):
    """Reply with the plain fulfillment text."""
    return _schedule_reply(ReplyFlow.PLAIN, bot_id, body, background_tasks, settings, tracker, nlu_factory, chat)


@router.post("/microlang-bot/{bot_id}", response_model=ChatbotAck)
async def handle_microlang_bot(
    bot_id: str,
    body: ChatbotWebhookRequest,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_settings),
    tracker: FallbackTracker = Depends(get_fallback_tracker),
    nlu_factory: NluClientFactory = Depends(get_nlu_client_factory),
    chat: TiledeskService = Depends(get_chat_client),
):
    """Reply with fulfillment text rendered through the micro language (buttons, images)."""
    return _schedule_reply(ReplyFlow.MICROLANG, bot_id, body, background_tasks, settings, tracker, nlu_factory, chat)


@router.post("/bot-fallback-handoff/{bot_id}", response_model=ChatbotAck)
async def handle_fallback_handoff_bot(
    bot_id: str,
    body: ChatbotWebhookRequest,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_settings),
    tracker: FallbackTracker = Depends(get_fallback_tracker),
    nlu_factory: NluClientFactory = Depends(get_nlu_client_factory),
    chat: TiledeskService = Depends(get_chat_client),
):
    """Reply normally, handing off to an operator after repeated fallbacks."""
    return _schedule_reply(
        ReplyFlow.FALLBACK_HANDOFF, bot_id, body, background_tasks, settings, tracker, nlu_factory, chat
    )
