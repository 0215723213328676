from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from handoff_relay.config import settings
from handoff_relay.logging_config import get_logger, setup_logging
from handoff_relay.routers import bot, dialogflow_webhook
from handoff_relay.services.business_hours import BusinessHoursPolicy
from handoff_relay.services.dialogflow_service import DialogflowClientCache
from handoff_relay.services.fallback_tracker import FallbackTracker

setup_logging(settings.log_level, settings.log_format)

logger = get_logger("main")

app = FastAPI(
    title="Handoff Relay",
    description="Relays chat messages to an NLU agent and hands conversations over to human operators",
    version="0.1.0",
)

cors_origins = [origin.strip() for origin in settings.cors_allow_origins.split(",") if origin.strip()]
if not cors_origins:
    cors_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Process-wide state, created once and injected through dependencies
app.state.settings = settings
app.state.fallback_tracker = FallbackTracker(max_sessions=settings.tracker_max_sessions)
app.state.nlu_clients = DialogflowClientCache()
app.state.business_hours_policy = BusinessHoursPolicy.from_strings(
    settings.business_hours, settings.business_closed_weekdays
)

app.include_router(bot.router)
app.include_router(dialogflow_webhook.router)

logger.info(
    "Relay configured",
    extra={
        "context": {
            "bots": sorted(settings.bot_credentials),
            "max_fallbacks": settings.max_fallbacks,
            "business_hours": app.state.business_hours_policy.describe_hours(),
            "business_hours_offset_hours": settings.business_hours_offset_hours,
        }
    },
)


@app.get("/", response_class=PlainTextResponse)
async def root():
    return "Hello"


@app.get("/health")
async def health(request: Request):
    return {"status": "ok", "tracked_sessions": len(request.app.state.fallback_tracker)}
