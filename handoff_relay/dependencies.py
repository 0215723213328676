from datetime import datetime
from typing import Callable, Optional

from fastapi import Depends, Request

from handoff_relay.config import Settings, settings
from handoff_relay.services.business_hours import BusinessHoursPolicy
from handoff_relay.services.fallback_tracker import FallbackTracker
from handoff_relay.services.relay_service import NluClientFactory
from handoff_relay.services.tiledesk_service import TiledeskService


def get_settings() -> Settings:
    return settings


def get_fallback_tracker(request: Request) -> FallbackTracker:
    return request.app.state.fallback_tracker


def get_business_hours_policy(request: Request) -> BusinessHoursPolicy:
    return request.app.state.business_hours_policy


def get_nlu_client_factory(request: Request) -> NluClientFactory:
    return request.app.state.nlu_clients


def get_chat_client(app_settings: Settings = Depends(get_settings)) -> TiledeskService:
    return TiledeskService(api_url=app_settings.chat_api_url, timeout=app_settings.delivery_timeout_seconds)


def get_clock() -> Optional[Callable[[], datetime]]:
    """None means the real wall clock."""
    return None
