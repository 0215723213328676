from typing import Any, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # bot id -> service-account credentials (dict or raw JSON string)
    bot_credentials: dict[str, Any] = {}

    nlu_language_code: str = "en-EN"
    nlu_timeout_seconds: float = 30.0

    max_fallbacks: int = Field(4, ge=1)
    fallback_confidence_threshold: Optional[float] = None
    tracker_max_sessions: Optional[int] = Field(None, ge=1)

    chat_api_url: str = "https://api.tiledesk.com/v2"
    delivery_timeout_seconds: float = 30.0

    handoff_directive: str = "\\agent"
    agent_request_intent: str = "talk to agent"

    business_hours: list[str] = ["09:00:00-13:00:00", "14:00:00-18:00:00"]
    business_closed_weekdays: list[int] = [5, 6]
    business_hours_offset_hours: float = 1.0
    business_timezone: Optional[str] = None
    contact_urls: dict[str, str] = {
        "it": "https://netvalue.eu/contatti/",
        "en": "https://netvalue.eu/en/contact-us/",
    }

    host: str = "0.0.0.0"
    port: int = 3000
    cors_allow_origins: str = "*"
    log_level: str = "INFO"
    log_format: str = "json"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
