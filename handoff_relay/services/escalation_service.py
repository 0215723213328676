from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from handoff_relay.logging_config import get_logger
from handoff_relay.services.business_hours import BusinessHoursPolicy, is_open
from handoff_relay.services.dialogflow_service import NluResult
from handoff_relay.services.fallback_tracker import FallbackTracker

logger = get_logger("escalation_service")

DEFAULT_LANGUAGE = "en"

MSG_FALLBACK_HANDOFF = {
    "en": "I really don't understand your questions, putting you in touch with an operator...",
    "it": "Non riesco proprio a capire le tue domande, ti metto in contatto con un operatore...",
}
MSG_HANDOFF_ACCEPTED = {
    "en": "We're handing you an agent... {directive}",
    "it": "Ti stiamo passando un agente... {directive}",
}
MSG_AGENTS_UNAVAILABLE = {
    "en": (
        "Agents are currently unavailable, please try again {when}. "
        "In the meantime, you can contact us via our form: {contact_url}"
    ),
    "it": (
        "Al momento gli agenti non sono disponibili, riprova {when}. "
        "Nel frattempo puoi contattarci tramite il nostro modulo: {contact_url}"
    ),
}
MSG_DAY_RANGE = {
    "en": "{first} through {last}",
    "it": "da {first} a {last}",
}
WEEKDAY_NAMES = {
    "en": ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"],
    "it": ["lunedì", "martedì", "mercoledì", "giovedì", "venerdì", "sabato", "domenica"],
}


@dataclass(frozen=True)
class Reply:
    text: str
    rich: bool = False


@dataclass(frozen=True)
class ReplyThenEscalate:
    warning_text: str
    directive: str


@dataclass(frozen=True)
class AcceptEscalation:
    text: str


@dataclass(frozen=True)
class DenyEscalation:
    text: str


EscalationDecision = Union[Reply, ReplyThenEscalate, AcceptEscalation, DenyEscalation]


def normalize_language(language_code: Optional[str]) -> str:
    """Map codes like "it-IT" or "IT" to a supported language, English otherwise."""
    if not language_code:
        return DEFAULT_LANGUAGE
    language = language_code.replace("_", "-").split("-")[0].lower()
    return language if language in MSG_HANDOFF_ACCEPTED else DEFAULT_LANGUAGE


def describe_days(policy: BusinessHoursPolicy, language: str) -> str:
    """Open weekdays as runs of consecutive days, e.g. "Monday through Friday"."""
    names = WEEKDAY_NAMES[language]
    runs: list[list[int]] = []
    for weekday in policy.open_weekdays():
        if runs and runs[-1][-1] == weekday - 1:
            runs[-1].append(weekday)
        else:
            runs.append([weekday])

    parts = []
    for run in runs:
        if len(run) == 1:
            parts.append(names[run[0]])
        else:
            parts.append(MSG_DAY_RANGE[language].format(first=names[run[0]], last=names[run[-1]]))
    return ", ".join(parts)


def decide_reply(result: NluResult, rich: bool = False) -> Reply:
    """Plain bot flow: forward the fulfillment text as is."""
    return Reply(text=result.fulfillment_text, rich=rich)


def counts_as_fallback(result: NluResult, confidence_threshold: Optional[float] = None) -> bool:
    if result.is_fallback:
        return True
    return confidence_threshold is not None and result.confidence < confidence_threshold


def decide_fallback_handoff(
    tracker: FallbackTracker,
    session_id: str,
    result: NluResult,
    max_fallbacks: int,
    directive: str,
    language_code: Optional[str] = None,
    confidence_threshold: Optional[float] = None,
) -> EscalationDecision:
    """
    Hand the conversation to an operator after ``max_fallbacks`` consecutive
    fallback results; any matched intent resets the run.
    """
    is_fallback = counts_as_fallback(result, confidence_threshold)
    count, triggered = tracker.observe_with_threshold(session_id, is_fallback, max_fallbacks)

    if triggered:
        logger.info(
            f"Fallback handoff for {session_id} after {count} consecutive fallbacks",
            extra={"context": {"session_id": session_id, "count": count}},
        )
        language = normalize_language(language_code)
        return ReplyThenEscalate(warning_text=MSG_FALLBACK_HANDOFF[language], directive=directive)

    return Reply(text=result.fulfillment_text)


def decide_agent_request(
    intent_name: Optional[str],
    language_code: Optional[str],
    now: datetime,
    policy: BusinessHoursPolicy,
    agent_intent: str,
    directive: str,
    contact_urls: Optional[dict[str, str]] = None,
) -> Optional[EscalationDecision]:
    """
    Answer an explicit request for a human agent.

    Returns None when the intent is not the agent request intent, so the
    caller leaves the fulfillment untouched.
    """
    if not intent_name or intent_name.strip().casefold() != agent_intent.strip().casefold():
        return None

    language = normalize_language(language_code)

    if is_open(now, policy):
        logger.info(f"Agent request accepted at {now.isoformat()}")
        return AcceptEscalation(text=MSG_HANDOFF_ACCEPTED[language].format(directive=directive))

    logger.info(f"Agent request outside business hours at {now.isoformat()}")
    contact_urls = contact_urls or {}
    contact_url = contact_urls.get(language) or contact_urls.get(DEFAULT_LANGUAGE, "")
    when = " ".join(part for part in (describe_days(policy, language), policy.describe_hours()) if part)
    return DenyEscalation(text=MSG_AGENTS_UNAVAILABLE[language].format(when=when, contact_url=contact_url))
