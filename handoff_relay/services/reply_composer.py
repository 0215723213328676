from typing import Callable

from handoff_relay.schemas.tiledesk import OutboundMessage
from handoff_relay.services.escalation_service import (
    AcceptEscalation,
    DenyEscalation,
    EscalationDecision,
    Reply,
    ReplyThenEscalate,
)
from handoff_relay.services.markup_parser import parse_reply

MarkupParser = Callable[[str], OutboundMessage]


def compose(decision: EscalationDecision, parser: MarkupParser = parse_reply) -> list[OutboundMessage]:
    """Turn a decision into the ordered messages to deliver."""
    if isinstance(decision, ReplyThenEscalate):
        return [
            OutboundMessage(text=decision.warning_text),
            OutboundMessage(text=decision.directive),
        ]

    if isinstance(decision, Reply):
        if decision.rich:
            return [parser(decision.text)]
        return [OutboundMessage(text=decision.text)]

    if isinstance(decision, (AcceptEscalation, DenyEscalation)):
        return [OutboundMessage(text=decision.text)]

    raise TypeError(f"Unknown decision type: {type(decision).__name__}")
