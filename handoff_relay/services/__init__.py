from handoff_relay.services.business_hours import (
    BusinessHoursPolicy,
    OpenInterval,
    business_now,
    is_open,
)
from handoff_relay.services.escalation_service import (
    AcceptEscalation,
    DenyEscalation,
    EscalationDecision,
    Reply,
    ReplyThenEscalate,
    decide_agent_request,
    decide_fallback_handoff,
)
from handoff_relay.services.fallback_tracker import (
    ConversationSession,
    FallbackTracker,
)
from handoff_relay.services.reply_composer import compose
