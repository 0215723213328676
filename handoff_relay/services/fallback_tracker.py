"""Per-conversation counter of consecutive fallback NLU results."""

import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional, Tuple

from handoff_relay.logging_config import get_logger

logger = get_logger("fallback_tracker")


@dataclass
class ConversationSession:
    session_id: str
    consecutive_fallbacks: int = 0


class FallbackTracker:
    """
    Registry of conversation sessions and their consecutive fallback counts.

    Sessions are created on first observation and live as long as the
    tracker does. With ``max_sessions`` set, the least recently observed
    session is evicted once the bound is exceeded.

    All mutations happen under a single lock, so a threshold check and the
    reset it triggers cannot interleave with another observation of the same
    session.
    """

    def __init__(self, max_sessions: Optional[int] = None):
        if max_sessions is not None and max_sessions < 1:
            raise ValueError("max_sessions must be a positive integer")
        self.max_sessions = max_sessions
        self._sessions: "OrderedDict[str, ConversationSession]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _session(self, session_id: str) -> ConversationSession:
        session = self._sessions.get(session_id)
        if session is None:
            session = ConversationSession(session_id=session_id)
            self._sessions[session_id] = session
            self._evict()
        else:
            self._sessions.move_to_end(session_id)
        return session

    def _evict(self) -> None:
        if self.max_sessions is None:
            return
        while len(self._sessions) > self.max_sessions:
            evicted_id, _ = self._sessions.popitem(last=False)
            logger.debug(f"Evicted fallback session {evicted_id}")

    def _apply(self, session: ConversationSession, is_fallback: bool) -> int:
        if is_fallback:
            session.consecutive_fallbacks += 1
        else:
            session.consecutive_fallbacks = 0
        return session.consecutive_fallbacks

    def observe(self, session_id: str, is_fallback: bool) -> int:
        """Record one NLU result and return the current consecutive count."""
        with self._lock:
            return self._apply(self._session(session_id), is_fallback)

    def observe_with_threshold(self, session_id: str, is_fallback: bool, threshold: int) -> Tuple[int, bool]:
        """
        Observe a result and reset the count if it reached ``threshold``.

        Returns (count observed, triggered). When triggered the stored count
        is already back to 0.
        """
        with self._lock:
            session = self._session(session_id)
            count = self._apply(session, is_fallback)
            triggered = is_fallback and count == threshold
            if triggered:
                session.consecutive_fallbacks = 0
        if is_fallback:
            logger.info(
                f"Fallback count for {session_id} is {count}",
                extra={"context": {"session_id": session_id, "count": count, "triggered": triggered}},
            )
        return count, triggered

    def reset(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                session.consecutive_fallbacks = 0

    def count(self, session_id: str) -> int:
        with self._lock:
            session = self._sessions.get(session_id)
            return session.consecutive_fallbacks if session else 0
