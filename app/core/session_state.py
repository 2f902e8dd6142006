"""
Test session lifecycle states and transitions.

A session is ``ACTIVE`` from creation until it is either submitted
(``COMPLETED``) or abandoned. Abandonment deletes the row, so "deleted" has
no stored state of its own. Expiry is not a state either: an active session
whose ``expires_at`` has passed is simply invisible to lookups.

Every handler that changes a session goes through ``transition`` so the
legality rules live in one place.
"""
from enum import Enum
from typing import Optional

from libs.domain_types import SessionState


class SessionEvent(str, Enum):
    """Things that can happen to a session."""

    AUTOSAVE = "autosave"
    FINALIZE = "finalize"
    ABANDON = "abandon"


class SessionLifecycleError(Exception):
    """Base class for session lifecycle errors raised by the session manager."""


class TestNotFoundError(SessionLifecycleError):
    """The test does not exist or is inactive."""

    def __init__(self, test_id: str):
        self.test_id = test_id
        super().__init__(f"Test {test_id} not found or inactive")


class SessionNotFoundError(SessionLifecycleError):
    """No active, unexpired session matches the lookup."""

    def __init__(self, session_id: Optional[str] = None):
        self.session_id = session_id
        super().__init__(f"Session {session_id} not found or expired")


class InvalidSessionTransition(SessionLifecycleError):
    """The event is not allowed from the session's current state."""

    def __init__(self, current: SessionState, event: SessionEvent):
        self.current = current
        self.event = event
        super().__init__(f"Cannot {event.value} a session in state '{current.value}'")


class CurrentQuestionOutOfRange(SessionLifecycleError):
    """An autosave moved the cursor outside ``[0, question_count)``."""

    def __init__(self, current_question: int, question_count: int):
        self.current_question = current_question
        self.question_count = question_count
        super().__init__(
            f"currentQuestion {current_question} outside [0, {question_count})"
        )


# (state, event) -> next state. ``None`` means the row is deleted.
_TRANSITIONS: dict[tuple[SessionState, SessionEvent], Optional[SessionState]] = {
    (SessionState.ACTIVE, SessionEvent.AUTOSAVE): SessionState.ACTIVE,
    (SessionState.ACTIVE, SessionEvent.FINALIZE): SessionState.COMPLETED,
    (SessionState.ACTIVE, SessionEvent.ABANDON): None,
}


def transition(current: SessionState, event: SessionEvent) -> Optional[SessionState]:
    """
    Return the state a session moves to when ``event`` happens.

    Returns:
        The next state, or None when the session should be deleted.

    Raises:
        InvalidSessionTransition: For any event on a completed session.
    """
    try:
        return _TRANSITIONS[(current, event)]
    except KeyError:
        raise InvalidSessionTransition(current, event) from None
