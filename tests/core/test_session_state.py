"""
Tests for the session state machine.
"""
import pytest

from app.core.session_state import (
    InvalidSessionTransition,
    SessionEvent,
    transition,
)
from libs.domain_types import SessionState


class TestTransition:
    """Tests for transition()."""

    def test_autosave_keeps_session_active(self):
        assert transition(SessionState.ACTIVE, SessionEvent.AUTOSAVE) == SessionState.ACTIVE

    def test_finalize_completes_session(self):
        assert (
            transition(SessionState.ACTIVE, SessionEvent.FINALIZE)
            == SessionState.COMPLETED
        )

    def test_abandon_deletes_session(self):
        assert transition(SessionState.ACTIVE, SessionEvent.ABANDON) is None

    @pytest.mark.parametrize("event", list(SessionEvent))
    def test_completed_session_is_terminal(self, event):
        with pytest.raises(InvalidSessionTransition) as exc_info:
            transition(SessionState.COMPLETED, event)

        assert exc_info.value.current == SessionState.COMPLETED
        assert exc_info.value.event == event
        assert "completed" in str(exc_info.value)
