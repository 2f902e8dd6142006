"""
Tests for session lifecycle operations called directly on the database.
"""
from datetime import timedelta

import pytest

from app.core.datetime_utils import utc_now
from app.core.session_manager import (
    abandon_sessions,
    compute_expiry,
    create_session,
    dedupe_answers,
    finalize_session,
    get_session,
    update_session,
)
from app.core.session_state import (
    CurrentQuestionOutOfRange,
    SessionNotFoundError,
    TestNotFoundError,
)
from app.models import SessionState


def wire_answer(question_id, value):
    return {"questionId": question_id, "value": value, "timeSpent": 3}


class TestComputeExpiry:
    """Tests for compute_expiry()."""

    def test_untimed_gets_minimum_window(self):
        now = utc_now()
        assert compute_expiry(None, now) == now + timedelta(hours=24)

    def test_short_limit_gets_minimum_window(self):
        now = utc_now()
        assert compute_expiry(10, now) == now + timedelta(hours=24)

    def test_long_limit_adds_grace(self):
        now = utc_now()
        assert compute_expiry(30 * 60, now) == now + timedelta(hours=32)


class TestDedupeAnswers:
    """Tests for dedupe_answers()."""

    def test_last_occurrence_wins_in_first_position(self):
        answers = [wire_answer("q1", "a"), wire_answer("q2", "b"), wire_answer("q1", "c")]

        result = dedupe_answers(answers)

        assert [(a["questionId"], a["value"]) for a in result] == [("q1", "c"), ("q2", "b")]

    def test_empty(self):
        assert dedupe_answers([]) == []


class TestCreateAndGet:
    """Tests for create_session() and get_session()."""

    async def test_create_new(self, async_db, test_user, sample_test):
        session, reused = await create_session(async_db, test_user.id, sample_test.id)

        assert reused is False
        assert session.status == SessionState.ACTIVE
        assert session.current_question == 0
        assert session.answers == []

    async def test_create_twice_reuses(self, async_db, test_user, sample_test):
        first, _ = await create_session(async_db, test_user.id, sample_test.id)
        second, reused = await create_session(async_db, test_user.id, sample_test.id)

        assert reused is True
        assert second.id == first.id

    async def test_create_for_unknown_test(self, async_db, test_user):
        with pytest.raises(TestNotFoundError):
            await create_session(async_db, test_user.id, "missing")

    async def test_create_for_inactive_test(self, async_db, test_user, inactive_test):
        with pytest.raises(TestNotFoundError):
            await create_session(async_db, test_user.id, inactive_test.id)

    async def test_get_none_when_absent(self, async_db, test_user, sample_test):
        assert await get_session(async_db, test_user.id, sample_test.id) is None

    async def test_get_ignores_expired(
        self, async_db, test_user, sample_test, expired_session
    ):
        assert await get_session(async_db, test_user.id, sample_test.id) is None

    async def test_get_for_unknown_test_raises(self, async_db, test_user):
        with pytest.raises(TestNotFoundError):
            await get_session(async_db, test_user.id, "missing")


class TestUpdate:
    """Tests for update_session()."""

    async def test_partial_patch_keeps_other_fields(
        self, async_db, test_user, sample_test
    ):
        session, _ = await create_session(async_db, test_user.id, sample_test.id)
        await update_session(
            async_db,
            session.id,
            test_user.id,
            sample_test.id,
            {"current_question": 1, "answers": [wire_answer("q1", "a")]},
        )

        updated = await update_session(
            async_db, session.id, test_user.id, sample_test.id, {"time_spent": 45}
        )

        assert updated.current_question == 1
        assert updated.time_spent == 45
        assert updated.answers == [wire_answer("q1", "a")]

    async def test_same_patch_twice_is_idempotent(
        self, async_db, test_user, sample_test
    ):
        session, _ = await create_session(async_db, test_user.id, sample_test.id)
        patch = {
            "current_question": 1,
            "answers": [wire_answer("q2", "b")],
            "time_spent": 30,
            "last_activity": utc_now(),
        }

        once = await update_session(async_db, session.id, test_user.id, sample_test.id, patch)
        snapshot = (once.current_question, list(once.answers), once.time_spent, once.last_activity)
        twice = await update_session(async_db, session.id, test_user.id, sample_test.id, patch)

        assert (
            twice.current_question,
            twice.answers,
            twice.time_spent,
            twice.last_activity,
        ) == snapshot

    async def test_unknown_fields_are_ignored(self, async_db, test_user, sample_test):
        session, _ = await create_session(async_db, test_user.id, sample_test.id)

        updated = await update_session(
            async_db,
            session.id,
            test_user.id,
            sample_test.id,
            {"status": SessionState.COMPLETED, "user_id": "someone-else"},
        )

        assert updated.status == SessionState.ACTIVE
        assert updated.user_id == test_user.id

    async def test_last_activity_defaults_to_now(self, async_db, test_user, sample_test):
        session, _ = await create_session(async_db, test_user.id, sample_test.id)
        before = utc_now()

        updated = await update_session(
            async_db, session.id, test_user.id, sample_test.id, {"time_spent": 5}
        )

        assert updated.last_activity >= before - timedelta(seconds=1)

    async def test_replay_without_last_activity_only_moves_last_activity(
        self, async_db, test_user, sample_test
    ):
        session, _ = await create_session(async_db, test_user.id, sample_test.id)
        patch = {"current_question": 1, "time_spent": 30}

        once = await update_session(async_db, session.id, test_user.id, sample_test.id, patch)
        first_activity = once.last_activity
        snapshot = (once.current_question, once.time_spent, list(once.answers))
        twice = await update_session(async_db, session.id, test_user.id, sample_test.id, patch)

        assert (twice.current_question, twice.time_spent, twice.answers) == snapshot
        assert twice.last_activity >= first_activity

    @pytest.mark.parametrize("current_question", [-1, 2, 10])
    async def test_current_question_out_of_range(
        self, async_db, test_user, sample_test, current_question
    ):
        session, _ = await create_session(async_db, test_user.id, sample_test.id)

        with pytest.raises(CurrentQuestionOutOfRange) as exc_info:
            await update_session(
                async_db,
                session.id,
                test_user.id,
                sample_test.id,
                {"current_question": current_question},
            )

        assert exc_info.value.question_count == 2

    async def test_expired_session_not_found(
        self, async_db, test_user, sample_test, expired_session
    ):
        with pytest.raises(SessionNotFoundError):
            await update_session(
                async_db,
                expired_session.id,
                test_user.id,
                sample_test.id,
                {"time_spent": 5},
            )

    async def test_wrong_user_not_found(
        self, async_db, test_user, other_user, sample_test
    ):
        session, _ = await create_session(async_db, test_user.id, sample_test.id)

        with pytest.raises(SessionNotFoundError):
            await update_session(
                async_db, session.id, other_user.id, sample_test.id, {"time_spent": 5}
            )


class TestAbandon:
    """Tests for abandon_sessions()."""

    async def test_deletes_active_and_expired(
        self, async_db, test_user, sample_test, expired_session
    ):
        await create_session(async_db, test_user.id, sample_test.id)

        assert await abandon_sessions(async_db, test_user.id, sample_test.id) == 2
        assert await get_session(async_db, test_user.id, sample_test.id) is None

    async def test_nothing_to_delete(self, async_db, test_user, sample_test):
        assert await abandon_sessions(async_db, test_user.id, sample_test.id) == 0

    async def test_only_touches_own_sessions(
        self, async_db, test_user, other_user, sample_test
    ):
        await create_session(async_db, other_user.id, sample_test.id)

        assert await abandon_sessions(async_db, test_user.id, sample_test.id) == 0
        assert await get_session(async_db, other_user.id, sample_test.id) is not None


class TestFinalize:
    """Tests for finalize_session()."""

    async def test_completes_session(self, async_db, test_user, sample_test):
        session, _ = await create_session(async_db, test_user.id, sample_test.id)

        finalized = await finalize_session(
            async_db, test_user.id, sample_test.id, session.id
        )
        await async_db.commit()

        assert finalized.status == SessionState.COMPLETED
        assert await get_session(async_db, test_user.id, sample_test.id) is None

    async def test_without_session_id_is_noop(self, async_db, test_user, sample_test):
        assert await finalize_session(async_db, test_user.id, sample_test.id) is None

    async def test_expired_session_is_noop(
        self, async_db, test_user, sample_test, expired_session
    ):
        result = await finalize_session(
            async_db, test_user.id, sample_test.id, expired_session.id
        )

        assert result is None

    async def test_new_session_allowed_after_finalize(
        self, async_db, test_user, sample_test
    ):
        session, _ = await create_session(async_db, test_user.id, sample_test.id)
        await finalize_session(async_db, test_user.id, sample_test.id, session.id)
        await async_db.commit()

        fresh, reused = await create_session(async_db, test_user.id, sample_test.id)

        assert reused is False
        assert fresh.id != session.id
