"""
Test session management.

One user has at most one active, unexpired session per test. That rule is
enforced by lookup-before-create rather than a database constraint, so every
lookup here filters on ``status == ACTIVE`` and ``expires_at > now``.

Create, update and abandon commit their own work. Finalize only flushes, so
that submission can persist the result and the completed session in one
transaction.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.datetime_utils import ensure_timezone_aware, utc_now
from app.core.session_state import (
    CurrentQuestionOutOfRange,
    SessionEvent,
    SessionNotFoundError,
    TestNotFoundError,
    transition,
)
from app.models import SessionState, Test, TestSession

logger = logging.getLogger(__name__)

# Fields an autosave may change. Anything else in a patch is ignored.
PATCHABLE_FIELDS = (
    "current_question",
    "answers",
    "time_spent",
    "device_info",
    "last_activity",
)


def compute_expiry(time_limit_minutes: Optional[int], now: datetime) -> datetime:
    """
    Compute when a new session expires.

    Timed tests get their time limit plus a grace period, but never less than
    the minimum window; untimed tests get the minimum window.
    """
    hours: float = settings.SESSION_MIN_EXPIRY_HOURS
    if time_limit_minutes:
        hours = max(
            time_limit_minutes / 60 + settings.SESSION_GRACE_HOURS,
            settings.SESSION_MIN_EXPIRY_HOURS,
        )
    return now + timedelta(hours=hours)


def dedupe_answers(answers: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Keep one answer per question id.

    The last occurrence wins; order follows each question's first appearance.
    """
    by_question: dict[str, dict[str, Any]] = {}
    for answer in answers:
        # Reassigning an existing key keeps its original position
        by_question[answer["questionId"]] = answer
    return list(by_question.values())


async def get_active_test(db: AsyncSession, test_id: str) -> Test:
    """
    Load an active test.

    Raises:
        TestNotFoundError: If the test does not exist or is inactive.
    """
    result = await db.execute(
        select(Test).where(Test.id == test_id, Test.is_active.is_(True))
    )
    test = result.scalar_one_or_none()
    if test is None:
        raise TestNotFoundError(test_id)
    return test


async def find_active_session(
    db: AsyncSession,
    user_id: str,
    test_id: str,
    session_id: Optional[str] = None,
) -> Optional[TestSession]:
    """Return the user's active, unexpired session for a test, if any."""
    query = select(TestSession).where(
        TestSession.user_id == user_id,
        TestSession.test_id == test_id,
        TestSession.status == SessionState.ACTIVE,
        TestSession.expires_at > utc_now(),
    )
    if session_id is not None:
        query = query.where(TestSession.id == session_id)

    result = await db.execute(query.order_by(TestSession.created_at.desc()).limit(1))
    return result.scalar_one_or_none()


async def create_session(
    db: AsyncSession,
    user_id: str,
    test_id: str,
    device_info: Optional[dict[str, Any]] = None,
    expires_at: Optional[datetime] = None,
) -> tuple[TestSession, bool]:
    """
    Start a session, or return the one already in progress.

    Returns:
        Tuple of (session, reused). ``reused`` is True when an existing active
        session was returned unchanged.

    Raises:
        TestNotFoundError: If the test does not exist or is inactive.
    """
    test = await get_active_test(db, test_id)

    existing = await find_active_session(db, user_id, test_id)
    if existing is not None:
        return existing, True

    now = utc_now()
    session = TestSession(
        user_id=user_id,
        test_id=test_id,
        status=SessionState.ACTIVE,
        current_question=0,
        answers=[],
        time_spent=0,
        device_info=device_info or {},
        last_activity=now,
        expires_at=(
            ensure_timezone_aware(expires_at)
            if expires_at is not None
            else compute_expiry(test.time_limit, now)
        ),
    )
    db.add(session)
    await db.commit()
    await db.refresh(session)

    logger.info(
        f"Created test session {session.id} for user {user_id} on test {test_id}"
    )
    return session, False


async def get_session(
    db: AsyncSession, user_id: str, test_id: str
) -> Optional[TestSession]:
    """
    Return the active session for (user, test), or None.

    "No active session" is a normal answer, not an error.

    Raises:
        TestNotFoundError: If the test does not exist or is inactive.
    """
    await get_active_test(db, test_id)
    return await find_active_session(db, user_id, test_id)


async def update_session(
    db: AsyncSession,
    session_id: str,
    user_id: str,
    test_id: str,
    patch: dict[str, Any],
) -> TestSession:
    """
    Apply an autosave patch.

    Only keys present in ``patch`` change. ``last_activity`` defaults to now.
    Applying the same patch twice leaves the same state, except that
    ``last_activity`` moves forward when the patch does not carry one.

    Raises:
        SessionNotFoundError: If no active, unexpired session matches.
        CurrentQuestionOutOfRange: If ``current_question`` falls outside the test.
    """
    session = await find_active_session(db, user_id, test_id, session_id)
    if session is None:
        raise SessionNotFoundError(session_id)

    transition(session.status, SessionEvent.AUTOSAVE)

    changes = {k: v for k, v in patch.items() if k in PATCHABLE_FIELDS}

    if changes.get("current_question") is not None:
        test = await db.get(Test, test_id)
        question_count = len(test.questions or []) if test is not None else 0
        current_question = changes["current_question"]
        if not 0 <= current_question < question_count:
            raise CurrentQuestionOutOfRange(current_question, question_count)
        session.current_question = current_question

    if changes.get("answers") is not None:
        session.answers = dedupe_answers(changes["answers"])

    if changes.get("time_spent") is not None:
        session.time_spent = changes["time_spent"]

    if changes.get("device_info") is not None:
        session.device_info = changes["device_info"]

    last_activity = changes.get("last_activity")
    session.last_activity = (
        ensure_timezone_aware(last_activity) if last_activity is not None else utc_now()
    )

    await db.commit()
    await db.refresh(session)
    return session


async def abandon_sessions(db: AsyncSession, user_id: str, test_id: str) -> int:
    """
    Delete every non-completed session for (user, test), expired ones included.

    Returns:
        Number of sessions deleted (0 is not an error).
    """
    result = await db.execute(
        select(TestSession).where(
            TestSession.user_id == user_id,
            TestSession.test_id == test_id,
            TestSession.status != SessionState.COMPLETED,
        )
    )
    sessions = result.scalars().all()

    for session in sessions:
        transition(session.status, SessionEvent.ABANDON)
        await db.delete(session)

    await db.commit()
    return len(sessions)


async def finalize_session(
    db: AsyncSession,
    user_id: str,
    test_id: str,
    session_id: Optional[str] = None,
) -> Optional[TestSession]:
    """
    Mark the referenced session completed. Does not commit.

    A missing ``session_id``, or one that no longer refers to an active,
    unexpired session, is a no-op.

    Returns:
        The completed session, or None if nothing was finalized.
    """
    if session_id is None:
        return None

    session = await find_active_session(db, user_id, test_id, session_id)
    if session is None:
        logger.info(
            f"No active session {session_id} to finalize for user {user_id} on test {test_id}"
        )
        return None

    next_state = transition(session.status, SessionEvent.FINALIZE)
    session.status = next_state
    session.last_activity = utc_now()
    await db.flush()
    return session
