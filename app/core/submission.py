"""
Test submission.

Submission validates the answer set against the test, scores it, stores the
result and completes the session. The result insert, the session
finalization and the user's ``updated_at`` bump share a single commit, so a
failure anywhere leaves neither a result without a completed session nor a
completed session without a result.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.datetime_utils import utc_now
from app.core.scoring import (
    calculate_percentile,
    calculate_score,
    determine_submission_channel,
    generate_analysis,
)
from app.core.session_manager import dedupe_answers, finalize_session, get_active_test
from app.core.session_state import SessionLifecycleError
from app.models import Test, TestResult, TestSession, User

logger = logging.getLogger(__name__)


class MissingRequiredAnswers(SessionLifecycleError):
    """One or more required questions have no answer."""

    def __init__(self, missing_questions: list[str]):
        self.missing_questions = missing_questions
        super().__init__(f"Missing answers for {len(missing_questions)} required questions")


class TimeLimitExceeded(SessionLifecycleError):
    """The reported time spent is over the test's limit."""

    def __init__(self, time_spent: int, limit_seconds: int):
        self.time_spent = time_spent
        self.limit_seconds = limit_seconds
        super().__init__(f"Time spent {time_spent}s exceeds limit of {limit_seconds}s")


@dataclass
class SubmissionOutcome:
    result: TestResult
    test: Test
    session: Optional[TestSession]


def find_missing_required(
    answers: list[dict[str, Any]], questions: list[dict[str, Any]]
) -> list[str]:
    """Return ids of required questions with no answer, in question order."""
    answered = {a.get("questionId") for a in answers}
    return [
        q["id"] for q in questions if q.get("required") and q.get("id") not in answered
    ]


def check_time_limit(time_limit_minutes: Optional[int], time_spent: int) -> None:
    """
    Raises:
        TimeLimitExceeded: If the test is timed and ``time_spent`` is over it.
    """
    if not time_limit_minutes:
        return
    limit_seconds = time_limit_minutes * 60
    if time_spent > limit_seconds:
        raise TimeLimitExceeded(time_spent, limit_seconds)


async def submit_test(
    db: AsyncSession,
    user: User,
    test_id: str,
    answers: list[dict[str, Any]],
    time_spent: int,
    device_info: Optional[dict[str, Any]] = None,
    session_id: Optional[str] = None,
) -> SubmissionOutcome:
    """
    Score and store a completed attempt.

    Checks run in order: the test exists, required answers are present,
    then the time limit. Nothing is written when a check fails.

    Args:
        db: Database session
        user: The submitting user
        test_id: Test being submitted
        answers: Answer dicts in wire (camelCase) form
        time_spent: Total seconds the user spent
        device_info: Device snapshot in wire form
        session_id: Session to complete alongside the result, if any

    Returns:
        SubmissionOutcome with the stored result, the test and the completed
        session (None when no active session matched).

    Raises:
        TestNotFoundError: The test does not exist or is inactive.
        MissingRequiredAnswers: A required question was not answered.
        TimeLimitExceeded: ``time_spent`` is over the test's time limit.
    """
    test = await get_active_test(db, test_id)
    questions = test.questions or []
    answers = dedupe_answers(answers)

    missing = find_missing_required(answers, questions)
    if missing:
        raise MissingRequiredAnswers(missing)

    check_time_limit(test.time_limit, time_spent)

    score = calculate_score(answers, questions)
    percentile = await calculate_percentile(db, test_id, score)
    analysis = generate_analysis(answers, questions, score, percentile)

    result = TestResult(
        user_id=user.id,
        test_id=test_id,
        answers=answers,
        score=score,
        percentile=percentile,
        time_spent=time_spent,
        device_info=device_info or {},
        analysis=analysis,
        submitted_from=determine_submission_channel(device_info),
        network_type=(device_info or {}).get("connectionType"),
        completed_at=utc_now(),
    )
    db.add(result)

    session = await finalize_session(db, user.id, test_id, session_id)
    user.updated_at = utc_now()

    await db.commit()
    await db.refresh(result)

    logger.info(
        f"User {user.id} submitted test {test_id}: score={score}, "
        f"percentile={percentile}, result={result.id}"
    )
    return SubmissionOutcome(result=result, test=test, session=session)
