"""
Test scoring and result analysis.

Scoring Model
=============
Each question is worth ``points`` (default 1; legacy tests call it
``maxPoints``). Per question type:

- **multiple-choice**: full points when the answer's value equals the value
  of the option flagged ``isCorrect``, otherwise zero
- **rating**: partial credit ``points * value / scale`` (``scale`` default 5),
  clamped to ``[0, points]``
- **text / boolean**: no automatic credit, but the points still count toward
  the maximum

The score is ``100 * awarded / max`` rounded to 2 decimals, or 0 for a test
with no points at all. These functions never raise on odd input: they run
after request validation, and anything unexpected simply earns zero.

Analysis
========
Questions are grouped by ``category`` (default ``"general"``). A category
scoring at least ``STRENGTH_THRESHOLD`` is a strength, one below
``WEAKNESS_THRESHOLD`` a weakness, and anything in between is neither.

Percentile
==========
The share of earlier results for the same test that scored strictly lower.
It is a snapshot taken at submission time and never recomputed.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.graceful_failure import async_graceful_failure
from app.models import SubmissionChannel, TestResult
from libs.domain_types import QuestionType

logger = logging.getLogger(__name__)

STRENGTH_THRESHOLD = 70.0
WEAKNESS_THRESHOLD = 50.0
DEFAULT_CATEGORY = "general"
DEFAULT_RATING_SCALE = 5
# Cold-start percentile when no earlier results exist, and fallback on error
DEFAULT_PERCENTILE = 50

Question = Dict[str, Any]
Answer = Dict[str, Any]


@dataclass
class CategoryScore:
    """Awarded and maximum points for one question category."""

    category: str
    awarded: float = 0.0
    possible: float = 0.0

    @property
    def score(self) -> float:
        if self.possible <= 0:
            return 0.0
        return round(self.awarded / self.possible * 100, 2)

    def as_dict(self) -> Dict[str, Any]:
        return {"category": self.category, "score": self.score, "maxScore": 100}


def question_points(question: Question) -> float:
    """Maximum points for a question."""
    points = question.get("points", question.get("maxPoints"))
    if isinstance(points, (int, float)) and not isinstance(points, bool) and points > 0:
        return float(points)
    return 1.0


def _score_multiple_choice(question: Question, answer: Answer, points: float) -> float:
    correct = next(
        (opt for opt in question.get("options") or [] if opt.get("isCorrect")),
        None,
    )
    if correct is not None and answer.get("value") == correct.get("value"):
        return points
    return 0.0


def _score_rating(question: Question, answer: Answer, points: float) -> float:
    value = answer.get("value")
    if isinstance(value, bool):
        return 0.0
    try:
        rating = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0

    scale = question.get("scale") or DEFAULT_RATING_SCALE
    if not isinstance(scale, (int, float)) or scale <= 0:
        scale = DEFAULT_RATING_SCALE
    return min(max(points * rating / scale, 0.0), points)


_SCORERS: Dict[str, Callable[[Question, Answer, float], float]] = {
    QuestionType.MULTIPLE_CHOICE.value: _score_multiple_choice,
    QuestionType.RATING.value: _score_rating,
}


def award_points(question: Question, answer: Optional[Answer]) -> float:
    """
    Points earned for one question.

    Args:
        question: Question definition from ``Test.questions``
        answer: The submitted answer for it, or None if unanswered

    Returns:
        Awarded points in ``[0, question_points(question)]``
    """
    if answer is None:
        return 0.0
    scorer = _SCORERS.get(question.get("type", ""))
    if scorer is None:
        return 0.0
    return scorer(question, answer, question_points(question))


def _answers_by_question(answers: List[Answer]) -> Dict[str, Answer]:
    # Later answers for the same question win
    return {a.get("questionId"): a for a in answers if isinstance(a, dict)}


def calculate_score(answers: List[Answer], questions: List[Question]) -> float:
    """
    Calculate a 0-100 score for an answer set.

    Example:
        >>> questions = [
        ...     {"id": "q1", "type": "multiple-choice",
        ...      "options": [{"id": "a", "value": "a", "isCorrect": True}]},
        ...     {"id": "q2", "type": "text"},
        ... ]
        >>> calculate_score([{"questionId": "q1", "value": "a"}], questions)
        50.0
    """
    by_question = _answers_by_question(answers)
    awarded = 0.0
    possible = 0.0
    for question in questions:
        possible += question_points(question)
        awarded += award_points(question, by_question.get(question.get("id")))

    if possible <= 0:
        return 0.0
    return round(awarded / possible * 100, 2)


def calculate_category_scores(
    answers: List[Answer], questions: List[Question]
) -> List[CategoryScore]:
    """Per-category awarded/possible points, in first-seen category order."""
    by_question = _answers_by_question(answers)
    categories: Dict[str, CategoryScore] = {}
    for question in questions:
        name = question.get("category") or DEFAULT_CATEGORY
        bucket = categories.setdefault(name, CategoryScore(category=name))
        bucket.possible += question_points(question)
        bucket.awarded += award_points(question, by_question.get(question.get("id")))
    return list(categories.values())


def generate_analysis(
    answers: List[Answer],
    questions: List[Question],
    score: float,
    percentile: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Derive strengths, weaknesses and recommendations from an answer set.

    Returns:
        Dict with ``strengths``, ``weaknesses``, ``recommendations``,
        ``categoryScores``, ``overallScore`` and ``percentileRank``.
    """
    category_scores = calculate_category_scores(answers, questions)

    strengths = [c.category for c in category_scores if c.score >= STRENGTH_THRESHOLD]
    weaknesses = [c.category for c in category_scores if c.score < WEAKNESS_THRESHOLD]

    return {
        "strengths": strengths,
        "weaknesses": weaknesses,
        "recommendations": [f"Consider improving {category}" for category in weaknesses],
        "categoryScores": [c.as_dict() for c in category_scores],
        "overallScore": score,
        "percentileRank": percentile if percentile is not None else DEFAULT_PERCENTILE,
    }


async def _count_percentile(db: AsyncSession, test_id: str, score: float) -> int:
    total = await db.scalar(
        select(func.count(TestResult.id)).where(TestResult.test_id == test_id)
    )
    if not total:
        return DEFAULT_PERCENTILE

    lower = await db.scalar(
        select(func.count(TestResult.id)).where(
            TestResult.test_id == test_id, TestResult.score < score
        )
    )
    return round(100 * (lower or 0) / total)


async def calculate_percentile(db: AsyncSession, test_id: str, score: float) -> int:
    """
    Percentile of ``score`` among earlier results for the test.

    Returns ``DEFAULT_PERCENTILE`` when there are no earlier results, and
    also when the lookup fails (the failure is logged and reported).

    The lookup runs in a savepoint, so a failed query rolls back only itself
    and the caller's transaction can still commit.
    """
    percentile = DEFAULT_PERCENTILE
    async with async_graceful_failure(
        "calculate percentile", logger, context={"test_id": test_id}
    ):
        async with db.begin_nested():
            percentile = await _count_percentile(db, test_id, score)
    return percentile


def determine_submission_channel(device_info: Optional[Dict[str, Any]]) -> SubmissionChannel:
    """Classify a submission as mobile, tablet or desktop from its device snapshot."""
    if device_info and device_info.get("isMobile"):
        return SubmissionChannel.MOBILE
    if device_info and device_info.get("isTablet"):
        return SubmissionChannel.TABLET
    return SubmissionChannel.DESKTOP
