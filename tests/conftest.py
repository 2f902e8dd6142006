"""
Pytest configuration and shared fixtures for testing.
"""
import os
from contextlib import asynccontextmanager
from datetime import timedelta
from pathlib import Path

# Settings and the database engine are read at import time, so the
# environment must be in place before anything from app/ is imported.
_TEST_DB = Path(__file__).parent / "test.db"
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-pytest")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-for-pytest")
os.environ.setdefault("ENV", "test")
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DB}"
os.environ["SENTRY_DSN"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import sessionmaker  # noqa: E402

from app.core.auth.security import create_access_token, hash_password  # noqa: E402
from app.core.datetime_utils import utc_now  # noqa: E402
from app.main import app  # noqa: E402
from app.models import (  # noqa: E402
    Base,
    SessionState,
    Test,
    TestDifficulty,
    TestSession,
    User,
    get_db,
)
from app.ratelimit import InMemoryStorage, RateLimiter  # noqa: E402

TEST_PASSWORD = "Password123"


@asynccontextmanager
async def _test_lifespan(app):
    """No-op lifespan for tests.

    Skips error tracking initialization.
    """
    yield


# Neutralize the production lifespan on the singleton app.
app.router.lifespan_context = _test_lifespan


def create_test_application():
    """Create a fresh app instance with the lifespan disabled."""
    from app.main import create_application

    test_app = create_application()
    test_app.router.lifespan_context = _test_lifespan
    return test_app


# Sync engine for fixtures; the async engine serves the endpoints. Both point
# at the same file so fixture data is visible to requests.
SQLALCHEMY_DATABASE_URL = f"sqlite:///{_TEST_DB}"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

ASYNC_SQLALCHEMY_DATABASE_URL = f"sqlite+aiosqlite:///{_TEST_DB}"
async_test_engine = create_async_engine(
    ASYNC_SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
AsyncTestingSessionLocal = async_sessionmaker(
    async_test_engine, class_=AsyncSession, expire_on_commit=False
)


def mc_question(question_id, correct="a", required=True, category=None, points=None):
    """Multiple-choice question dict with options a/b/c; ``correct`` is flagged."""
    question = {
        "id": question_id,
        "text": f"Question {question_id}",
        "type": "multiple-choice",
        "options": [
            {"id": v, "text": v.upper(), "value": v, "isCorrect": v == correct}
            for v in ("a", "b", "c")
        ],
        "required": required,
    }
    if category is not None:
        question["category"] = category
    if points is not None:
        question["points"] = points
    return question


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database for each test.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
async def async_db(db_session):
    """Async session on the test database, for calling core functions directly."""
    async with AsyncTestingSessionLocal() as session:
        yield session


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database dependency override.

    Each test also gets a fresh rate limiter so quotas never leak between
    tests.
    """

    async def override_get_db():
        async with AsyncTestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.rate_limiter = RateLimiter(storage=InMemoryStorage())
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _make_user(db_session, email, name):
    user = User(
        email=email,
        name=name,
        password_hash=hash_password(TEST_PASSWORD),
        preferences={"language": "ko", "theme": "system"},
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def test_user(db_session):
    """
    Create a test user in the database.
    """
    return _make_user(db_session, "test@example.com", "Test User")


@pytest.fixture
def other_user(db_session):
    return _make_user(db_session, "other@example.com", "Other User")


def _headers_for(user):
    token = create_access_token(user.id, user.email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(test_user):
    """
    Create authentication headers for test user.
    """
    return _headers_for(test_user)


@pytest.fixture
def other_auth_headers(other_user):
    return _headers_for(other_user)


def _make_test(db_session, **fields):
    test = Test(**fields)
    db_session.add(test)
    db_session.commit()
    db_session.refresh(test)
    return test


@pytest.fixture
def sample_test(db_session):
    """Untimed test with two required multiple-choice questions."""
    return _make_test(
        db_session,
        title="Logic and Language",
        description="Two quick questions",
        category="reasoning",
        difficulty=TestDifficulty.EASY,
        tags=["quick"],
        questions=[
            mc_question("q1", correct="a", category="logic"),
            mc_question("q2", correct="b", category="verbal"),
        ],
    )


@pytest.fixture
def timed_test(db_session):
    """Ten-minute test with one optional question."""
    return _make_test(
        db_session,
        title="Speed Round",
        category="speed",
        difficulty=TestDifficulty.HARD,
        questions=[mc_question("t1", required=False)],
        time_limit=10,
    )


@pytest.fixture
def rating_test(db_session):
    """Mixed test: a rating question, a multiple-choice one and a text one."""
    return _make_test(
        db_session,
        title="Work Style",
        category="personality",
        difficulty=TestDifficulty.MEDIUM,
        is_mobile_optimized=False,
        questions=[
            {
                "id": "r1",
                "text": "I enjoy planning ahead",
                "type": "rating",
                "options": [
                    {"id": str(n), "text": str(n), "value": n} for n in range(1, 6)
                ],
                "required": True,
                "category": "planning",
                "scale": 5,
            },
            mc_question("m1", correct="c", required=False, category="logic"),
            {
                "id": "x1",
                "text": "Describe your ideal team",
                "type": "text",
                "required": False,
                "category": "planning",
            },
        ],
    )


@pytest.fixture
def inactive_test(db_session):
    return _make_test(
        db_session,
        title="Retired",
        questions=[mc_question("z1")],
        is_active=False,
    )


@pytest.fixture
def expired_session(db_session, test_user, sample_test):
    """An active session whose expiry has already passed."""
    now = utc_now()
    session = TestSession(
        user_id=test_user.id,
        test_id=sample_test.id,
        status=SessionState.ACTIVE,
        current_question=1,
        answers=[],
        time_spent=30,
        device_info={},
        last_activity=now - timedelta(days=2),
        expires_at=now - timedelta(hours=1),
    )
    db_session.add(session)
    db_session.commit()
    db_session.refresh(session)
    return session


@pytest.fixture
def make_answer():
    """Factory for wire-format answers."""

    def _answer(question_id, value, time_spent=5):
        return {
            "questionId": question_id,
            "value": value,
            "timeSpent": time_spent,
            "timestamp": utc_now().isoformat(),
        }

    return _answer


@pytest.fixture
def mobile_device():
    return {
        "userAgent": "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X)",
        "screenWidth": 390,
        "screenHeight": 844,
        "devicePixelRatio": 3,
        "platform": "iPhone",
        "isMobile": True,
        "isTablet": False,
        "connectionType": "4g",
    }
