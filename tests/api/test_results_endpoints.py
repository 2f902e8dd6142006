"""
Tests for result history endpoints.
"""
from datetime import timedelta

import pytest

from app.core.datetime_utils import utc_now
from app.models import SubmissionChannel, TestResult


def add_result(db_session, user, test, score, time_spent=60, days_ago=0):
    result = TestResult(
        user_id=user.id,
        test_id=test.id,
        answers=[{"questionId": "q1", "value": "a", "timeSpent": 5}],
        score=score,
        percentile=50,
        time_spent=time_spent,
        device_info={"isMobile": False},
        analysis={
            "strengths": [],
            "weaknesses": [],
            "recommendations": [],
            "categoryScores": [],
            "overallScore": score,
            "percentileRank": 50,
        },
        submitted_from=SubmissionChannel.DESKTOP,
        completed_at=utc_now() - timedelta(days=days_ago),
    )
    db_session.add(result)
    db_session.commit()
    db_session.refresh(result)
    return result


@pytest.fixture
def history(db_session, test_user, sample_test, rating_test):
    """Three results for the test user across two tests, oldest first."""
    return [
        add_result(db_session, test_user, sample_test, 40.0, time_spent=100, days_ago=3),
        add_result(db_session, test_user, rating_test, 70.0, time_spent=50, days_ago=2),
        add_result(db_session, test_user, sample_test, 90.0, time_spent=30, days_ago=1),
    ]


class TestListResults:
    """Tests for GET /api/results."""

    def test_empty_history(self, client, auth_headers):
        response = client.get("/api/results", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["results"] == []
        assert data["pagination"]["totalCount"] == 0
        assert data["statistics"] == {
            "totalTests": 0,
            "averageScore": 0,
            "averageTime": 0,
            "bestScore": 0,
            "worstScore": 0,
        }

    def test_newest_first_with_test_info(self, client, auth_headers, history):
        response = client.get("/api/results", headers=auth_headers)

        results = response.json()["data"]["results"]
        assert [r["score"] for r in results] == [90.0, 70.0, 40.0]
        assert results[1]["test"]["title"] == "Work Style"

    def test_statistics(self, client, auth_headers, history):
        response = client.get("/api/results", headers=auth_headers)

        stats = response.json()["data"]["statistics"]
        assert stats["totalTests"] == 3
        assert stats["averageScore"] == 66.67
        assert stats["averageTime"] == 60
        assert stats["bestScore"] == 90
        assert stats["worstScore"] == 40

    def test_pagination(self, client, auth_headers, history):
        response = client.get("/api/results?page=2&limit=2", headers=auth_headers)

        data = response.json()["data"]
        assert [r["score"] for r in data["results"]] == [40.0]
        assert data["pagination"] == {
            "currentPage": 2,
            "totalPages": 2,
            "totalCount": 3,
            "hasNextPage": False,
            "hasPreviousPage": True,
            "limit": 2,
        }

    def test_limit_is_clamped(
        self, client, auth_headers, db_session, test_user, sample_test
    ):
        for score in range(55):
            add_result(db_session, test_user, sample_test, float(score))

        response = client.get("/api/results?limit=100", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert len(data["results"]) == 50
        assert data["pagination"]["limit"] == 50
        assert data["pagination"]["totalPages"] == 2
        assert data["pagination"]["hasNextPage"] is True

    def test_limit_below_one_is_400(self, client, auth_headers):
        response = client.get("/api/results?limit=0", headers=auth_headers)

        assert response.status_code == 400

    def test_filter_by_test(self, client, auth_headers, history, rating_test):
        response = client.get(
            f"/api/results?testId={rating_test.id}", headers=auth_headers
        )

        data = response.json()["data"]
        assert [r["score"] for r in data["results"]] == [70.0]
        # Statistics ignore filters
        assert data["statistics"]["totalTests"] == 3

    def test_filter_by_date_range(self, client, auth_headers, history):
        from_date = (utc_now() - timedelta(days=2, hours=12)).isoformat()
        to_date = (utc_now() - timedelta(hours=12)).isoformat()

        response = client.get(
            "/api/results",
            params={"fromDate": from_date, "toDate": to_date},
            headers=auth_headers,
        )

        assert [r["score"] for r in response.json()["data"]["results"]] == [90.0, 70.0]

    def test_only_own_results(
        self, client, other_auth_headers, history
    ):
        response = client.get("/api/results", headers=other_auth_headers)

        assert response.json()["data"]["results"] == []

    def test_requires_auth(self, client):
        response = client.get("/api/results")

        assert response.status_code == 401


class TestGetResult:
    """Tests for GET /api/results/{result_id}."""

    def test_returns_detail(self, client, auth_headers, history):
        result = history[0]

        response = client.get(f"/api/results/{result.id}", headers=auth_headers)

        assert response.status_code == 200
        detail = response.json()["data"]["result"]
        assert detail["id"] == result.id
        assert detail["answers"][0]["questionId"] == "q1"
        assert detail["test"]["id"] == result.test_id
        assert detail["submittedFrom"] == "desktop"

    def test_unknown_result(self, client, auth_headers):
        response = client.get("/api/results/missing", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["error"] == "Result not found"

    def test_other_users_result_is_404(self, client, other_auth_headers, history):
        response = client.get(
            f"/api/results/{history[0].id}", headers=other_auth_headers
        )

        assert response.status_code == 404
