"""Tests for the progress HTTP endpoints."""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from src.auth.security import create_access_token
from src.config.settings import get_settings
from src.progress.exceptions import ProgressStoreUnavailableError


COURSE = "course-1"


def _watch(client: TestClient, headers, lecture_id="lecture-1", watch_time=42, total=300):
    return client.put(
        "/v1/progress/watch",
        json={
            "course_id": COURSE,
            "lecture_id": lecture_id,
            "watch_time": watch_time,
            "total_duration": total,
        },
        headers=headers,
    )


class TestAuthAndEnrollment:
    """Every route needs a token and an enrollment."""

    def test_missing_token_is_401(self, client: TestClient) -> None:
        response = _watch(client, headers={})

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Access token not provided"

    def test_invalid_token_is_401(self, client: TestClient) -> None:
        response = client.get(
            f"/v1/progress/course/{COURSE}",
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert response.status_code == 401

    def test_not_enrolled_is_403(self, client: TestClient) -> None:
        headers = {"Authorization": f"Bearer {create_access_token('user-2')}"}

        response = _watch(client, headers)

        assert response.status_code == 403
        assert response.json()["message"] == "User has not purchased this course"

    def test_enrollment_check_can_be_disabled(
        self, client: TestClient, monkeypatch
    ) -> None:
        monkeypatch.setattr(get_settings(), "progress_require_enrollment", False)
        headers = {"Authorization": f"Bearer {create_access_token('user-2')}"}

        assert _watch(client, headers).status_code == 200

    def test_enrollment_outage_is_503(
        self, client: TestClient, auth_headers, enrollment_service
    ) -> None:
        enrollment_service.is_enrolled = AsyncMock(
            side_effect=ProgressStoreUnavailableError()
        )

        response = client.get(f"/v1/progress/course/{COURSE}", headers=auth_headers)

        assert response.status_code == 503
        assert response.json()["message"] == "Progress store unavailable, please retry"


class TestWatch:
    """PUT /v1/progress/watch"""

    def test_sample_returns_progress_data(self, client: TestClient, auth_headers) -> None:
        response = _watch(client, auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        data = body["progress_data"]
        assert data["user_id"] == "user-1"
        assert data["course_id"] == COURSE
        assert data["lecture_completed"] == []
        assert data["lecture_progress"] == [
            {
                "lecture_id": "lecture-1",
                "watch_time": 42,
                "total_duration": 300,
                "completed": False,
                "percent_watched": 14.0,
            }
        ]

    def test_threshold_sample_completes(self, client: TestClient, auth_headers) -> None:
        _watch(client, auth_headers, watch_time=89, total=100)
        response = _watch(client, auth_headers, watch_time=90, total=100)

        assert response.json()["progress_data"]["lecture_completed"] == ["lecture-1"]

    def test_duration_is_optional(self, client: TestClient, auth_headers) -> None:
        response = client.put(
            "/v1/progress/watch",
            json={"course_id": COURSE, "lecture_id": "lecture-1", "watch_time": 5},
            headers=auth_headers,
        )
        assert response.status_code == 200

    @pytest.mark.parametrize(
        "payload",
        [
            {"course_id": COURSE, "lecture_id": "lecture-1", "watch_time": -1},
            {"course_id": COURSE, "lecture_id": "", "watch_time": 5},
            {"course_id": COURSE, "lecture_id": "lecture-1", "watch_time": "abc"},
            {"course_id": COURSE, "watch_time": 5},
        ],
    )
    def test_invalid_payload_is_422(
        self, client: TestClient, auth_headers, payload, progress_store
    ) -> None:
        response = client.put("/v1/progress/watch", json=payload, headers=auth_headers)

        assert response.status_code == 422
        assert response.json()["success"] is False
        assert progress_store.records == {}

    def test_conflict_is_409(
        self, client: TestClient, auth_headers, progress_store
    ) -> None:
        progress_store.conflicts_to_inject = 100

        response = _watch(client, auth_headers)

        assert response.status_code == 409
        assert response.json()["success"] is False

    def test_store_outage_is_503_with_message(
        self, client: TestClient, auth_headers, progress_store
    ) -> None:
        progress_store.create_if_absent = AsyncMock(
            side_effect=ProgressStoreUnavailableError()
        )

        response = _watch(client, auth_headers)

        assert response.status_code == 503
        assert response.json()["message"] == "Progress store unavailable, please retry"


class TestLectureComplete:
    """POST /v1/progress/lecture/complete"""

    def test_completion_is_idempotent(self, client: TestClient, auth_headers) -> None:
        payload = {"course_id": COURSE, "lecture_id": "lecture-1"}

        first = client.post(
            "/v1/progress/lecture/complete", json=payload, headers=auth_headers
        )
        second = client.post(
            "/v1/progress/lecture/complete", json=payload, headers=auth_headers
        )

        assert first.status_code == 200
        assert first.json() == {
            "success": True,
            "message": "Progress Updated",
            "already_completed": False,
        }
        assert second.json() == {
            "success": True,
            "message": "Lecture Already Completed",
            "already_completed": True,
        }


class TestQueries:
    """GET endpoints."""

    def test_progress_before_any_sample_is_null(
        self, client: TestClient, auth_headers
    ) -> None:
        response = client.get(f"/v1/progress/course/{COURSE}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"success": True, "progress_data": None}

    def test_progress_after_sample(self, client: TestClient, auth_headers) -> None:
        _watch(client, auth_headers)

        response = client.get(f"/v1/progress/course/{COURSE}", headers=auth_headers)

        assert response.json()["progress_data"]["version"] == 1

    def test_summary(self, client: TestClient, auth_headers) -> None:
        _watch(client, auth_headers, watch_time=300, total=600)

        response = client.get(
            f"/v1/progress/course/{COURSE}/summary", headers=auth_headers
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["completion_percent"] == 16.67
        assert body["lectures_total"] == 2

    def test_summary_of_unknown_course_is_404(
        self, client: TestClient, auth_headers
    ) -> None:
        response = client.get(
            "/v1/progress/course/course-unknown/summary", headers=auth_headers
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Course not found"

    def test_lecture_resume(self, client: TestClient, auth_headers) -> None:
        _watch(client, auth_headers, watch_time=42, total=300)

        response = client.get(
            "/v1/progress/lecture/lecture-1",
            params={"course_id": COURSE},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["resume_position_seconds"] == 42
        assert body["completed"] is False

    def test_lecture_resume_requires_course_id(
        self, client: TestClient, auth_headers
    ) -> None:
        response = client.get("/v1/progress/lecture/lecture-1", headers=auth_headers)
        assert response.status_code == 422
