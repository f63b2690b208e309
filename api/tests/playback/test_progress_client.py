"""Tests for the progress API client (httpx.MockTransport)."""

import json

import httpx
import pytest

from src.playback.client import ProgressApiClient, ProgressClientError


PROGRESS_DATA = {
    "user_id": "user-1",
    "course_id": "course-1",
    "completed": False,
    "lecture_completed": [],
    "lecture_progress": [
        {
            "lecture_id": "lecture-1",
            "watch_time": 42.0,
            "total_duration": 300.0,
            "completed": False,
            "percent_watched": 14.0,
        }
    ],
    "version": 1,
    "created_at": "2026-01-05T10:00:00Z",
    "updated_at": "2026-01-05T10:00:00Z",
}


def _client(handler) -> ProgressApiClient:
    return ProgressApiClient(
        base_url="https://api.test",
        token_provider=lambda: "token-abc",
        transport=httpx.MockTransport(handler),
    )


class TestRequests:
    """Request shape and response parsing."""

    @pytest.mark.asyncio
    async def test_report_watch_sample(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200, json={"success": True, "progress_data": PROGRESS_DATA}
            )

        async with _client(handler) as client:
            record = await client.report_watch_sample("course-1", "lecture-1", 42, 300)

        request = seen[0]
        assert request.method == "PUT"
        assert request.url.path == "/v1/progress/watch"
        assert request.headers["Authorization"] == "Bearer token-abc"
        assert json.loads(request.content) == {
            "course_id": "course-1",
            "lecture_id": "lecture-1",
            "watch_time": 42,
            "total_duration": 300,
        }
        assert record.version == 1
        assert record.get_lecture("lecture-1").watch_time == 42

    @pytest.mark.asyncio
    async def test_mark_lecture_completed(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "POST"
            assert request.url.path == "/v1/progress/lecture/complete"
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "message": "Lecture Already Completed",
                    "already_completed": True,
                },
            )

        async with _client(handler) as client:
            assert await client.mark_lecture_completed("course-1", "lecture-1") is True

    @pytest.mark.asyncio
    async def test_get_progress_without_record(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v1/progress/course/course-1"
            return httpx.Response(200, json={"success": True, "progress_data": None})

        async with _client(handler) as client:
            assert await client.get_progress("course-1") is None


class TestErrors:
    """Failures surface as ProgressClientError."""

    @pytest.mark.asyncio
    async def test_error_envelope_message(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                403,
                json={
                    "success": False,
                    "error": True,
                    "message": "User has not purchased this course",
                    "status_code": 403,
                },
            )

        async with _client(handler) as client:
            with pytest.raises(ProgressClientError) as exc_info:
                await client.get_progress("course-1")

        assert exc_info.value.status_code == 403
        assert exc_info.value.message == "User has not purchased this course"

    @pytest.mark.asyncio
    async def test_non_json_response(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad Gateway")

        async with _client(handler) as client:
            with pytest.raises(ProgressClientError, match="502"):
                await client.get_progress("course-1")

    @pytest.mark.asyncio
    async def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(ProgressClientError, match="request error"):
                await client.report_watch_sample("course-1", "lecture-1", 10, 300)

    @pytest.mark.asyncio
    async def test_transport_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        async with _client(handler) as client:
            with pytest.raises(ProgressClientError, match="timeout"):
                await client.mark_lecture_completed("course-1", "lecture-1")
