"""HTTP client for the progress API, used by the playback reporter."""

from collections.abc import Callable
from typing import Any
from urllib.parse import quote

import httpx

from src.core.logging import get_logger
from src.progress.models import CourseProgressRecord


logger = get_logger(__name__)

API_PREFIX = "/v1/progress"


class ProgressClientError(Exception):
    """A progress API call failed (transport error or non-success envelope)."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ProgressApiClient:
    """Thin async wrapper over the progress endpoints.

    Args:
        base_url: API root, e.g. ``https://api.example.com``
        token_provider: Returns the current bearer token for each call
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``)
    """

    def __init__(
        self,
        base_url: str,
        token_provider: Callable[[], str],
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.token_provider = token_provider
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "ProgressApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """Send a request and return the decoded success envelope.

        Raises:
            ProgressClientError: transport failure, non-200 or ``success`` false
        """
        headers = {
            "Authorization": f"Bearer {self.token_provider()}",
            "Accept": "application/json",
        }

        try:
            response = await self._client.request(
                method, f"{API_PREFIX}{path}", headers=headers, **kwargs
            )
        except httpx.TimeoutException as e:
            raise ProgressClientError("Progress API timeout") from e
        except httpx.RequestError as e:
            raise ProgressClientError(f"Progress API request error: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            data = {}

        if response.status_code != httpx.codes.OK or not data.get("success"):
            message = data.get("message") or f"Progress API error: {response.status_code}"
            logger.debug(
                "progress_api_request_failed",
                method=method,
                path=path,
                status_code=response.status_code,
            )
            raise ProgressClientError(message, status_code=response.status_code)

        return data

    async def report_watch_sample(
        self,
        course_id: str,
        lecture_id: str,
        watch_time: float,
        total_duration: float | None = None,
    ) -> CourseProgressRecord | None:
        """PUT /watch; returns the updated record."""
        data = await self._request(
            "PUT",
            "/watch",
            json={
                "course_id": course_id,
                "lecture_id": lecture_id,
                "watch_time": watch_time,
                "total_duration": total_duration,
            },
        )
        progress_data = data.get("progress_data")
        return CourseProgressRecord.from_dict(progress_data) if progress_data else None

    async def mark_lecture_completed(self, course_id: str, lecture_id: str) -> bool:
        """POST /lecture/complete; returns ``already_completed``."""
        data = await self._request(
            "POST",
            "/lecture/complete",
            json={"course_id": course_id, "lecture_id": lecture_id},
        )
        return bool(data.get("already_completed"))

    async def get_progress(self, course_id: str) -> CourseProgressRecord | None:
        """GET /course/{course_id}; None before any progress exists."""
        data = await self._request("GET", f"/course/{quote(course_id, safe='')}")
        progress_data = data.get("progress_data")
        return CourseProgressRecord.from_dict(progress_data) if progress_data else None
