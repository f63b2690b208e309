"""Tests for enrollment lookups and their Redis cache."""

from unittest.mock import AsyncMock, Mock

import pytest
from cassandra import OperationTimedOut
from cassandra.cluster import NoHostAvailable, Session
from redis.exceptions import ConnectionError as RedisConnectionError

from src.enrollments.service import EnrollmentService
from src.progress.exceptions import ProgressStoreUnavailableError


@pytest.fixture
def mock_session():
    """Mock Cassandra session."""
    session = Mock(spec=Session)
    session.prepare = Mock(return_value=Mock())
    session.aexecute = AsyncMock()
    return session


@pytest.fixture
def mock_redis():
    """Mock Redis client with an empty cache."""
    redis_mock = AsyncMock()
    redis_mock.get = AsyncMock(return_value=None)
    redis_mock.setex = AsyncMock(return_value=True)
    return redis_mock


def _result(found: bool) -> Mock:
    result = Mock()
    result.one.return_value = Mock(course_id="course-1") if found else None
    return result


class TestIsEnrolled:
    """Database lookups."""

    @pytest.mark.asyncio
    async def test_enrolled_without_cache(self, mock_session) -> None:
        service = EnrollmentService(mock_session, "test_keyspace")
        mock_session.aexecute.return_value = _result(found=True)

        assert await service.is_enrolled("user-1", "course-1") is True
        assert mock_session.aexecute.call_args[0][1] == ["user-1", "course-1"]

    @pytest.mark.asyncio
    async def test_not_enrolled(self, mock_session) -> None:
        service = EnrollmentService(mock_session, "test_keyspace")
        mock_session.aexecute.return_value = _result(found=False)

        assert await service.is_enrolled("user-1", "course-1") is False


class TestEnrollmentCache:
    """Redis in front of the lookup."""

    @pytest.mark.asyncio
    async def test_cache_hit_skips_database(self, mock_session, mock_redis) -> None:
        mock_redis.get.return_value = "1"
        service = EnrollmentService(mock_session, "test_keyspace", redis=mock_redis)

        assert await service.is_enrolled("user-1", "course-1") is True
        mock_redis.get.assert_awaited_once_with("enrollment:user-1:course-1")
        mock_session.aexecute.assert_not_called()

    @pytest.mark.asyncio
    async def test_cached_negative(self, mock_session, mock_redis) -> None:
        mock_redis.get.return_value = "0"
        service = EnrollmentService(mock_session, "test_keyspace", redis=mock_redis)

        assert await service.is_enrolled("user-1", "course-1") is False
        mock_session.aexecute.assert_not_called()

    @pytest.mark.asyncio
    async def test_miss_populates_cache(self, mock_session, mock_redis) -> None:
        mock_session.aexecute.return_value = _result(found=True)
        service = EnrollmentService(
            mock_session, "test_keyspace", redis=mock_redis, cache_seconds=60
        )

        assert await service.is_enrolled("user-1", "course-1") is True
        mock_redis.setex.assert_awaited_once_with("enrollment:user-1:course-1", 60, "1")

    @pytest.mark.asyncio
    async def test_redis_failure_falls_back_to_database(
        self, mock_session, mock_redis
    ) -> None:
        mock_redis.get.side_effect = RedisConnectionError("down")
        mock_redis.setex.side_effect = RedisConnectionError("down")
        mock_session.aexecute.return_value = _result(found=True)
        service = EnrollmentService(mock_session, "test_keyspace", redis=mock_redis)

        assert await service.is_enrolled("user-1", "course-1") is True
        mock_session.aexecute.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            NoHostAvailable("Unable to connect", {}),
            OperationTimedOut("timed out"),
        ],
    )
    async def test_database_outage_is_store_unavailable(
        self, mock_session, mock_redis, error
    ) -> None:
        mock_session.aexecute.side_effect = error
        service = EnrollmentService(mock_session, "test_keyspace", redis=mock_redis)

        with pytest.raises(ProgressStoreUnavailableError):
            await service.is_enrolled("user-1", "course-1")

        mock_redis.setex.assert_not_called()
