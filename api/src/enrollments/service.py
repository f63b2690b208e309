"""Enrollment checks with an optional Redis cache."""

from typing import TYPE_CHECKING

from cassandra import OperationTimedOut, RequestExecutionException
from cassandra.cluster import NoHostAvailable
from redis.exceptions import RedisError

from src.core.logging import get_logger
from src.core.redis import enrollment_cache_key
from src.progress.exceptions import ProgressStoreUnavailableError


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from redis.asyncio import Redis


logger = get_logger(__name__)


class EnrollmentService:
    """Answers whether a user is enrolled in a course."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        redis: "Redis | None" = None,
        cache_seconds: int = 300,
    ):
        self.session = session
        self.keyspace = keyspace
        self.redis = redis
        self.cache_seconds = cache_seconds
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._get_enrollment = self.session.prepare(f"""
            SELECT course_id FROM {self.keyspace}.course_enrollments
            WHERE user_id = ? AND course_id = ?
        """)

    async def is_enrolled(self, user_id: str, course_id: str) -> bool:
        """Check enrollment, consulting Redis first when available.

        Cache failures fall through to the database.

        Raises:
            ProgressStoreUnavailableError: the database could not be reached
        """
        cache_key = enrollment_cache_key(user_id, course_id)
        if self.redis:
            try:
                cached = await self.redis.get(cache_key)
            except RedisError as e:
                logger.warning("enrollment_cache_read_failed", error=str(e))
                cached = None
            if cached is not None:
                return cached == "1"

        try:
            result = await self.session.aexecute(
                self._get_enrollment, [user_id, course_id]
            )
        except (NoHostAvailable, OperationTimedOut, RequestExecutionException) as e:
            logger.warning(
                "enrollment_lookup_failed",
                course_id=course_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ProgressStoreUnavailableError from e
        enrolled = result.one() is not None

        if self.redis:
            try:
                await self.redis.setex(
                    cache_key, self.cache_seconds, "1" if enrolled else "0"
                )
            except RedisError as e:
                logger.warning("enrollment_cache_write_failed", error=str(e))

        return enrolled
