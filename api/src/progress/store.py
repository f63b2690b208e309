"""Durable access to course progress records.

Records are keyed by (user_id, course_id). Writes are compare-and-set on the
record's ``version`` through Cassandra lightweight transactions, so a
read-modify-write cycle that raced another writer fails with
``ProgressConflictError`` instead of silently overwriting it.
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from cassandra import ConsistencyLevel, OperationTimedOut, RequestExecutionException
from cassandra.cluster import NoHostAvailable

from src.core.logging import get_logger

from .exceptions import (
    ProgressConflictError,
    ProgressStoreUnavailableError,
    ProgressValidationError,
)
from .models import CourseProgressRecord


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = get_logger(__name__)

_STORE_ERRORS = (NoHostAvailable, OperationTimedOut, RequestExecutionException)


def validate_identifiers(**identifiers: str | None) -> None:
    """Reject missing or blank identifiers before touching the store.

    Raises:
        ProgressValidationError: naming the first offending identifier
    """
    for name, value in identifiers.items():
        if not isinstance(value, str) or not value.strip():
            raise ProgressValidationError(f"{name} is required")


class ProgressStore(ABC):
    """Key-value access to CourseProgressRecord by (user_id, course_id)."""

    @abstractmethod
    async def find(self, user_id: str, course_id: str) -> CourseProgressRecord | None:
        """Load the record, or None if the pair has none yet."""

    @abstractmethod
    async def create_if_absent(
        self, user_id: str, course_id: str
    ) -> CourseProgressRecord:
        """Return the existing record, creating an empty one if needed."""

    @abstractmethod
    async def save(self, record: CourseProgressRecord) -> None:
        """Persist the full record if nobody saved it since it was loaded.

        Raises:
            ProgressConflictError: the stored version moved on
        """


class CassandraProgressStore(ProgressStore):
    """Progress store backed by the ``course_progress`` table."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._get_progress = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_progress
            WHERE user_id = ? AND course_id = ?
        """)
        # Linearizable reads pair with the conditional writes below
        self._get_progress.consistency_level = ConsistencyLevel.LOCAL_SERIAL

        self._insert_progress = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.course_progress
            (user_id, course_id, completed, lecture_completed, lecture_progress,
             version, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._update_progress = self.session.prepare(f"""
            UPDATE {self.keyspace}.course_progress
            SET completed = ?, lecture_completed = ?, lecture_progress = ?,
                version = ?, updated_at = ?
            WHERE user_id = ? AND course_id = ?
            IF version = ?
        """)

    async def _execute(self, statement: Any, params: list[Any], operation: str) -> Any:
        try:
            return await self.session.aexecute(statement, params)
        except _STORE_ERRORS as e:
            logger.warning(
                "progress_store_unavailable",
                operation=operation,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ProgressStoreUnavailableError from e

    async def find(self, user_id: str, course_id: str) -> CourseProgressRecord | None:
        """Load the record for a (user, course) pair."""
        validate_identifiers(user_id=user_id, course_id=course_id)
        result = await self._execute(self._get_progress, [user_id, course_id], "find")
        row = result.one()
        return CourseProgressRecord.from_row(row) if row else None

    async def create_if_absent(
        self, user_id: str, course_id: str
    ) -> CourseProgressRecord:
        """Insert an empty record unless one exists, then return the current one."""
        validate_identifiers(user_id=user_id, course_id=course_id)
        record = CourseProgressRecord(user_id=user_id, course_id=course_id)

        result = await self._execute(
            self._insert_progress,
            [
                record.user_id,
                record.course_id,
                record.completed,
                record.lecture_completed,
                record.lecture_progress_json(),
                record.version,
                record.created_at,
                record.updated_at,
            ],
            "create",
        )
        if result.was_applied:
            logger.info("course_progress_created", course_id=course_id)
            return record

        existing = await self.find(user_id, course_id)
        if existing is None:
            # Lost a race with a concurrent insert that is not visible yet
            raise ProgressConflictError
        return existing

    async def save(self, record: CourseProgressRecord) -> None:
        """Write the record conditionally on its loaded version."""
        validate_identifiers(user_id=record.user_id, course_id=record.course_id)
        now = datetime.now(UTC)

        result = await self._execute(
            self._update_progress,
            [
                record.completed,
                record.lecture_completed,
                record.lecture_progress_json(),
                record.version + 1,
                now,
                record.user_id,
                record.course_id,
                record.version,
            ],
            "save",
        )
        if not result.was_applied:
            logger.info(
                "course_progress_save_conflict",
                course_id=record.course_id,
                expected_version=record.version,
            )
            raise ProgressConflictError

        record.version += 1
        record.updated_at = now
