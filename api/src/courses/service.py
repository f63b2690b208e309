"""Read access to authored course content."""

from typing import TYPE_CHECKING

from src.core.logging import get_logger
from src.courses.models import CourseContent


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = get_logger(__name__)


class CourseContentService:
    """Loads course outlines (chapters, lectures, authored durations)."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._get_course_lectures = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_lectures
            WHERE course_id = ?
        """)

    async def get_course_content(self, course_id: str) -> CourseContent | None:
        """Get the outline of a course, or None if the course has no lectures."""
        rows = list(await self.session.aexecute(self._get_course_lectures, [course_id]))
        if not rows:
            logger.debug("course_content_not_found", course_id=course_id)
            return None
        return CourseContent.from_rows(course_id, rows)
