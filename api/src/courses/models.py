"""Database models for authored course content.

The catalog (owned by the authoring side) stores one row per lecture,
clustered by chapter and lecture order. Progress tracking only reads it to
learn which lectures a course has and how long each one is.
"""

from typing import Any


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Partition key: course_id - one read returns the whole outline in order
COURSE_LECTURES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_lectures (
    course_id TEXT,
    chapter_order INT,
    lecture_order INT,
    chapter_id TEXT,
    chapter_title TEXT,
    lecture_id TEXT,
    lecture_title TEXT,
    lecture_duration INT,
    PRIMARY KEY (course_id, chapter_order, lecture_order)
) WITH CLUSTERING ORDER BY (chapter_order ASC, lecture_order ASC)
"""

COURSES_TABLES_CQL = [
    COURSE_LECTURES_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Lecture:
    """A single authored video unit.

    Attributes:
        lecture_id: Lecture identifier
        title: Lecture title
        duration_minutes: Authored duration in minutes
    """

    def __init__(self, lecture_id: str, title: str = "", duration_minutes: float = 0):
        self.lecture_id = lecture_id
        self.title = title
        self.duration_minutes = duration_minutes

    @property
    def duration_seconds(self) -> float:
        """Authored duration converted to seconds."""
        return (self.duration_minutes or 0) * 60

    def __repr__(self) -> str:
        return f"<Lecture {self.lecture_id} {self.duration_minutes}min>"


class Chapter:
    """Ordered group of lectures."""

    def __init__(
        self,
        chapter_id: str,
        title: str = "",
        lectures: list[Lecture] | None = None,
    ):
        self.chapter_id = chapter_id
        self.title = title
        self.lectures = lectures or []

    def __repr__(self) -> str:
        return f"<Chapter {self.chapter_id} ({len(self.lectures)} lectures)>"


class CourseContent:
    """Authored chapter/lecture outline of a course."""

    def __init__(self, course_id: str, chapters: list[Chapter] | None = None):
        self.course_id = course_id
        self.chapters = chapters or []

    @property
    def lectures(self) -> list[Lecture]:
        """All lectures in outline order."""
        return [lecture for chapter in self.chapters for lecture in chapter.lectures]

    @classmethod
    def from_rows(cls, course_id: str, rows: Any) -> "CourseContent":
        """Group clustered lecture rows into chapters, keeping row order."""
        chapters: dict[str, Chapter] = {}
        for row in rows:
            chapter = chapters.get(row.chapter_id)
            if chapter is None:
                chapter = Chapter(chapter_id=row.chapter_id, title=row.chapter_title or "")
                chapters[row.chapter_id] = chapter
            chapter.lectures.append(
                Lecture(
                    lecture_id=row.lecture_id,
                    title=row.lecture_title or "",
                    duration_minutes=row.lecture_duration or 0,
                )
            )
        return cls(course_id=course_id, chapters=list(chapters.values()))

    def __repr__(self) -> str:
        return f"<CourseContent {self.course_id} ({len(self.lectures)} lectures)>"
