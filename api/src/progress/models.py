"""Database models for lecture watch-progress tracking.

One row per (user_id, course_id) holds the whole course progress record:
- lecture_completed: ids of completed lectures (unique, insertion order kept)
- lecture_progress: per-lecture watch state, stored as a JSON array
- version: optimistic concurrency counter checked by lightweight transactions

User and course ids are opaque strings owned by the identity provider and the
course catalog.
"""

import copy
import math
from datetime import UTC, datetime
from typing import Any

import orjson


# Watched fraction at which a lecture is auto-completed
DEFAULT_COMPLETION_THRESHOLD = 0.9


# ==============================================================================
# Helper Functions
# ==============================================================================


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def clamp_percent(value: float) -> float:
    """Clamp a display percentage to [0, 100]."""
    return max(0.0, min(100.0, value))


def is_valid_seconds(value: Any) -> bool:
    """True for a non-negative, finite real number (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return False
    return math.isfinite(value) and value >= 0


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Partition key: (user_id, course_id) - exactly one record per pair
COURSE_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_progress (
    user_id TEXT,
    course_id TEXT,
    completed BOOLEAN,
    lecture_completed LIST<TEXT>,
    lecture_progress TEXT,
    version INT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY ((user_id, course_id))
)
"""

PROGRESS_TABLES_CQL = [
    COURSE_PROGRESS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class LectureProgress:
    """Watch state for one lecture inside a course progress record.

    Attributes:
        lecture_id: Lecture identifier
        watch_time: Furthest watch position reported, in seconds (never reduced)
        total_duration: Known media length in seconds (0 when unknown)
        completed: Set once the completion threshold is reached; never reverts
    """

    def __init__(
        self,
        lecture_id: str,
        watch_time: float = 0,
        total_duration: float = 0,
        completed: bool = False,
    ):
        self.lecture_id = lecture_id
        self.watch_time = watch_time
        self.total_duration = total_duration
        self.completed = completed

    @property
    def watched_fraction(self) -> float:
        """Unclamped watch_time / total_duration (0 when duration unknown)."""
        if self.total_duration <= 0:
            return 0.0
        return self.watch_time / self.total_duration

    @property
    def percent_watched(self) -> float:
        """Display percentage, clamped to [0, 100]."""
        return clamp_percent(self.watched_fraction * 100)

    def apply_sample(
        self,
        watch_time: float,
        total_duration: float | None,
        threshold: float = DEFAULT_COMPLETION_THRESHOLD,
    ) -> bool:
        """Fold one playback sample into this lecture.

        Watch time only ever grows (max fold), a positive total_duration
        replaces the stored one, and the lecture completes once the watched
        fraction reaches ``threshold``.

        Returns:
            True if this sample newly completed the lecture
        """
        self.watch_time = max(self.watch_time, watch_time)
        if total_duration:
            self.total_duration = total_duration

        if (
            not self.completed
            and self.total_duration > 0
            and self.watched_fraction >= threshold
        ):
            self.completed = True
            return True
        return False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LectureProgress":
        """Create LectureProgress from its serialized form."""
        return cls(
            lecture_id=str(data["lecture_id"]),
            watch_time=data.get("watch_time") or 0,
            total_duration=data.get("total_duration") or 0,
            completed=bool(data.get("completed", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "lecture_id": self.lecture_id,
            "watch_time": self.watch_time,
            "total_duration": self.total_duration,
            "completed": self.completed,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LectureProgress):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return (
            f"<LectureProgress lecture={self.lecture_id} "
            f"{self.watch_time}/{self.total_duration}s completed={self.completed}>"
        )


def resume_position(lecture: LectureProgress | None) -> float | None:
    """Playback position to resume a lecture from, if any.

    Only a partially watched lecture resumes; a finished one
    (watch_time >= total_duration) starts again from 0.
    """
    if lecture is None:
        return None
    if 0 < lecture.watch_time < lecture.total_duration:
        return lecture.watch_time
    return None


class CourseProgressRecord:
    """Progress aggregate for one user in one course.

    Attributes:
        user_id: Opaque user identifier
        course_id: Opaque course identifier
        completed: Whole-course completion flag (not derived from lectures)
        lecture_completed: Completed lecture ids, unique
        lecture_progress: Per-lecture watch state keyed by lecture id
        version: Optimistic concurrency counter (0 for a new record)
        created_at: Creation timestamp
        updated_at: Last successful save timestamp
    """

    def __init__(
        self,
        user_id: str,
        course_id: str,
        completed: bool = False,
        lecture_completed: list[str] | None = None,
        lecture_progress: dict[str, LectureProgress] | None = None,
        version: int = 0,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.user_id = user_id
        self.course_id = course_id
        self.completed = completed
        self.lecture_completed: list[str] = list(
            dict.fromkeys(lecture_completed or [])
        )
        self.lecture_progress: dict[str, LectureProgress] = dict(
            lecture_progress or {}
        )
        self.version = version
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at) or self.created_at

    def get_lecture(self, lecture_id: str) -> LectureProgress | None:
        """Get watch state for a lecture, if any sample was recorded."""
        return self.lecture_progress.get(lecture_id)

    def is_lecture_completed(self, lecture_id: str) -> bool:
        """Check if a lecture is in the completed set."""
        return lecture_id in self.lecture_completed

    def apply_watch_sample(
        self,
        lecture_id: str,
        watch_time: float,
        total_duration: float | None = None,
        threshold: float = DEFAULT_COMPLETION_THRESHOLD,
    ) -> bool:
        """Fold a watch sample into the record.

        Creates the lecture entry on first sight and keeps
        ``lecture_completed`` in step with the lecture's completed flag. An
        entry created for a lecture that was already marked complete starts
        out completed.

        Returns:
            True if the sample newly completed the lecture
        """
        lecture = self.lecture_progress.get(lecture_id)
        if lecture is None:
            lecture = LectureProgress(
                lecture_id=lecture_id,
                watch_time=0,
                total_duration=total_duration or 0,
                completed=lecture_id in self.lecture_completed,
            )
            self.lecture_progress[lecture_id] = lecture

        newly_completed = lecture.apply_sample(watch_time, total_duration, threshold)
        if lecture.completed and lecture_id not in self.lecture_completed:
            self.lecture_completed.append(lecture_id)
        return newly_completed

    def mark_lecture_completed(self, lecture_id: str) -> bool:
        """Record a manual completion.

        The matching lecture entry, when present, is flagged completed with
        its watch time and duration left untouched.

        Returns:
            False if the lecture was already completed (no change made)
        """
        if lecture_id in self.lecture_completed:
            return False

        self.lecture_completed.append(lecture_id)
        lecture = self.lecture_progress.get(lecture_id)
        if lecture is not None:
            lecture.completed = True
        return True

    def lecture_progress_json(self) -> str:
        """Serialize lecture progress for the TEXT column."""
        return orjson.dumps(
            [lp.to_dict() for lp in self.lecture_progress.values()]
        ).decode()

    @staticmethod
    def parse_lecture_progress(raw: str | bytes | None) -> dict[str, LectureProgress]:
        """Parse the TEXT column back into lecture entries."""
        if not raw:
            return {}
        entries = [LectureProgress.from_dict(item) for item in orjson.loads(raw)]
        return {lp.lecture_id: lp for lp in entries}

    def copy(self) -> "CourseProgressRecord":
        """Deep copy (used to keep stored state isolated from callers)."""
        return copy.deepcopy(self)

    @classmethod
    def from_row(cls, row: Any) -> "CourseProgressRecord":
        """Create CourseProgressRecord instance from Cassandra row."""
        return cls(
            user_id=row.user_id,
            course_id=row.course_id,
            completed=bool(row.completed),
            lecture_completed=list(row.lecture_completed or []),
            lecture_progress=cls.parse_lecture_progress(row.lecture_progress),
            version=row.version or 0,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CourseProgressRecord":
        """Create CourseProgressRecord from an API payload."""
        lectures = [LectureProgress.from_dict(d) for d in data.get("lecture_progress") or []]
        created_at = data.get("created_at")
        updated_at = data.get("updated_at")
        return cls(
            user_id=str(data["user_id"]),
            course_id=str(data["course_id"]),
            completed=bool(data.get("completed", False)),
            lecture_completed=list(data.get("lecture_completed") or []),
            lecture_progress={lp.lecture_id: lp for lp in lectures},
            version=data.get("version") or 0,
            created_at=datetime.fromisoformat(created_at) if created_at else None,
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": self.user_id,
            "course_id": self.course_id,
            "completed": self.completed,
            "lecture_completed": list(self.lecture_completed),
            "lecture_progress": [lp.to_dict() for lp in self.lecture_progress.values()],
            "version": self.version,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return (
            f"<CourseProgressRecord user={self.user_id} course={self.course_id} "
            f"{len(self.lecture_completed)} completed v{self.version}>"
        )
