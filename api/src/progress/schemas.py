"""Pydantic schemas for watch-progress tracking.

Every response carries ``success``; error responses are produced by the
application exception handlers with ``success: false`` and a ``message``.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .models import CourseProgressRecord, LectureProgress


_ID_FIELD = {"min_length": 1, "max_length": 128}


# ==============================================================================
# Requests
# ==============================================================================


class WatchSampleRequest(BaseModel):
    """One playback sample (the player sends one every 5 seconds)."""

    course_id: str = Field(..., description="Course id", **_ID_FIELD)
    lecture_id: str = Field(..., description="Lecture id", **_ID_FIELD)
    watch_time: float = Field(
        ..., ge=0, allow_inf_nan=False, description="Playback position in seconds"
    )
    total_duration: float | None = Field(
        None, ge=0, allow_inf_nan=False, description="Media length in seconds"
    )


class MarkLectureCompletedRequest(BaseModel):
    """Request to mark a lecture completed (end of playback or manual)."""

    course_id: str = Field(..., description="Course id", **_ID_FIELD)
    lecture_id: str = Field(..., description="Lecture id", **_ID_FIELD)


# ==============================================================================
# Progress Record
# ==============================================================================


class LectureProgressSchema(BaseModel):
    """Watch state of one lecture."""

    model_config = ConfigDict(from_attributes=True)

    lecture_id: str
    watch_time: float
    total_duration: float
    completed: bool
    percent_watched: float = Field(description="0-100, clamped")

    @classmethod
    def from_entity(cls, entity: LectureProgress) -> "LectureProgressSchema":
        """Create schema from entity."""
        return cls(
            lecture_id=entity.lecture_id,
            watch_time=entity.watch_time,
            total_duration=entity.total_duration,
            completed=entity.completed,
            percent_watched=round(entity.percent_watched, 2),
        )


class CourseProgressSchema(BaseModel):
    """Full course progress record."""

    user_id: str
    course_id: str
    completed: bool
    lecture_completed: list[str] = Field(default_factory=list)
    lecture_progress: list[LectureProgressSchema] = Field(default_factory=list)
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: CourseProgressRecord) -> "CourseProgressSchema":
        """Create schema from entity."""
        return cls(
            user_id=entity.user_id,
            course_id=entity.course_id,
            completed=entity.completed,
            lecture_completed=list(entity.lecture_completed),
            lecture_progress=[
                LectureProgressSchema.from_entity(lp)
                for lp in entity.lecture_progress.values()
            ],
            version=entity.version,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )


# ==============================================================================
# Responses
# ==============================================================================


class ProgressDataResponse(BaseModel):
    """Progress record envelope; ``progress_data`` is null before any progress."""

    success: bool = True
    progress_data: CourseProgressSchema | None = None

    @classmethod
    def from_entity(
        cls, entity: CourseProgressRecord | None
    ) -> "ProgressDataResponse":
        """Create response from an optional entity."""
        return cls(
            progress_data=CourseProgressSchema.from_entity(entity) if entity else None
        )


class MarkLectureCompletedResponse(BaseModel):
    """Manual completion result."""

    success: bool = True
    message: str
    already_completed: bool


class LectureResumeResponse(BaseModel):
    """Quick progress check for a single lecture (used on lecture load)."""

    success: bool = True
    lecture_id: str
    completed: bool
    percent_watched: float
    watch_time: float
    total_duration: float
    resume_position_seconds: float | None = Field(
        None, description="Position to seek to; null means start from 0"
    )


class CourseProgressSummaryResponse(BaseModel):
    """Derived course aggregate, computed on every request."""

    success: bool = True
    course_id: str
    completion_percent: float = Field(description="0-100, 2 decimals")
    lectures_completed: int
    lectures_total: int
    total_watch_time_seconds: float
    total_duration_seconds: float
    completed: bool = False
