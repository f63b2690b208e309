"""Watch-progress service layer.

Business logic for:
- Reconciling playback samples into the course progress record
- Threshold-based and manual lecture completion
- Derived course aggregates (completion percentage, resume points)

Every write is a read-modify-write on one (user, course) record. The fold is
a max on watch time and a set-add on completion, so replaying a sample or
applying samples out of order never loses progress; lost races are retried.
"""

from collections.abc import Callable

from src.core.logging import get_logger
from src.courses.models import CourseContent

from .exceptions import (
    ProgressConflictError,
    ProgressValidationError,
)
from .models import (
    DEFAULT_COMPLETION_THRESHOLD,
    CourseProgressRecord,
    clamp_percent,
    is_valid_seconds,
    resume_position,
)
from .schemas import CourseProgressSummaryResponse, LectureResumeResponse
from .store import ProgressStore, validate_identifiers


logger = get_logger(__name__)


# ==============================================================================
# Derived Aggregates
# ==============================================================================


def calculate_course_completion(
    record: CourseProgressRecord | None,
    content: CourseContent,
) -> CourseProgressSummaryResponse:
    """Compute the course completion summary from stored progress.

    Percentage is ``100 * watched / duration`` over the course's authored
    lectures, clamped to [0, 100] and rounded to 2 decimals. A lecture with no
    stored progress (or a stored duration of 0) contributes its authored
    duration and no watch time. Nothing is cached.
    """
    total_watch_time = 0.0
    total_duration = 0.0
    lectures_completed = 0

    for lecture in content.lectures:
        progress = record.get_lecture(lecture.lecture_id) if record else None
        if progress is not None:
            total_watch_time += progress.watch_time or 0
            total_duration += progress.total_duration or lecture.duration_seconds
        else:
            total_duration += lecture.duration_seconds

        if record is not None and record.is_lecture_completed(lecture.lecture_id):
            lectures_completed += 1

    percent = (
        clamp_percent(100 * total_watch_time / total_duration)
        if total_duration > 0
        else 0.0
    )

    return CourseProgressSummaryResponse(
        course_id=content.course_id,
        completion_percent=round(percent, 2),
        lectures_completed=lectures_completed,
        lectures_total=len(content.lectures),
        total_watch_time_seconds=total_watch_time,
        total_duration_seconds=total_duration,
        completed=record.completed if record else False,
    )


# ==============================================================================
# Progress Service
# ==============================================================================


class ProgressService:
    """Reconciles playback samples and completion events into progress records."""

    def __init__(
        self,
        store: ProgressStore,
        completion_threshold: float = DEFAULT_COMPLETION_THRESHOLD,
        max_save_attempts: int = 5,
    ):
        self.store = store
        self.completion_threshold = completion_threshold
        self.max_save_attempts = max_save_attempts

    async def _update_record(
        self,
        user_id: str,
        course_id: str,
        mutate: Callable[[CourseProgressRecord], bool],
    ) -> tuple[CourseProgressRecord, bool]:
        """Load-or-create, apply ``mutate`` and save, retrying lost races.

        ``mutate`` returns False when it made no change; the save is then
        skipped.

        Returns:
            (current record, whether mutate changed it)

        Raises:
            ProgressConflictError: still conflicting after max_save_attempts
        """
        for attempt in range(1, self.max_save_attempts + 1):
            record = await self.store.create_if_absent(user_id, course_id)
            if not mutate(record):
                return record, False
            try:
                await self.store.save(record)
            except ProgressConflictError:
                logger.info(
                    "progress_update_retry",
                    course_id=course_id,
                    attempt=attempt,
                )
                continue
            return record, True

        logger.warning(
            "progress_update_conflict_exhausted",
            course_id=course_id,
            attempts=self.max_save_attempts,
        )
        raise ProgressConflictError

    # ==========================================================================
    # Watch Samples
    # ==========================================================================

    async def report_watch_sample(
        self,
        user_id: str,
        course_id: str,
        lecture_id: str,
        watch_time: float,
        total_duration: float | None = None,
    ) -> CourseProgressRecord:
        """Fold one playback sample into the course progress record.

        Args:
            user_id: Authenticated user id
            course_id: Course id
            lecture_id: Lecture being watched
            watch_time: Current playback position in seconds
            total_duration: Media length in seconds, if known

        Returns:
            Updated CourseProgressRecord

        Raises:
            ProgressValidationError: Missing ids or invalid time values
        """
        validate_identifiers(
            user_id=user_id, course_id=course_id, lecture_id=lecture_id
        )
        if not is_valid_seconds(watch_time):
            raise ProgressValidationError(
                "watch_time must be a non-negative finite number"
            )
        if total_duration is not None and not is_valid_seconds(total_duration):
            raise ProgressValidationError(
                "total_duration must be a non-negative finite number"
            )

        newly_completed = False

        def apply(record: CourseProgressRecord) -> bool:
            nonlocal newly_completed
            newly_completed = record.apply_watch_sample(
                lecture_id,
                watch_time,
                total_duration,
                threshold=self.completion_threshold,
            )
            return True

        record, _ = await self._update_record(user_id, course_id, apply)

        if newly_completed:
            lecture = record.get_lecture(lecture_id)
            logger.info(
                "lecture_auto_completed",
                course_id=course_id,
                lecture_id=lecture_id,
                percent_watched=round(lecture.percent_watched, 2) if lecture else None,
            )

        return record

    # ==========================================================================
    # Manual Completion
    # ==========================================================================

    async def mark_lecture_completed(
        self,
        user_id: str,
        course_id: str,
        lecture_id: str,
    ) -> bool:
        """Mark a lecture completed regardless of watch time.

        Idempotent: a lecture already in the completed set is left untouched.

        Returns:
            True if the lecture was already completed
        """
        validate_identifiers(
            user_id=user_id, course_id=course_id, lecture_id=lecture_id
        )

        _, changed = await self._update_record(
            user_id,
            course_id,
            lambda record: record.mark_lecture_completed(lecture_id),
        )

        if changed:
            logger.info(
                "lecture_marked_complete",
                course_id=course_id,
                lecture_id=lecture_id,
            )
        return not changed

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_progress(
        self, user_id: str, course_id: str
    ) -> CourseProgressRecord | None:
        """Get the stored record, or None if the user never made progress."""
        return await self.store.find(user_id, course_id)

    async def get_lecture_resume(
        self,
        user_id: str,
        course_id: str,
        lecture_id: str,
    ) -> LectureResumeResponse:
        """Resume point for one lecture (used when a lecture loads)."""
        validate_identifiers(lecture_id=lecture_id)
        record = await self.store.find(user_id, course_id)
        lecture = record.get_lecture(lecture_id) if record else None

        return LectureResumeResponse(
            lecture_id=lecture_id,
            completed=record.is_lecture_completed(lecture_id) if record else False,
            percent_watched=round(lecture.percent_watched, 2) if lecture else 0.0,
            watch_time=lecture.watch_time if lecture else 0,
            total_duration=lecture.total_duration if lecture else 0,
            resume_position_seconds=resume_position(lecture),
        )

    async def get_course_summary(
        self,
        user_id: str,
        course_id: str,
        content: CourseContent,
    ) -> CourseProgressSummaryResponse:
        """Derived completion summary for a course (recomputed per call)."""
        record = await self.store.find(user_id, course_id)
        return calculate_course_completion(record, content)


__all__ = [
    "ProgressService",
    "calculate_course_completion",
]
