"""Watch-progress API endpoints.

Provides routes for:
- Playback samples (sent by the player every few seconds)
- Manual or end-of-playback lecture completion
- Progress queries (full record, course summary, lecture resume point)

Every route requires an authenticated caller enrolled in the course.
"""

from fastapi import APIRouter, Query, status

from src.auth.dependencies import CurrentUser
from src.courses.dependencies import CourseContentServiceDep
from src.enrollments.dependencies import EnrollmentServiceDep

from .dependencies import (
    ProgressServiceDep,
    handle_progress_error,
    validate_enrollment,
)
from .exceptions import CourseNotFoundError, ProgressError
from .schemas import (
    CourseProgressSummaryResponse,
    LectureResumeResponse,
    MarkLectureCompletedRequest,
    MarkLectureCompletedResponse,
    ProgressDataResponse,
    WatchSampleRequest,
)


router = APIRouter(prefix="/v1/progress", tags=["progress"])


# ==============================================================================
# Playback Samples
# ==============================================================================


@router.put(
    "/watch",
    response_model=ProgressDataResponse,
    summary="Report a playback sample",
)
async def report_watch_sample(
    data: WatchSampleRequest,
    progress_service: ProgressServiceDep,
    enrollment_service: EnrollmentServiceDep,
    user: CurrentUser,
) -> ProgressDataResponse:
    """Fold one playback sample into the caller's course progress.

    Watch time never decreases and a lecture auto-completes once 90% of it
    has been watched. The record is created on the first sample.
    """
    await validate_enrollment(data.course_id, user, enrollment_service)

    try:
        record = await progress_service.report_watch_sample(
            user_id=user.id,
            course_id=data.course_id,
            lecture_id=data.lecture_id,
            watch_time=data.watch_time,
            total_duration=data.total_duration,
        )
    except ProgressError as e:
        raise handle_progress_error(e) from e

    return ProgressDataResponse.from_entity(record)


# ==============================================================================
# Lecture Completion
# ==============================================================================


@router.post(
    "/lecture/complete",
    response_model=MarkLectureCompletedResponse,
    status_code=status.HTTP_200_OK,
    summary="Mark lecture as completed",
)
async def mark_lecture_completed(
    data: MarkLectureCompletedRequest,
    progress_service: ProgressServiceDep,
    enrollment_service: EnrollmentServiceDep,
    user: CurrentUser,
) -> MarkLectureCompletedResponse:
    """Mark a lecture completed regardless of watch time.

    Idempotent; repeating the call reports ``already_completed``.
    """
    await validate_enrollment(data.course_id, user, enrollment_service)

    try:
        already_completed = await progress_service.mark_lecture_completed(
            user_id=user.id,
            course_id=data.course_id,
            lecture_id=data.lecture_id,
        )
    except ProgressError as e:
        raise handle_progress_error(e) from e

    return MarkLectureCompletedResponse(
        message=(
            "Lecture Already Completed" if already_completed else "Progress Updated"
        ),
        already_completed=already_completed,
    )


# ==============================================================================
# Queries
# ==============================================================================


@router.get(
    "/course/{course_id}",
    response_model=ProgressDataResponse,
    summary="Get course progress",
)
async def get_course_progress(
    course_id: str,
    progress_service: ProgressServiceDep,
    enrollment_service: EnrollmentServiceDep,
    user: CurrentUser,
) -> ProgressDataResponse:
    """Get the caller's progress record (``progress_data`` is null before any progress)."""
    await validate_enrollment(course_id, user, enrollment_service)

    try:
        record = await progress_service.get_progress(user.id, course_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e

    return ProgressDataResponse.from_entity(record)


@router.get(
    "/course/{course_id}/summary",
    response_model=CourseProgressSummaryResponse,
    summary="Get course completion summary",
)
async def get_course_summary(
    course_id: str,
    progress_service: ProgressServiceDep,
    course_content_service: CourseContentServiceDep,
    enrollment_service: EnrollmentServiceDep,
    user: CurrentUser,
) -> CourseProgressSummaryResponse:
    """Completion percentage over the course's authored lectures."""
    await validate_enrollment(course_id, user, enrollment_service)

    try:
        content = await course_content_service.get_course_content(course_id)
        if content is None:
            raise CourseNotFoundError
        return await progress_service.get_course_summary(user.id, course_id, content)
    except ProgressError as e:
        raise handle_progress_error(e) from e


@router.get(
    "/lecture/{lecture_id}",
    response_model=LectureResumeResponse,
    summary="Get lecture resume point",
)
async def get_lecture_progress(
    lecture_id: str,
    progress_service: ProgressServiceDep,
    enrollment_service: EnrollmentServiceDep,
    user: CurrentUser,
    course_id: str = Query(..., min_length=1, max_length=128),
) -> LectureResumeResponse:
    """Quick check used when a lecture loads, to decide where to resume."""
    await validate_enrollment(course_id, user, enrollment_service)

    try:
        return await progress_service.get_lecture_resume(
            user.id, course_id, lecture_id
        )
    except ProgressError as e:
        raise handle_progress_error(e) from e
