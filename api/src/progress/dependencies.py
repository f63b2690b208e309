"""FastAPI dependencies for progress tracking.

Provides dependency injection for:
- Progress service
- Enrollment validation
- Error conversion
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from src.auth.dependencies import AuthenticatedUser
from src.config.settings import get_settings
from src.enrollments.service import EnrollmentService

from .exceptions import NotEnrolledError, ProgressError
from .service import ProgressService


async def get_progress_service(request: Request) -> ProgressService:
    """Get progress service from app state.

    Raises:
        HTTPException(503): service was not initialized (no database)
    """
    service = getattr(request.app.state, "progress_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Progress service not available",
        )
    return service


# Type alias for dependency injection
ProgressServiceDep = Annotated[ProgressService, Depends(get_progress_service)]


async def validate_enrollment(
    course_id: str,
    user: AuthenticatedUser,
    enrollment_service: EnrollmentService,
) -> None:
    """Reject callers who have not purchased the course.

    Skipped when PROGRESS_REQUIRE_ENROLLMENT is false.

    Raises:
        HTTPException(403): user is not enrolled
        HTTPException(503): enrollment lookup failed
    """
    if not get_settings().progress_require_enrollment:
        return

    try:
        enrolled = await enrollment_service.is_enrolled(user.id, course_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e
    if not enrolled:
        raise handle_progress_error(NotEnrolledError())


def handle_progress_error(error: ProgressError) -> HTTPException:
    """Convert progress errors to HTTP exceptions."""
    status_map = {
        "invalid_progress_data": status.HTTP_422_UNPROCESSABLE_ENTITY,
        "progress_conflict": status.HTTP_409_CONFLICT,
        "store_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
        "course_not_found": status.HTTP_404_NOT_FOUND,
        "not_enrolled": status.HTTP_403_FORBIDDEN,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail=error.message,
    )
