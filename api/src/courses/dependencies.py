"""FastAPI dependencies for course content."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from src.courses.service import CourseContentService


async def get_course_content_service(request: Request) -> CourseContentService:
    """Get course content service from app state."""
    service = getattr(request.app.state, "course_content_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Course content service not available",
        )
    return service


CourseContentServiceDep = Annotated[
    CourseContentService, Depends(get_course_content_service)
]
