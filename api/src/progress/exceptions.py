"""Progress tracking errors.

Every error carries a human-readable ``message`` and a ``code`` that the
router maps to an HTTP status.
"""


class ProgressError(Exception):
    """Base progress error."""

    def __init__(self, message: str, code: str = "progress_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class ProgressValidationError(ProgressError):
    """Missing identifiers or malformed watch-time values."""

    def __init__(self, message: str = "Invalid progress data"):
        super().__init__(message, "invalid_progress_data")


class ProgressConflictError(ProgressError):
    """Record changed concurrently and the save was not applied."""

    def __init__(
        self, message: str = "Progress was updated concurrently, please retry"
    ):
        super().__init__(message, "progress_conflict")


class ProgressStoreUnavailableError(ProgressError):
    """Store could not be reached; safe to retry."""

    def __init__(self, message: str = "Progress store unavailable, please retry"):
        super().__init__(message, "store_unavailable")


class CourseNotFoundError(ProgressError):
    """Course content unknown to the catalog."""

    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class NotEnrolledError(ProgressError):
    """User has not purchased the course."""

    def __init__(self, message: str = "User has not purchased this course"):
        super().__init__(message, "not_enrolled")
