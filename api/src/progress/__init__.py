"""Watch-progress tracking module.

Provides:
- Playback sample reconciliation with resume support
- Lecture completion (threshold-based and manual)
- Course completion aggregation
"""

from .models import (
    PROGRESS_TABLES_CQL,
    CourseProgressRecord,
    LectureProgress,
    resume_position,
)


__all__ = [
    "PROGRESS_TABLES_CQL",
    "CourseProgressRecord",
    "LectureProgress",
    "resume_position",
]
