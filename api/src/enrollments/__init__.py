"""Course enrollment lookups."""

from .models import ENROLLMENTS_TABLES_CQL
from .service import EnrollmentService


__all__ = [
    "ENROLLMENTS_TABLES_CQL",
    "EnrollmentService",
]
