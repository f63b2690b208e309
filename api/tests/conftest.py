"""Shared fixtures: app, client, auth headers and an in-memory progress store."""

import os


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("LOG_FORMAT", "console")

from datetime import UTC, datetime  # noqa: E402

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from src.auth.security import create_access_token  # noqa: E402
from src.courses.models import Chapter, CourseContent, Lecture  # noqa: E402
from src.main import create_app  # noqa: E402
from src.progress.exceptions import ProgressConflictError  # noqa: E402
from src.progress.models import CourseProgressRecord  # noqa: E402
from src.progress.service import ProgressService  # noqa: E402
from src.progress.store import ProgressStore, validate_identifiers  # noqa: E402


USER_ID = "user-1"
COURSE_ID = "course-1"


class InMemoryProgressStore(ProgressStore):
    """Progress store with the same version compare-and-set as Cassandra.

    ``conflicts_to_inject`` makes the next N saves fail as if another writer
    had saved first.
    """

    def __init__(self):
        self.records: dict[tuple[str, str], CourseProgressRecord] = {}
        self.conflicts_to_inject = 0
        self.save_calls = 0

    async def find(self, user_id, course_id):
        validate_identifiers(user_id=user_id, course_id=course_id)
        record = self.records.get((user_id, course_id))
        return record.copy() if record else None

    async def create_if_absent(self, user_id, course_id):
        validate_identifiers(user_id=user_id, course_id=course_id)
        key = (user_id, course_id)
        if key not in self.records:
            self.records[key] = CourseProgressRecord(user_id=user_id, course_id=course_id)
        return self.records[key].copy()

    async def save(self, record):
        self.save_calls += 1
        key = (record.user_id, record.course_id)
        if self.conflicts_to_inject:
            self.conflicts_to_inject -= 1
            raise ProgressConflictError
        stored = self.records.get(key)
        if stored is None or stored.version != record.version:
            raise ProgressConflictError

        record.version += 1
        record.updated_at = datetime.now(UTC)
        self.records[key] = record.copy()


class FakeEnrollmentService:
    """Enrollment lookups answered from a set of (user_id, course_id)."""

    def __init__(self, enrolled: set[tuple[str, str]] | None = None):
        self.enrolled = enrolled if enrolled is not None else set()

    async def is_enrolled(self, user_id: str, course_id: str) -> bool:
        return (user_id, course_id) in self.enrolled


class FakeCourseContentService:
    """Course outlines served from a dict."""

    def __init__(self, courses: dict[str, CourseContent] | None = None):
        self.courses = courses or {}

    async def get_course_content(self, course_id: str) -> CourseContent | None:
        return self.courses.get(course_id)


@pytest.fixture
def progress_store() -> InMemoryProgressStore:
    """Empty in-memory progress store."""
    return InMemoryProgressStore()


@pytest.fixture
def progress_service(progress_store: InMemoryProgressStore) -> ProgressService:
    """ProgressService over the in-memory store."""
    return ProgressService(store=progress_store)


@pytest.fixture
def course_content() -> CourseContent:
    """Two lectures of 10 and 20 authored minutes."""
    return CourseContent(
        course_id=COURSE_ID,
        chapters=[
            Chapter(
                chapter_id="chapter-1",
                title="Basics",
                lectures=[
                    Lecture("lecture-1", "Intro", duration_minutes=10),
                    Lecture("lecture-2", "Setup", duration_minutes=20),
                ],
            )
        ],
    )


@pytest.fixture
def enrollment_service() -> FakeEnrollmentService:
    """USER_ID is enrolled in COURSE_ID and in an unpublished course."""
    return FakeEnrollmentService({(USER_ID, COURSE_ID), (USER_ID, "course-unknown")})


@pytest.fixture
def course_content_service(course_content: CourseContent) -> FakeCourseContentService:
    """Serves the two-lecture course."""
    return FakeCourseContentService({COURSE_ID: course_content})


@pytest.fixture
def app(
    progress_service: ProgressService,
    enrollment_service: FakeEnrollmentService,
    course_content_service: FakeCourseContentService,
) -> FastAPI:
    """Application with services wired to in-memory fakes (no lifespan)."""
    application = create_app()
    application.state.progress_service = progress_service
    application.state.enrollment_service = enrollment_service
    application.state.course_content_service = course_content_service
    return application


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Test client; lifespan is not started so no database is contacted."""
    return TestClient(app)


@pytest.fixture
def auth_headers() -> dict[str, str]:
    """Bearer header for USER_ID."""
    return {"Authorization": f"Bearer {create_access_token(USER_ID)}"}
