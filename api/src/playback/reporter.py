"""Client-side playback progress reporter.

Bridges a ``PlaybackSurface`` to the progress API:
- resumes a partially watched lecture when the player becomes ready
- samples the position every few seconds and reports it fire-and-forget
- on end of playback reports the final position and marks the lecture done
- keeps a local per-course progress view fresh after each successful call

Nothing raised by the surface, the network or the API escapes to the
player; failures are logged and the next sample supersedes them.
"""

import asyncio
import math
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any

from src.config.settings import get_settings
from src.core.logging import get_logger
from src.progress.models import CourseProgressRecord, resume_position

from .client import ProgressApiClient, ProgressClientError
from .surfaces import PlaybackSurface


logger = get_logger(__name__)

ProgressCallback = Callable[[CourseProgressRecord], None]


class _Attachment:
    """One lecture bound to one surface; owns at most one sampling task."""

    def __init__(self, surface: PlaybackSurface, course_id: str, lecture_id: str):
        self.surface = surface
        self.course_id = course_id
        self.lecture_id = lecture_id
        self.sampling_task: asyncio.Task | None = None
        self.last_reported_time: int | None = None
        self.view_loaded = False
        self.ready = False
        self.ended = False

    def stop_sampling(self) -> None:
        if self.sampling_task is not None:
            self.sampling_task.cancel()
            self.sampling_task = None


class PlaybackProgressReporter:
    """Tracks the active lecture of one player instance.

    Args:
        client: Progress API client
        sample_interval: Seconds between samples (PROGRESS_SAMPLE_INTERVAL_SECONDS)
        report_timeout: Seconds before an API call is abandoned
            (PROGRESS_REPORT_TIMEOUT_SECONDS)
        on_progress: Called with the course record after each view refresh
    """

    def __init__(
        self,
        client: ProgressApiClient,
        sample_interval: float | None = None,
        report_timeout: float | None = None,
        on_progress: ProgressCallback | None = None,
    ):
        settings = get_settings()
        self.client = client
        self.sample_interval = (
            sample_interval
            if sample_interval is not None
            else settings.progress_sample_interval_seconds
        )
        self.report_timeout = (
            report_timeout
            if report_timeout is not None
            else settings.progress_report_timeout_seconds
        )
        self.on_progress = on_progress

        self._active: _Attachment | None = None
        self._pending: set[asyncio.Task] = set()
        self._progress: dict[str, CourseProgressRecord] = {}

    # ==========================================================================
    # Lifecycle
    # ==========================================================================

    @property
    def active_lecture(self) -> tuple[str, str] | None:
        """(course_id, lecture_id) currently receiving samples, if any."""
        if self._active is None:
            return None
        return self._active.course_id, self._active.lecture_id

    async def attach(
        self, surface: PlaybackSurface, course_id: str, lecture_id: str
    ) -> None:
        """Make ``lecture_id`` the active lecture on ``surface``.

        Any previously active lecture stops sampling. Handlers are registered
        before the course view loads so a ready event fired meanwhile is not
        lost; resuming and sampling wait until the view is in.
        """
        self.detach()
        attachment = _Attachment(surface, course_id, lecture_id)
        self._active = attachment

        surface.on_ready(lambda: self._handle_ready(attachment))
        surface.on_ended(lambda: self._handle_ended(attachment))

        await self.refresh(course_id)
        if attachment is not self._active:
            # Another attach won while the view was loading
            return

        attachment.view_loaded = True
        logger.debug("playback_attached", course_id=course_id, lecture_id=lecture_id)
        if attachment.ready:
            self._start_playback(attachment)

    def detach(self) -> None:
        """Stop sampling the active lecture without forcing a report."""
        if self._active is None:
            return
        self._active.stop_sampling()
        logger.debug(
            "playback_detached",
            course_id=self._active.course_id,
            lecture_id=self._active.lecture_id,
        )
        self._active = None

    async def close(self) -> None:
        """Detach and wait for in-flight reports to settle."""
        self.detach()
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    def progress_for(self, course_id: str) -> CourseProgressRecord | None:
        """Locally held progress view for a course."""
        return self._progress.get(course_id)

    # ==========================================================================
    # Surface events
    # ==========================================================================

    def _handle_ready(self, attachment: _Attachment) -> None:
        if attachment is not self._active:
            return

        attachment.ready = True
        if attachment.view_loaded:
            self._start_playback(attachment)

    def _start_playback(self, attachment: _Attachment) -> None:
        if attachment.ended:
            return

        self._resume(attachment)
        if attachment.sampling_task is None:
            attachment.sampling_task = asyncio.create_task(
                self._sampling_loop(attachment)
            )

    def _handle_ended(self, attachment: _Attachment) -> None:
        if attachment is not self._active:
            return

        attachment.ended = True
        attachment.stop_sampling()
        self._spawn(self._finish(attachment, self._read_surface(attachment)))

    def _resume(self, attachment: _Attachment) -> None:
        record = self._progress.get(attachment.course_id)
        lecture = record.get_lecture(attachment.lecture_id) if record else None
        position = resume_position(lecture)
        if position is None:
            return

        try:
            attachment.surface.seek(position)
        except Exception as e:
            logger.warning(
                "playback_resume_failed",
                lecture_id=attachment.lecture_id,
                position=position,
                error=str(e),
            )
            return
        logger.debug(
            "playback_resumed", lecture_id=attachment.lecture_id, position=position
        )

    # ==========================================================================
    # Sampling
    # ==========================================================================

    async def _sampling_loop(self, attachment: _Attachment) -> None:
        while True:
            await asyncio.sleep(self.sample_interval)
            if attachment is not self._active:
                return
            self.take_sample()

    def take_sample(self) -> bool:
        """Read the active surface and report the position if it moved.

        Returns:
            True if a report was started
        """
        attachment = self._active
        if attachment is None:
            return False

        reading = self._read_surface(attachment)
        if reading is None:
            return False

        watch_time, total_duration = reading
        if watch_time == attachment.last_reported_time:
            # Paused
            return False

        attachment.last_reported_time = watch_time
        self._spawn(self._report_sample(attachment, watch_time, total_duration))
        return True

    def _read_surface(self, attachment: _Attachment) -> tuple[int, int] | None:
        """Whole-second (position, duration), or None for an unusable reading."""
        try:
            watch_time = math.floor(attachment.surface.get_current_time())
            total_duration = math.floor(attachment.surface.get_duration())
        except Exception as e:
            # NaN/inf durations (no metadata, live streams) also land here
            logger.warning(
                "playback_surface_read_failed",
                lecture_id=attachment.lecture_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

        if watch_time <= 0 or total_duration <= 0:
            return None
        return watch_time, total_duration

    # ==========================================================================
    # Reporting
    # ==========================================================================

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _call(
        self, operation: str, attachment: _Attachment, call: Awaitable[Any]
    ) -> tuple[bool, Any]:
        """Run an API call under the report timeout, logging any failure."""
        try:
            result = await asyncio.wait_for(call, timeout=self.report_timeout)
        except TimeoutError:
            logger.warning(
                "progress_report_timeout",
                operation=operation,
                course_id=attachment.course_id,
                lecture_id=attachment.lecture_id,
                timeout=self.report_timeout,
            )
            return False, None
        except ProgressClientError as e:
            logger.warning(
                "progress_report_failed",
                operation=operation,
                course_id=attachment.course_id,
                lecture_id=attachment.lecture_id,
                error=e.message,
                status_code=e.status_code,
            )
            return False, None
        except Exception as e:
            logger.exception(
                "progress_report_error",
                operation=operation,
                course_id=attachment.course_id,
                lecture_id=attachment.lecture_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False, None
        return True, result

    async def _report_sample(
        self, attachment: _Attachment, watch_time: int, total_duration: int
    ) -> bool:
        ok, record = await self._call(
            "report_watch_sample",
            attachment,
            self.client.report_watch_sample(
                attachment.course_id,
                attachment.lecture_id,
                watch_time,
                total_duration,
            ),
        )
        if not ok:
            # Let the next tick resend a position that never reached the API
            if attachment.last_reported_time == watch_time:
                attachment.last_reported_time = None
            return False

        if record is not None:
            self._update_view(record)
        else:
            await self.refresh(attachment.course_id)
        return True

    async def _finish(
        self, attachment: _Attachment, reading: tuple[int, int] | None
    ) -> None:
        """Terminal sample, then unconditional completion, then refresh."""
        if reading is not None:
            await self._report_sample(attachment, *reading)

        ok, already_completed = await self._call(
            "mark_lecture_completed",
            attachment,
            self.client.mark_lecture_completed(
                attachment.course_id, attachment.lecture_id
            ),
        )
        if ok:
            logger.info(
                "playback_lecture_completed",
                course_id=attachment.course_id,
                lecture_id=attachment.lecture_id,
                already_completed=already_completed,
            )
            await self.refresh(attachment.course_id)

    # ==========================================================================
    # Local progress view
    # ==========================================================================

    async def refresh(self, course_id: str) -> CourseProgressRecord | None:
        """Reload the course view from the API; keeps the old view on failure."""
        try:
            record = await asyncio.wait_for(
                self.client.get_progress(course_id), timeout=self.report_timeout
            )
        except TimeoutError:
            logger.warning("progress_refresh_timeout", course_id=course_id)
            return self._progress.get(course_id)
        except ProgressClientError as e:
            logger.warning(
                "progress_refresh_failed", course_id=course_id, error=e.message
            )
            return self._progress.get(course_id)
        except Exception as e:
            logger.exception(
                "progress_refresh_error",
                course_id=course_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return self._progress.get(course_id)

        if record is not None:
            self._update_view(record)
        return self._progress.get(course_id)

    def _update_view(self, record: CourseProgressRecord) -> None:
        current = self._progress.get(record.course_id)
        # Responses can arrive out of order; never step back to an older save
        if current is not None and record.version < current.version:
            return

        self._progress[record.course_id] = record
        if self.on_progress is None:
            return
        try:
            self.on_progress(record)
        except Exception as e:
            logger.warning("progress_callback_failed", error=str(e))
