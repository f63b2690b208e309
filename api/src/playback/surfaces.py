"""Playback surface adapters.

The reporter only needs a handful of capabilities from a video player:
read the position and length, seek, and hear about "ready" and "ended".
Each backend exposes those under different names and event shapes, so one
adapter per backend maps them onto ``PlaybackSurface``.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any


SurfaceCallback = Callable[[], None]

# YouTube IFrame API player states
PLAYER_STATE_ENDED = 0

# HTMLMediaElement.readyState at which duration is known
HAVE_METADATA = 1


class PlaybackSurface(ABC):
    """Capability interface shared by every video backend.

    Accessors may raise whatever the underlying player raises; callers treat
    any failure as a skipped reading.
    """

    @abstractmethod
    def get_current_time(self) -> float:
        """Current playback position in seconds."""

    @abstractmethod
    def get_duration(self) -> float:
        """Media length in seconds (0 or NaN before metadata is loaded)."""

    @abstractmethod
    def seek(self, seconds: float) -> None:
        """Move playback to ``seconds``."""

    @abstractmethod
    def on_ready(self, callback: SurfaceCallback) -> None:
        """Register ``callback`` for when the media can start playing."""

    @abstractmethod
    def on_ended(self, callback: SurfaceCallback) -> None:
        """Register ``callback`` for end of playback."""


class EmbeddedPlayerSurface(PlaybackSurface):
    """Adapter for an embedded third-party player (YouTube IFrame API shape).

    Wraps an object exposing ``getCurrentTime()``, ``getDuration()``,
    ``seekTo(seconds, allowSeekAhead)`` and ``addEventListener(name, fn)``
    with ``onReady`` and ``onStateChange`` events.

    ``onReady`` fires once, so the adapter listens from construction and
    replays it to callbacks registered afterwards. Wrap the player before it
    can become ready.
    """

    def __init__(self, player: Any):
        self.player = player
        self.is_ready = False
        self.player.addEventListener("onReady", self._mark_ready)

    def _mark_ready(self, _event: Any = None) -> None:
        self.is_ready = True

    def get_current_time(self) -> float:
        return float(self.player.getCurrentTime())

    def get_duration(self) -> float:
        return float(self.player.getDuration())

    def seek(self, seconds: float) -> None:
        self.player.seekTo(seconds, True)

    def on_ready(self, callback: SurfaceCallback) -> None:
        if self.is_ready:
            callback()
            return
        self.player.addEventListener("onReady", lambda _event=None: callback())

    def on_ended(self, callback: SurfaceCallback) -> None:
        def handle_state_change(event: Any = None) -> None:
            # The IFrame API passes an event whose ``data`` is the new state
            state = getattr(event, "data", event)
            if state == PLAYER_STATE_ENDED:
                callback()

        self.player.addEventListener("onStateChange", handle_state_change)


class MediaElementSurface(PlaybackSurface):
    """Adapter for a direct media element (HTMLMediaElement shape).

    Wraps an object with ``currentTime``, ``duration`` and ``readyState``
    attributes and ``addEventListener(name, fn)`` for ``loadedmetadata`` and
    ``ended``. Seeking assigns ``currentTime``.
    """

    def __init__(self, element: Any):
        self.element = element

    def get_current_time(self) -> float:
        return float(self.element.currentTime)

    def get_duration(self) -> float:
        return float(self.element.duration)

    def seek(self, seconds: float) -> None:
        self.element.currentTime = seconds

    def on_ready(self, callback: SurfaceCallback) -> None:
        # loadedmetadata does not fire again for an element that already has it
        if (self.element.readyState or 0) >= HAVE_METADATA:
            callback()
            return
        self.element.addEventListener("loadedmetadata", lambda _event=None: callback())

    def on_ended(self, callback: SurfaceCallback) -> None:
        self.element.addEventListener("ended", lambda _event=None: callback())
