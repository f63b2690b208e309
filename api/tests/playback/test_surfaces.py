"""Tests for playback surface adapters."""

from types import SimpleNamespace
from unittest.mock import Mock

from src.playback.surfaces import EmbeddedPlayerSurface, MediaElementSurface


class FakeEventTarget:
    """Records listeners by event name and lets tests dispatch them."""

    def __init__(self):
        self.listeners: dict[str, list] = {}

    def addEventListener(self, name, handler):  # noqa: N802
        self.listeners.setdefault(name, []).append(handler)

    def dispatch(self, name, event=None):
        for handler in self.listeners.get(name, []):
            handler(event)


class FakeIFramePlayer(FakeEventTarget):
    """YouTube IFrame API-like player."""

    def __init__(self, current_time=0.0, duration=0.0):
        super().__init__()
        self.current_time = current_time
        self.duration = duration
        self.seeks: list[tuple[float, bool]] = []

    def getCurrentTime(self):  # noqa: N802
        return self.current_time

    def getDuration(self):  # noqa: N802
        return self.duration

    def seekTo(self, seconds, allow_seek_ahead):  # noqa: N802
        self.seeks.append((seconds, allow_seek_ahead))


class FakeMediaElement(FakeEventTarget):
    """HTMLMediaElement-like object."""

    def __init__(self, current_time=0.0, duration=float("nan"), ready_state=0):
        super().__init__()
        self.currentTime = current_time
        self.duration = duration
        self.readyState = ready_state


class TestEmbeddedPlayerSurface:
    """IFrame player adapter."""

    def test_reads_and_seeks(self) -> None:
        player = FakeIFramePlayer(current_time=12.5, duration=300)
        surface = EmbeddedPlayerSurface(player)

        assert surface.get_current_time() == 12.5
        assert surface.get_duration() == 300
        surface.seek(42)
        assert player.seeks == [(42, True)]

    def test_ready_event(self) -> None:
        player = FakeIFramePlayer()
        callback = Mock()
        EmbeddedPlayerSurface(player).on_ready(callback)

        player.dispatch("onReady", SimpleNamespace(target=player))

        callback.assert_called_once_with()

    def test_ready_is_replayed_to_late_callback(self) -> None:
        player = FakeIFramePlayer()
        surface = EmbeddedPlayerSurface(player)
        player.dispatch("onReady", SimpleNamespace(target=player))

        callback = Mock()
        surface.on_ready(callback)

        callback.assert_called_once_with()
        player.dispatch("onReady", SimpleNamespace(target=player))
        callback.assert_called_once_with()

    def test_only_ended_state_fires_ended(self) -> None:
        player = FakeIFramePlayer()
        callback = Mock()
        EmbeddedPlayerSurface(player).on_ended(callback)

        player.dispatch("onStateChange", SimpleNamespace(data=1))  # playing
        player.dispatch("onStateChange", SimpleNamespace(data=2))  # paused
        callback.assert_not_called()

        player.dispatch("onStateChange", SimpleNamespace(data=0))
        callback.assert_called_once_with()


class TestMediaElementSurface:
    """Media element adapter."""

    def test_seek_assigns_current_time(self) -> None:
        element = FakeMediaElement(duration=300)
        surface = MediaElementSurface(element)

        surface.seek(42)

        assert element.currentTime == 42
        assert surface.get_current_time() == 42

    def test_ready_waits_for_metadata(self) -> None:
        element = FakeMediaElement()
        callback = Mock()
        MediaElementSurface(element).on_ready(callback)
        callback.assert_not_called()

        element.dispatch("loadedmetadata")
        callback.assert_called_once_with()

    def test_ready_fires_immediately_when_metadata_loaded(self) -> None:
        element = FakeMediaElement(duration=300, ready_state=4)
        callback = Mock()

        MediaElementSurface(element).on_ready(callback)

        callback.assert_called_once_with()
        assert "loadedmetadata" not in element.listeners

    def test_ended_event(self) -> None:
        element = FakeMediaElement(duration=300)
        callback = Mock()
        MediaElementSurface(element).on_ended(callback)

        element.dispatch("ended")

        callback.assert_called_once_with()
