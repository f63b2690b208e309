"""Client-side playback progress reporting.

Provides:
- Surface adapters for embedded players and media elements
- An HTTP client for the progress API
- The reporter that samples playback and keeps a local progress view
"""

from .client import ProgressApiClient, ProgressClientError
from .reporter import PlaybackProgressReporter
from .surfaces import EmbeddedPlayerSurface, MediaElementSurface, PlaybackSurface


__all__ = [
    "EmbeddedPlayerSurface",
    "MediaElementSurface",
    "PlaybackProgressReporter",
    "PlaybackSurface",
    "ProgressApiClient",
    "ProgressClientError",
]
