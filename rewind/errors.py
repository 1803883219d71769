"""Errors raised by the API client and published by the view model."""

from typing import Optional

from rewind.models import EpisodeInfo


class RewindError(Exception):
    """Base class for Rewind CLI errors."""


class ApiError(RewindError):
    """Failed request: transport error, bad status or undecodable body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class LoadFailed(RewindError):
    """A catalog list could not be loaded."""

    def __init__(self, resource: str, reason: str):
        super().__init__(f"Failed to load {resource}: {reason}")
        self.resource = resource
        self.reason = reason


class StreamUnavailable(RewindError):
    """A stream could not be created or kept alive."""

    def __init__(self, episode: EpisodeInfo, reason: str):
        super().__init__(f"Stream for '{episode.title}' unavailable: {reason}")
        self.episode = episode
        self.reason = reason
