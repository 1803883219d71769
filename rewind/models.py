"""Data models for Rewind CLI - shapes served by the Rewind media server."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class Library:
    """Top-level media library (e.g. "Movies", "TV")."""
    name: str


@dataclass(frozen=True)
class ShowInfo:
    """Show inside a library."""
    id: str
    title: str


@dataclass(frozen=True)
class SeasonInfo:
    """Season of a show."""
    id: str
    season_number: int


@dataclass(frozen=True)
class EpisodeInfo:
    """Playable episode."""
    id: str
    title: str
    library_id: str


@dataclass(frozen=True)
class UserProgress:
    """Saved watch progress for an episode."""
    duration: float = 0.0  # seconds watched, used as resume offset


@dataclass(frozen=True)
class StreamProps:
    """Transcode session handed out by the server."""
    id: str
    url: str  # relative to the server base url
    extra: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


class StreamStatus(str, Enum):
    """Lifecycle of a stream session."""
    PENDING = "pending"
    AVAILABLE = "available"
    CANCELED = "canceled"
    # Never sent by the server; the stream could not be created or polled
    UNAVAILABLE = "unavailable"


@dataclass
class LoginRequest:
    """Credentials, passed to the server as-is."""
    username: str
    password: str

    def to_dict(self) -> dict[str, str]:
        return {"username": self.username, "password": self.password}
