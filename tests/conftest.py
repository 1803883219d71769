"""Shared fixtures: a scripted fake API client and a recording sleep."""

import asyncio
from typing import Callable

import pytest

from rewind.config import reset_config
from rewind.cookies import CookieStore
from rewind.errors import ApiError
from rewind.models import (
    EpisodeInfo, Library, LoginRequest, SeasonInfo,
    ShowInfo, StreamProps, StreamStatus, UserProgress
)

MOVIES = Library(name="Movies")
INCEPTION = ShowInfo(id="show-inception", title="Inception")
SEASON_1 = SeasonInfo(id="season-1", season_number=1)
E01 = EpisodeInfo(id="e01", title="E01", library_id="lib-movies")
E02 = EpisodeInfo(id="e02", title="E02", library_id="lib-movies")


class FakeClient:
    """In-memory stand-in for RewindClient that records every call."""

    def __init__(self):
        self.base_url = "https://rewind.test"
        self.cookies = CookieStore()
        self.calls: list[tuple] = []
        self.fail: set[str] = set()

        self.login_status = 200
        self.libraries = [MOVIES]
        self.shows = [INCEPTION]
        self.seasons = [SEASON_1]
        self.episodes = [E01, E02]
        self.progress = UserProgress(duration=0.0)

        # stream id -> scripted statuses; once exhausted `default_status` is returned
        self.heartbeats: dict[str, list[StreamStatus]] = {}
        self.default_status = StreamStatus.PENDING
        self.on_heartbeat: Callable[[str], None] | None = None

    def _check(self, name: str) -> None:
        if name in self.fail:
            raise ApiError(f"{name} failed", 500)

    def count(self, *call) -> int:
        return self.calls.count(call)

    async def login(self, request: LoginRequest) -> int:
        self.calls.append(("login", request.username))
        await asyncio.sleep(0)
        self._check("login")
        return self.login_status

    async def list_libraries(self) -> list[Library]:
        self.calls.append(("list_libraries",))
        await asyncio.sleep(0)
        self._check("list_libraries")
        return list(self.libraries)

    async def list_shows(self, library_name: str) -> list[ShowInfo]:
        self.calls.append(("list_shows", library_name))
        await asyncio.sleep(0)
        self._check("list_shows")
        return list(self.shows)

    async def list_seasons(self, show_id: str) -> list[SeasonInfo]:
        self.calls.append(("list_seasons", show_id))
        await asyncio.sleep(0)
        self._check("list_seasons")
        return list(self.seasons)

    async def list_episodes(self, season_id: str) -> list[EpisodeInfo]:
        self.calls.append(("list_episodes", season_id))
        await asyncio.sleep(0)
        self._check("list_episodes")
        return list(self.episodes)

    async def get_user_progress(self, episode_id: str) -> UserProgress:
        self.calls.append(("get_user_progress", episode_id))
        await asyncio.sleep(0)
        self._check("get_user_progress")
        return self.progress

    async def create_stream(self, library_id: str, episode_id: str, start_offset: float = 0) -> StreamProps:
        self.calls.append(("create_stream", library_id, episode_id, start_offset))
        await asyncio.sleep(0)
        self._check("create_stream")
        return StreamProps(id=f"stream-{episode_id}", url=f"/hls/{episode_id}/index.m3u8")

    async def heartbeat_stream(self, stream_id: str) -> StreamStatus:
        self.calls.append(("heartbeat", stream_id))
        if self.on_heartbeat:
            self.on_heartbeat(stream_id)
        await asyncio.sleep(0)
        self._check("heartbeat_stream")
        script = self.heartbeats.get(stream_id)
        if script:
            return script.pop(0)
        return self.default_status

    def stream_url(self, props: StreamProps) -> str:
        return self.base_url + props.url


class RecordedSleep:
    """Sleep replacement that records delays and only yields to the loop."""

    def __init__(self):
        self.delays: list[float] = []
        self.on_sleep: Callable[[float], None] | None = None

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self.on_sleep:
            self.on_sleep(delay)
        await asyncio.sleep(0)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point config and data dirs at a temp dir for every test."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    reset_config()
    yield tmp_path
    reset_config()


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def recorded_sleep():
    return RecordedSleep()
