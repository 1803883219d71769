"""Async HTTP client for the Rewind media server API."""

import logging
from typing import Any, Callable, TypeVar
from urllib.parse import quote

import httpx

from rewind.cookies import CookieStore
from rewind.errors import ApiError
from rewind.models import (
    EpisodeInfo, Library, LoginRequest, SeasonInfo,
    ShowInfo, StreamProps, StreamStatus, UserProgress
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

LOGIN_PATH = "/api/auth/login"
LIBRARIES_PATH = "/api/browse/libraries"
SHOWS_PATH = "/api/browse/libraries/{library}/shows"
SEASONS_PATH = "/api/browse/shows/{show_id}/seasons"
EPISODES_PATH = "/api/browse/seasons/{season_id}/episodes"
PROGRESS_PATH = "/api/user/progress/{episode_id}"
CREATE_STREAM_PATH = "/api/stream/create"
HEARTBEAT_PATH = "/api/stream/{stream_id}/heartbeat"

HEADERS = {
    "User-Agent": "rewind-cli",
    "Accept": "application/json",
}


def _segment(value: str) -> str:
    """Quote a value for use as a single path segment."""
    return quote(str(value), safe="")


def _parse_library(d: dict) -> Library:
    return Library(name=d["name"])


def _parse_show(d: dict) -> ShowInfo:
    return ShowInfo(id=str(d["id"]), title=d.get("title") or "")


def _parse_season(d: dict) -> SeasonInfo:
    return SeasonInfo(id=str(d["id"]), season_number=int(d["seasonNumber"]))


def _parse_episode(d: dict) -> EpisodeInfo:
    return EpisodeInfo(
        id=str(d["id"]),
        title=d.get("title") or "",
        library_id=str(d["libraryId"]),
    )


def _parse_stream_props(d: dict) -> StreamProps:
    extra = {k: v for k, v in d.items() if k not in ("id", "url")}
    return StreamProps(id=str(d["id"]), url=d["url"], extra=extra)


def _parse_status(data: Any) -> StreamStatus:
    raw = data.get("status") if isinstance(data, dict) else data
    try:
        return StreamStatus(str(raw).lower())
    except ValueError:
        logger.warning("Unknown stream status %r, treating as canceled", raw)
        return StreamStatus.CANCELED


class RewindClient:
    """
    Client for one Rewind server.

    All requests share one cookie store, so the session cookie obtained by
    `login` is replayed on every later call.
    """

    def __init__(
        self,
        base_url: str,
        cookie_store: CookieStore | None = None,
        timeout: float = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.cookies = cookie_store or CookieStore()
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers=HEADERS,
            timeout=timeout,
            transport=transport,
            event_hooks={
                "request": [self._log_request],
                "response": [self._log_response],
            },
        )
        # Requests read and write the store's jar directly
        self.cookies.attach(self._http.cookies)

    async def __aenter__(self) -> "RewindClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ===== HOOKS =====

    async def _log_request(self, request: httpx.Request) -> None:
        logger.debug("-> %s %s", request.method, request.url)

    async def _log_response(self, response: httpx.Response) -> None:
        request = response.request
        logger.debug("<- %s %s %s", response.status_code, request.method, request.url)

    # ===== HELPERS =====

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise ApiError(f"{method} {path} failed: {e}") from e

    async def _get_json(self, method: str, path: str, **kwargs) -> Any:
        res = await self._request(method, path, **kwargs)
        if res.is_error:
            raise ApiError(f"{method} {path} returned HTTP {res.status_code}", res.status_code)
        try:
            return res.json()
        except ValueError as e:
            raise ApiError(f"{method} {path} returned invalid JSON: {e}", res.status_code) from e

    @staticmethod
    def _parse(data: Any, parser: Callable[[dict], T], what: str) -> T:
        try:
            return parser(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ApiError(f"Malformed {what}: {e!r}") from e

    def _parse_list(self, data: Any, parser: Callable[[dict], T], what: str) -> list[T]:
        if not isinstance(data, list):
            raise ApiError(f"Expected a list of {what}, got {type(data).__name__}")
        return [self._parse(item, parser, what) for item in data]

    # ===== API =====

    async def login(self, request: LoginRequest) -> int:
        """Log in; returns the HTTP status code (200 on success)."""
        res = await self._request("POST", LOGIN_PATH, json=request.to_dict())
        logger.info("Login for %s returned %s", request.username, res.status_code)
        return res.status_code

    async def list_libraries(self) -> list[Library]:
        data = await self._get_json("GET", LIBRARIES_PATH)
        return self._parse_list(data, _parse_library, "libraries")

    async def list_shows(self, library_name: str) -> list[ShowInfo]:
        data = await self._get_json("GET", SHOWS_PATH.format(library=_segment(library_name)))
        return self._parse_list(data, _parse_show, "shows")

    async def list_seasons(self, show_id: str) -> list[SeasonInfo]:
        data = await self._get_json("GET", SEASONS_PATH.format(show_id=_segment(show_id)))
        return self._parse_list(data, _parse_season, "seasons")

    async def list_episodes(self, season_id: str) -> list[EpisodeInfo]:
        data = await self._get_json("GET", EPISODES_PATH.format(season_id=_segment(season_id)))
        return self._parse_list(data, _parse_episode, "episodes")

    async def get_user_progress(self, episode_id: str) -> UserProgress:
        """Saved progress; an episode never watched has none (404 or empty body)."""
        path = PROGRESS_PATH.format(episode_id=_segment(episode_id))
        res = await self._request("GET", path)
        if res.status_code == 404 or not res.content:
            return UserProgress()
        if res.is_error:
            raise ApiError(f"GET {path} returned HTTP {res.status_code}", res.status_code)
        try:
            data = res.json()
        except ValueError as e:
            raise ApiError(f"GET {path} returned invalid JSON: {e}", res.status_code) from e
        if data is None:
            return UserProgress()
        return self._parse(data, lambda d: UserProgress(duration=float(d.get("duration") or 0)), "progress")

    async def create_stream(self, library_id: str, episode_id: str, start_offset: float = 0) -> StreamProps:
        payload = {
            "library": library_id,
            "episode": episode_id,
            "startOffset": start_offset,
        }
        data = await self._get_json("POST", CREATE_STREAM_PATH, json=payload)
        if not data:
            raise ApiError("Server returned no stream")
        return self._parse(data, _parse_stream_props, "stream")

    async def heartbeat_stream(self, stream_id: str) -> StreamStatus:
        data = await self._get_json("GET", HEARTBEAT_PATH.format(stream_id=_segment(stream_id)))
        return _parse_status(data)

    def stream_url(self, props: StreamProps) -> str:
        """Absolute playlist url for a stream; relative urls keep the base path."""
        if httpx.URL(props.url).is_absolute_url:
            return props.url
        return self.base_url + "/" + props.url.lstrip("/")
