"""Main view model: login, navigation and catalog lists."""

import logging
from typing import Awaitable, Callable, TypeVar

from rewind.client import RewindClient
from rewind.errors import ApiError, LoadFailed, StreamUnavailable
from rewind.live import LiveValue
from rewind.models import (
    EpisodeInfo, Library, LoginRequest, SeasonInfo,
    ShowInfo, StreamProps, StreamStatus
)
from rewind.scope import TaskScope
from rewind.session import StreamSessionController
from rewind.states import (
    BROWSER_STATES, VIEW_STATES, BrowserState, BrowserView, EpisodePlayer,
    HomeState, LibraryState, LoginState, SeasonState, ShowState, ViewState
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

HTTP_OK = 200


class MainViewModel:
    """
    State behind every screen of the client.

    Setters change state immediately and launch the matching fetch as a
    background task; results land in the `LiveValue` fields when the fetch
    completes. Must be used from inside a running event loop.
    """

    def __init__(
        self,
        client: RewindClient,
        sessions: StreamSessionController | None = None,
        scope: TaskScope | None = None,
    ):
        self.client = client
        self.scope = scope or TaskScope()
        self.sessions = sessions or StreamSessionController(client)

        self.login_state: LiveValue[LoginState] = LiveValue(LoginState.LOGGED_OUT, "login_state")
        self.browser_state: LiveValue[BrowserState] = LiveValue(HomeState(), "browser_state")
        self.view_state: LiveValue[ViewState] = LiveValue(BrowserView(), "view_state")

        self.libraries: LiveValue[list[Library]] = LiveValue([], "libraries")
        self.shows: LiveValue[list[ShowInfo]] = LiveValue([], "shows")
        self.seasons: LiveValue[list[SeasonInfo]] = LiveValue([], "seasons")
        self.episodes: LiveValue[list[EpisodeInfo]] = LiveValue([], "episodes")
        self.errors: LiveValue[LoadFailed | None] = LiveValue(None, "load_error")

        self._login_attempt = 0

    # ===== STREAM =====

    @property
    def stream_status(self) -> LiveValue[StreamStatus]:
        return self.sessions.status

    @property
    def stream_props(self) -> LiveValue[StreamProps | None]:
        return self.sessions.props

    @property
    def stream_errors(self) -> LiveValue[StreamUnavailable | None]:
        return self.sessions.errors

    # ===== LOGIN =====

    def login(self, request: LoginRequest) -> None:
        """Start a login attempt; only the latest attempt's result is applied."""
        self._login_attempt += 1
        attempt = self._login_attempt
        self.login_state.set(LoginState.PENDING_LOGIN)
        logger.info("Logging in as %s", request.username)
        self.scope.launch(self._login(request, attempt), name="login")

    async def _login(self, request: LoginRequest, attempt: int) -> None:
        try:
            status = await self.client.login(request)
        except ApiError as e:
            logger.warning("Login failed: %s", e)
            status = None

        if attempt != self._login_attempt:
            logger.debug("Dropping result of superseded login attempt %d", attempt)
            return

        if status == HTTP_OK:
            logger.info("Logged in")
            self.set_browser_state(HomeState())
            self.login_state.set(LoginState.LOGGED_IN)
        else:
            logger.info("Login rejected (status %s)", status)
            self.login_state.set(LoginState.LOGGED_OUT)

    def mark_logged_in(self) -> None:
        """Saved session cookies were accepted by the server; no login request needed."""
        self._login_attempt += 1
        logger.info("Resumed saved session")
        self.login_state.set(LoginState.LOGGED_IN)

    # ===== NAVIGATION =====

    def set_browser_state(self, state: BrowserState) -> None:
        if not isinstance(state, BROWSER_STATES):
            raise TypeError(f"Unknown browser state: {state!r}")
        self.browser_state.set(state)
        if isinstance(state, HomeState):
            self.load_libraries()
        elif isinstance(state, LibraryState):
            self.load_shows(state.library.name)
        elif isinstance(state, ShowState):
            self.load_seasons(state.show.id)
        elif isinstance(state, SeasonState):
            self.load_episodes(state.season.id)
        # EpisodeState: episode is already fully known

    def set_view_state(self, state: ViewState) -> None:
        if not isinstance(state, VIEW_STATES):
            raise TypeError(f"Unknown view state: {state!r}")
        self.view_state.set(state)
        if isinstance(state, EpisodePlayer):
            self.sessions.start(state.episode)
        else:
            self.sessions.invalidate()
            self.set_browser_state(self.browser_state.value or HomeState())

    # ===== CATALOG =====

    def _load(self, resource: str, target: LiveValue[list[T]], fetch: Callable[[], Awaitable[list[T]]]) -> None:
        async def run() -> None:
            try:
                items = await fetch()
            except ApiError as e:
                logger.warning("Loading %s failed: %s", resource, e)
                self.errors.set(LoadFailed(resource, str(e)))
                return
            logger.info("Loaded %d %s", len(items), resource)
            target.set(items)

        self.scope.launch(run(), name=f"load-{resource}")

    def load_libraries(self) -> None:
        self._load("libraries", self.libraries, self.client.list_libraries)

    def load_shows(self, library_name: str) -> None:
        self._load("shows", self.shows, lambda: self.client.list_shows(library_name))

    def load_seasons(self, show_id: str) -> None:
        self._load("seasons", self.seasons, lambda: self.client.list_seasons(show_id))

    def load_episodes(self, season_id: str) -> None:
        self._load("episodes", self.episodes, lambda: self.client.list_episodes(season_id))

    # ===== LIFECYCLE =====

    async def join_loads(self) -> None:
        """Wait for login and catalog loads, not for stream loops."""
        await self.scope.join()

    async def join(self) -> None:
        """Wait for all pending loads and stream loops."""
        while self.scope.active or self.sessions.active:
            await self.scope.join()
            await self.sessions.join()

    async def close(self) -> None:
        self.sessions.invalidate()
        await self.scope.close()
        await self.sessions.close()
