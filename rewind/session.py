"""Stream session controller: create, heartbeat and abandon transcode streams."""

import asyncio
import logging
from typing import Awaitable, Callable

from rewind.client import RewindClient
from rewind.errors import ApiError, StreamUnavailable
from rewind.live import LiveValue
from rewind.models import EpisodeInfo, StreamProps, StreamStatus
from rewind.scope import TaskScope

logger = logging.getLogger(__name__)

AVAILABLE_POLL_SECONDS = 15.0
PENDING_POLL_SECONDS = 0.5


class StreamSessionController:
    """
    Owns the single active stream session.

    Every `start` or `invalidate` bumps a generation token. A session loop
    only keeps polling while its token is the current one, so starting a new
    session or leaving the player stops the old loop at its next check. A
    heartbeat already sent is allowed to finish; its result is dropped.
    """

    def __init__(
        self,
        client: RewindClient,
        scope: TaskScope | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        available_interval: float = AVAILABLE_POLL_SECONDS,
        pending_interval: float = PENDING_POLL_SECONDS,
    ):
        self._client = client
        self._scope = scope or TaskScope()
        self._sleep = sleep
        self.available_interval = available_interval
        self.pending_interval = pending_interval

        self._generation = 0
        self.episode: EpisodeInfo | None = None
        self.props: LiveValue[StreamProps | None] = LiveValue(None, "stream_props")
        self.status: LiveValue[StreamStatus] = LiveValue(StreamStatus.CANCELED, "stream_status")
        self.errors: LiveValue[StreamUnavailable | None] = LiveValue(None, "stream_error")

    def poll_interval(self, status: StreamStatus) -> float | None:
        """Seconds to wait before the next heartbeat, None to stop polling."""
        if status == StreamStatus.AVAILABLE:
            return self.available_interval
        if status == StreamStatus.PENDING:
            return self.pending_interval
        return None

    def is_current(self, token: int) -> bool:
        return token == self._generation

    def invalidate(self) -> None:
        """Abandon the current session, if any."""
        self._generation += 1
        if self.episode is not None:
            logger.info("Leaving stream for %s", self.episode.title)
        self.episode = None

    def start(self, episode: EpisodeInfo) -> int:
        """Start a session for `episode`, superseding the previous one."""
        self._generation += 1
        token = self._generation
        self.episode = episode
        self.errors.set(None)
        self.props.set(None)
        self.status.set(StreamStatus.PENDING)
        self._scope.launch(self._run(episode, token), name=f"stream-{episode.id}")
        return token

    @property
    def active(self) -> int:
        """Number of session tasks still running, superseded ones included."""
        return self._scope.active

    async def join(self) -> None:
        await self._scope.join()

    async def close(self) -> None:
        self.invalidate()
        await self._scope.close()

    def _fail(self, episode: EpisodeInfo, token: int, reason: str) -> None:
        if not self.is_current(token):
            return
        logger.warning("Stream for %s failed: %s", episode.title, reason)
        self.status.set(StreamStatus.UNAVAILABLE)
        self.errors.set(StreamUnavailable(episode, reason))

    async def _run(self, episode: EpisodeInfo, token: int) -> None:
        try:
            progress = await self._client.get_user_progress(episode.id)
            if not self.is_current(token):
                return
            props = await self._client.create_stream(
                episode.library_id, episode.id, start_offset=progress.duration
            )
        except ApiError as e:
            self._fail(episode, token, str(e))
            return

        if not self.is_current(token):
            logger.debug("Stream %s created after navigation changed, not polling", props.id)
            return

        logger.info("Created stream %s for %s at %.1fs", props.id, episode.title, progress.duration)
        self.props.set(props)
        await self._poll(episode, props, token)

    async def _poll(self, episode: EpisodeInfo, props: StreamProps, token: int) -> None:
        while self.is_current(token):
            try:
                status = await self._client.heartbeat_stream(props.id)
            except ApiError as e:
                self._fail(episode, token, str(e))
                return

            if not self.is_current(token):
                break

            self.status.set(status)
            delay = self.poll_interval(status)
            if delay is None:
                logger.info("Stream %s ended with status %s", props.id, status.value)
                return
            await self._sleep(delay)

        logger.debug("Stopped polling stream %s", props.id)
