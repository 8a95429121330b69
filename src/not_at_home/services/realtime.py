"""Fan-out of new ledger entries to session subscribers."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID

from not_at_home.domain.addresses import AddressEntry

logger = logging.getLogger(__name__)

InsertCallback = Callable[[AddressEntry], None]
EndCallback = Callable[[], None]
Unsubscribe = Callable[[], Awaitable[None]]


class RemoteChannel(Protocol):
    """An open server-push channel for one session."""

    async def close(self) -> None:
        """Release the channel."""


class ChannelFactory(Protocol):
    """Opens server-push channels scoped to a session's ledger inserts."""

    async def open(self, session_id: UUID, deliver: InsertCallback) -> RemoteChannel:
        """Subscribe to inserts for the session and call ``deliver`` for each."""


@dataclass
class _SessionChannel:
    session_id: UUID
    subscribers: dict[int, InsertCallback] = field(default_factory=dict)
    enders: dict[int, EndCallback] = field(default_factory=dict)
    seen_ids: set[UUID] = field(default_factory=set)
    remote: RemoteChannel | None = None
    opening: "asyncio.Future[RemoteChannel] | None" = None
    closed: bool = False
    next_token: int = 0

    def add(self, on_insert: InsertCallback, on_end: EndCallback | None) -> int:
        token = self.next_token
        self.next_token += 1
        self.subscribers[token] = on_insert
        if on_end is not None:
            self.enders[token] = on_end
        return token

    def drop(self, token: int) -> bool:
        self.enders.pop(token, None)
        return self.subscribers.pop(token, None) is not None


@dataclass
class RealtimeHub:
    """Multiplexes subscribers of a session over a single channel.

    Delivery is best effort and at most once per entry id; there is no replay,
    so subscribers load a snapshot with ``list_addresses`` first. Channel state
    lives on the event loop that subscribed; ``end_session`` may be called from
    any thread.
    """

    channel_factory: ChannelFactory | None = None
    _channels: dict[UUID, _SessionChannel] = field(default_factory=dict)
    _loop: asyncio.AbstractEventLoop | None = field(default=None, init=False)
    _closing: set["asyncio.Task[None]"] = field(default_factory=set, init=False)

    async def subscribe(
        self,
        session_id: UUID,
        on_insert: InsertCallback,
        on_end: EndCallback | None = None,
    ) -> Unsubscribe:
        """Register callbacks for new entries and session end.

        Every subscriber waiting on the same channel open fails with it.
        """
        self._loop = asyncio.get_running_loop()
        channel = self._channels.get(session_id)
        creator = channel is None
        if channel is None:
            channel = _SessionChannel(session_id=session_id)
            self._channels[session_id] = channel
            if self.channel_factory is not None:
                channel.opening = asyncio.ensure_future(
                    self.channel_factory.open(session_id, self.publish)
                )
        token = channel.add(on_insert, on_end)

        if channel.opening is not None and channel.remote is None:
            try:
                remote = await channel.opening
            except Exception:
                channel.drop(token)
                if self._channels.get(session_id) is channel:
                    del self._channels[session_id]
                channel.closed = True
                raise
            if creator:
                if channel.closed:
                    await remote.close()
                else:
                    channel.remote = remote

        logger.info(
            "Realtime subscriber added",
            extra={
                "session_id": str(session_id),
                "subscribers": len(channel.subscribers),
            },
        )

        async def unsubscribe() -> None:
            await self._remove(channel, token)

        return unsubscribe

    def publish(self, entry: AddressEntry) -> None:
        """Deliver an entry to every subscriber of its session."""
        channel = self._channels.get(entry.session_id)
        if channel is None or entry.id in channel.seen_ids:
            return
        channel.seen_ids.add(entry.id)
        for callback in list(channel.subscribers.values()):
            try:
                callback(entry)
            except Exception:
                logger.exception(
                    "Realtime subscriber failed",
                    extra={"session_id": str(entry.session_id)},
                )

    def end_session(self, session_id: UUID) -> None:
        """Tell subscribers the session is gone and release its channel."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self._end_now(session_id)
        else:
            loop.call_soon_threadsafe(self._end_now, session_id)

    def subscriber_count(self, session_id: UUID) -> int:
        """Return how many callbacks are attached to a session."""
        channel = self._channels.get(session_id)
        return len(channel.subscribers) if channel else 0

    async def close(self) -> None:
        """Release every open channel."""
        for channel in list(self._channels.values()):
            channel.subscribers.clear()
            channel.enders.clear()
            await self._release(channel)
        if self._closing:
            await asyncio.gather(*self._closing, return_exceptions=True)

    def _end_now(self, session_id: UUID) -> None:
        channel = self._channels.pop(session_id, None)
        if channel is None:
            return
        channel.closed = True
        enders = list(channel.enders.values())
        channel.subscribers.clear()
        channel.enders.clear()
        logger.info(
            "Realtime session ended",
            extra={"session_id": str(session_id), "subscribers": len(enders)},
        )
        for on_end in enders:
            try:
                on_end()
            except Exception:
                logger.exception(
                    "Realtime end callback failed",
                    extra={"session_id": str(session_id)},
                )
        if channel.remote is not None:
            remote, channel.remote = channel.remote, None
            task = asyncio.get_running_loop().create_task(remote.close())
            self._closing.add(task)
            task.add_done_callback(self._closing.discard)

    async def _remove(self, channel: _SessionChannel, token: int) -> None:
        if not channel.drop(token):
            return
        if not channel.subscribers:
            await self._release(channel)

    async def _release(self, channel: _SessionChannel) -> None:
        if self._channels.get(channel.session_id) is channel:
            del self._channels[channel.session_id]
        channel.closed = True
        if channel.remote is not None:
            remote, channel.remote = channel.remote, None
            await remote.close()
