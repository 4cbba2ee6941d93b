"""Sender and Receiver: the two halves of a uni-directional channel.

Both halves share a status register, the list of unacknowledged send/end calls
(awaiters) and one TransferQueue. Every send is acknowledged by exactly one
later receive, in call order, so `await tx.send(v)` returns only once the
receiver has claimed `v`.
"""

from __future__ import annotations

import itertools
from collections import deque
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Final, final

from corsa._logging import get_logger
from corsa.channels.stats import ChannelStats
from corsa.deferred import Deferred
from corsa.errors import ReceiverEndedError, SenderEndedError
from corsa.query import Query

if TYPE_CHECKING:
    import anyio

    from corsa.channels.queue import TransferQueue

__all__ = ['ChannelStatus', 'Eof', 'EofType', 'Receiver', 'Sender']

logger = get_logger(__name__)

_channel_ids = itertools.count(1)


@final
class EofType:
    """Type of the `Eof` marker. There is only ever one instance."""

    _instance: EofType | None = None

    def __new__(cls) -> EofType:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'Eof'

    def __reduce__(self) -> str:
        return 'Eof'


Eof: Final = EofType()
"""End-of-stream marker returned by `Receiver.receive()`. Compare with `is`."""


class ChannelStatus(Enum):
    """Status register shared by a Sender/Receiver pair."""

    OPEN = 'open'
    ENDED_BY_SENDER = 'ended_by_sender'
    ENDED_BY_RECEIVER = 'ended_by_receiver'


class _ChannelState[T]:
    """Shared mutable state for a sender/receiver pair."""

    __slots__ = (
        'awaiters',
        'channel_id',
        'created_at',
        'queue',
        'status',
        'total_received',
        'total_sent',
    )

    def __init__(self, queue: TransferQueue[T | EofType]) -> None:
        self.queue = queue
        self.status: ChannelStatus = ChannelStatus.OPEN
        self.awaiters: deque[Deferred[None]] = deque()
        self.channel_id: int = next(_channel_ids)
        self.created_at: datetime = datetime.now(UTC)
        self.total_sent: int = 0
        self.total_received: int = 0

    def reject_awaiters(self, error_type: type[Exception]) -> int:
        rejected = 0
        while self.awaiters:
            self.awaiters.popleft().reject(error_type())
            rejected += 1
        return rejected

    def statistics(self) -> ChannelStats:
        queue_stats = self.queue.statistics()
        return ChannelStats(
            status=self.status.value,
            capacity=queue_stats.capacity,
            buffered=queue_stats.buffered,
            pending_senders=queue_stats.pending_senders,
            pending_receivers=queue_stats.pending_receivers,
            pending_acks=len(self.awaiters),
            total_sent=self.total_sent,
            total_received=self.total_received,
            created_at=self.created_at,
        )


class Sender[T]:
    """Sending half of a channel.

    `send()` and `end()` return once the receiver has claimed the value (or the
    end marker). They fail fast, before anything is queued, once the channel
    has reached a terminal status.
    """

    __slots__ = ('_state',)

    def __init__(self, state: _ChannelState[T]) -> None:
        self._state = state

    @property
    def status(self) -> ChannelStatus:
        return self._state.status

    async def send(self, value: T) -> None:
        """Send a value and wait until the receiver has claimed it.

        Args:
            value: The value to send. Any object, including None.

        Raises:
            SenderEndedError: If this sender already ended the channel, or the
                receiver observed the end marker before claiming this value.
            ReceiverEndedError: If the receiver ended the channel before or
                while this send was pending.

        Example:
            ```python
            tx, rx = channel()
            async with anyio.create_task_group() as tg:
                tg.start_soon(tx.send, 42)
                assert await rx.receive() == 42
            ```
        """
        await self._enqueue(value)

    async def end(self) -> None:
        """End the channel and wait until the receiver has observed `Eof`.

        Raises:
            SenderEndedError: If the channel was already ended by the sender.
            ReceiverEndedError: If the receiver ended the channel.
        """
        await self._enqueue(Eof)

    def _check_open(self) -> None:
        status = self._state.status
        if status is ChannelStatus.ENDED_BY_RECEIVER:
            raise ReceiverEndedError()
        if status is ChannelStatus.ENDED_BY_SENDER:
            raise SenderEndedError()

    async def _enqueue(self, slot: T | EofType) -> None:
        self._check_open()
        state = self._state
        awaiter: Deferred[None] = Deferred()
        state.awaiters.append(awaiter)
        admission = state.queue.put(slot)
        if slot is not Eof:
            state.total_sent += 1
        try:
            await awaiter.wait()
        except BaseException:
            # Withdraw a write that never got into the buffer so that later
            # receives keep pairing with the right awaiter.
            if admission is not None and state.queue.discard(admission):
                if awaiter in state.awaiters:
                    state.awaiters.remove(awaiter)
                if slot is not Eof:
                    state.total_sent -= 1
            raise

    def statistics(self) -> ChannelStats:
        """Snapshot of the channel's queue and counters."""
        return self._state.statistics()

    def __repr__(self) -> str:
        return f'Sender(channel={self._state.channel_id}, status={self._state.status.value})'


class Receiver[T]:
    """Receiving half of a channel.

    Supports `await rx.receive()` and `async for value in rx`. Iteration stops
    at the end marker without yielding it. Only one task should receive from a
    channel at a time.
    """

    __slots__ = ('_state',)

    def __init__(self, state: _ChannelState[T]) -> None:
        self._state = state

    @property
    def status(self) -> ChannelStatus:
        return self._state.status

    async def receive(self) -> T | EofType:
        """Receive the next value, or `Eof` once the channel has ended.

        Suspends while the channel is open and nothing has been sent. Once the
        end marker has been observed, or after `end()`, every call returns
        `Eof` immediately.

        Example:
            ```python
            value = await rx.receive()
            if value is Eof:
                return
            ```
        """
        state = self._state
        if state.status is ChannelStatus.OPEN:
            return self._claim(await state.queue.read())
        if state.status is ChannelStatus.ENDED_BY_SENDER:
            state.reject_awaiters(SenderEndedError)
        return Eof

    def try_receive(self) -> T | EofType:
        """Receive without suspending.

        Raises:
            ChannelEmptyError: If the channel is open and nothing is available.
        """
        state = self._state
        if state.status is ChannelStatus.OPEN:
            return self._claim(state.queue.read_nowait())
        if state.status is ChannelStatus.ENDED_BY_SENDER:
            state.reject_awaiters(SenderEndedError)
        return Eof

    def _claim(self, slot: T | EofType) -> T | EofType:
        state = self._state
        if state.status is not ChannelStatus.OPEN:
            # end() was called while this receive was suspended
            return Eof
        if slot is Eof:
            state.status = ChannelStatus.ENDED_BY_SENDER
            logger.debug('channel.eof_observed', channel=state.channel_id, received=state.total_received)
        else:
            state.total_received += 1
        if state.awaiters:
            state.awaiters.popleft().resolve(None)
        return slot

    def end(self) -> None:
        """End the channel from the receiving side.

        Every pending send/end fails with `ReceiverEndedError`, as does every
        later one. A receive suspended in another task wakes up with `Eof`.
        Calling it again has no further effect.
        """
        state = self._state
        if state.status is ChannelStatus.OPEN:
            state.status = ChannelStatus.ENDED_BY_RECEIVER
            logger.debug('channel.receiver_ended', channel=state.channel_id, received=state.total_received)
        state.reject_awaiters(ReceiverEndedError)
        state.queue.release_receivers(Eof)

    def ready(self) -> bool:
        """True if `receive()` would return without suspending."""
        state = self._state
        return state.status is not ChannelStatus.OPEN or state.queue.readable()

    @property
    def waiting(self) -> bool:
        """True while a `receive()` is suspended on this receiver."""
        return self._state.queue.statistics().pending_receivers > 0

    def watch(self, event: anyio.Event) -> None:
        """Set `event` once something is sent, a receive parks, or the channel ends."""
        self._state.queue.watch(event)

    def unwatch(self, event: anyio.Event) -> None:
        self._state.queue.unwatch(event)

    def query(self) -> Query[T]:
        """Wrap this receiver in a `Query` for chained operators."""
        return Query(self)

    def statistics(self) -> ChannelStats:
        """Snapshot of the channel's queue and counters."""
        return self._state.statistics()

    def __aiter__(self) -> Receiver[T]:
        return self

    async def __anext__(self) -> T:
        value = await self.receive()
        if value is Eof:
            raise StopAsyncIteration
        return value  # type: ignore[return-value]

    def __repr__(self) -> str:
        return f'Receiver(channel={self._state.channel_id}, status={self._state.status.value})'


def create_channel[T](queue: TransferQueue[Any]) -> tuple[Sender[T], Receiver[T]]:
    """Build a sender/receiver pair around an existing queue (sync helper for factory)."""
    state: _ChannelState[T] = _ChannelState(queue)
    logger.debug('channel.created', channel=state.channel_id, capacity=queue.statistics().capacity)
    return Sender(state), Receiver(state)
