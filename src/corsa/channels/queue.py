"""Transfer queue: bounded handoff between suspended writers and readers.

All cross-endpoint coordination of a channel happens here. Every admission
decision is made synchronously between checkpoints, so no lock is needed under
cooperative scheduling.
"""

from __future__ import annotations

import math
from collections import deque
from typing import TYPE_CHECKING

from corsa.channels.stats import QueueStatistics
from corsa.deferred import Deferred
from corsa.errors import ChannelEmptyError

if TYPE_CHECKING:
    import anyio

__all__ = ['TransferQueue']


class TransferQueue[T]:
    """FIFO buffer with suspended writers (back-pressure) and readers.

    A write goes straight to the oldest waiting reader if there is one, into
    the buffer while it holds fewer than `capacity` items, and otherwise parks
    until a read makes room. A read first admits the oldest parked writer, then
    takes the oldest buffered item, and parks only when nothing is buffered.

    Capacity only limits how many items may sit unclaimed in the buffer; it
    does not bound the number of parked writers.
    """

    __slots__ = ('_buffer', '_capacity', '_readers', '_watchers', '_writers')

    def __init__(self, capacity: float = math.inf) -> None:
        """Initialize an empty queue.

        Args:
            capacity: Max buffered items before writers park. `math.inf` for
                unbounded, `0` for rendezvous handoff.

        Raises:
            ValueError: If capacity is negative.
        """
        if capacity < 0:
            msg = f'capacity must be >= 0, got {capacity}'
            raise ValueError(msg)
        self._capacity = capacity
        self._buffer: deque[T] = deque()
        self._writers: deque[tuple[T, Deferred[None]]] = deque()
        self._readers: deque[Deferred[T]] = deque()
        self._watchers: set[anyio.Event] = set()

    @property
    def capacity(self) -> float:
        return self._capacity

    def __len__(self) -> int:
        return len(self._buffer)

    def readable(self) -> bool:
        """True if `read_nowait()` would return an item."""
        return bool(self._buffer or self._writers)

    def watch(self, event: anyio.Event) -> None:
        """Set `event` on the next write, parked read, or reader release.

        A watch fires once and is then forgotten.
        """
        self._watchers.add(event)

    def unwatch(self, event: anyio.Event) -> None:
        self._watchers.discard(event)

    def _notify(self) -> None:
        if self._watchers:
            watchers, self._watchers = self._watchers, set()
            for event in watchers:
                event.set()

    def put(self, item: T) -> Deferred[None] | None:
        """Admit `item` now, or park it behind earlier writers.

        Returns:
            None if the item was handed to a reader or buffered, otherwise the
            admission handle that resolves once a read admits it.
        """
        self._notify()
        if self._readers:
            self._readers.popleft().resolve(item)
            return None
        if not self._writers and len(self._buffer) < self._capacity:
            self._buffer.append(item)
            return None
        admission: Deferred[None] = Deferred()
        self._writers.append((item, admission))
        return admission

    def discard(self, admission: Deferred[None]) -> bool:
        """Withdraw a parked write. Returns False if it was already admitted."""
        for entry in self._writers:
            if entry[1] is admission:
                self._writers.remove(entry)
                return True
        return False

    async def write(self, item: T) -> None:
        """Write `item`, suspending while the buffer is at capacity.

        If the calling task is cancelled while the write is still parked, it is
        withdrawn and the item never reaches a reader. If a read admitted the
        item before the cancelled task resumed, the item stays in the buffer
        and the caller still sees the cancellation.
        """
        admission = self.put(item)
        if admission is None:
            return
        try:
            await admission.wait()
        except BaseException:
            self.discard(admission)
            raise

    def _admit_next(self) -> None:
        if self._writers:
            item, admission = self._writers.popleft()
            self._buffer.append(item)
            admission.resolve(None)

    def read_nowait(self) -> T:
        """Take the oldest item without suspending.

        Raises:
            ChannelEmptyError: If nothing is buffered or parked.
        """
        self._admit_next()
        if self._buffer:
            return self._buffer.popleft()
        raise ChannelEmptyError()

    async def read(self) -> T:
        """Take the oldest item, suspending until a writer delivers one.

        If the calling task is cancelled after an item was handed to it but
        before it resumed, the item is put back at the head of the buffer.
        """
        self._admit_next()
        if self._buffer:
            return self._buffer.popleft()
        waiter: Deferred[T] = Deferred()
        self._readers.append(waiter)
        self._notify()
        try:
            return await waiter.wait()
        except BaseException:
            if waiter.done and not waiter.rejected:
                self._buffer.appendleft(waiter.result())
            else:
                self._readers.remove(waiter)
            raise

    def release_receivers(self, item: T) -> int:
        """Wake every parked reader with `item`. Returns how many were woken."""
        self._notify()
        woken = 0
        while self._readers:
            if self._readers.popleft().resolve(item):
                woken += 1
        return woken

    def statistics(self) -> QueueStatistics:
        """Snapshot of buffer and waiter counts."""
        return QueueStatistics(
            capacity=None if math.isinf(self._capacity) else int(self._capacity),
            buffered=len(self._buffer),
            pending_senders=len(self._writers),
            pending_receivers=len(self._readers),
        )
