"""Fan-in and producer helpers that run their forwarding tasks in a task group."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import anyio

from corsa.channels.channel import ChannelStatus, Eof, Receiver, Sender
from corsa.channels.factory import channel
from corsa.errors import ReceiverEndedError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

__all__ = ['select', 'source']


async def _end_quietly(tx: Sender[Any]) -> None:
    try:
        await tx.end()
    except ReceiverEndedError:
        pass


@asynccontextmanager
async def select(*receivers: Receiver[Any], capacity: int = 1) -> AsyncIterator[Receiver[Any]]:
    """Merge several receivers into one.

    Forwards values from every input concurrently into a new channel and ends
    it once all inputs have reached `Eof`. Values from one input keep their
    relative order; across inputs the order is whatever the scheduler produces.

    Forwarding is driven by demand: a value is taken from an input only while
    a receive on the merged channel is waiting for it. Leaving the block ends
    the merged receiver and cancels the forwarding tasks; the input channels
    are left open, and every value not yet received through the merged
    receiver is still readable on its input.

    Args:
        *receivers: Input receivers. With none, the merged channel is ended
            immediately.
        capacity: Buffer capacity of the merged channel.

    Example:
        ```python
        async with select(rx1, rx2) as merged:
            async for value in merged:
                print(value)
        ```
    """
    tx, rx = channel(capacity)
    remaining = len(receivers)

    async def forward(source_rx: Receiver[Any]) -> None:
        # Claim from the input only while a merged receive is parked, so the
        # value is handed over before anything can end the merged side.
        nonlocal remaining
        try:
            while rx.status is ChannelStatus.OPEN:
                if rx.waiting and source_rx.ready():
                    value = source_rx.try_receive()
                    if value is Eof:
                        break
                    await tx.send(value)
                    continue
                changed = anyio.Event()
                rx.watch(changed)
                source_rx.watch(changed)
                try:
                    await changed.wait()
                finally:
                    rx.unwatch(changed)
                    source_rx.unwatch(changed)
            else:
                return
        except ReceiverEndedError:
            return
        remaining -= 1
        if remaining == 0:
            await _end_quietly(tx)

    async with anyio.create_task_group() as tg:
        for source_rx in receivers:
            tg.start_soon(forward, source_rx)
        if not receivers:
            tg.start_soon(_end_quietly, tx)
        try:
            yield rx
        finally:
            rx.end()
            tg.cancel_scope.cancel()


@asynccontextmanager
async def source[T](
    producer: Callable[[Sender[T]], Awaitable[None]], capacity: int = 1
) -> AsyncIterator[Receiver[T]]:
    """Run `producer(sender)` in the background and yield the receiving end.

    The channel is ended when the producer returns without ending it itself.
    Leaving the block ends the receiver, so a producer still sending gets
    `ReceiverEndedError`, which is treated as a normal stop.

    Example:
        ```python
        async def numbers(tx):
            for i in range(10):
                await tx.send(i)

        async with source(numbers) as rx:
            total = await rx.query().sum()
        ```
    """
    tx, rx = channel(capacity)

    async def run() -> None:
        try:
            await producer(tx)
            if tx.status is ChannelStatus.OPEN:
                await tx.end()
        except ReceiverEndedError:
            return

    async with anyio.create_task_group() as tg:
        tg.start_soon(run)
        try:
            yield rx
        finally:
            rx.end()
            tg.cancel_scope.cancel()
