"""Channel factory."""

from __future__ import annotations

import math

from corsa._config import get_config
from corsa.channels.channel import Receiver, Sender, create_channel
from corsa.channels.queue import TransferQueue

__all__ = ['channel']


def channel[T](capacity: int | None = None, *, unbounded: bool = False) -> tuple[Sender[T], Receiver[T]]:
    """Create a single-producer single-consumer channel.

    Returns a (Sender, Receiver) pair sharing one transfer queue and status
    register. Synchronous: nothing is awaited until the first send or receive.

    Args:
        capacity: Max values waiting in the buffer before `send()` parks the
            sender until a receive makes room. `0` makes every send wait for a
            receive. If None, uses `get_config().default_capacity`
            (unbounded unless configured otherwise).
        unbounded: If True, the buffer has no size limit and `capacity` is
            ignored.

    Returns:
        Tuple of (Sender[T], Receiver[T]).

    Raises:
        ValueError: If capacity is negative.

    Example:
        ```python
        tx, rx = channel(capacity=1)

        async def produce():
            for i in range(3):
                await tx.send(i)
            await tx.end()

        async with anyio.create_task_group() as tg:
            tg.start_soon(produce)
            assert [v async for v in rx] == [0, 1, 2]
        ```
    """
    if not unbounded and capacity is None:
        capacity = get_config().default_capacity

    buffer_size: int | float = math.inf if unbounded or capacity is None else capacity

    return create_channel(TransferQueue(buffer_size))
