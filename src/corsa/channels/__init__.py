"""Channels: a sender/receiver pair connected by a transfer queue.

- `channel(capacity)`: create a (Sender, Receiver) pair
- `select(*receivers)`: merge receivers into one (async context manager)
- `source(producer)`: run a producer in the background and read its output

Every `send()` returns once the receiver has claimed that value, so a sender
always knows its value was consumed. `Sender.end()` marks end-of-stream;
`Receiver.end()` cancels the channel from the receiving side.

## Cancellation & Timeouts

Suspended operations integrate with anyio cancel scopes. A send cancelled
before its value entered the buffer is withdrawn; a receive cancelled after a
value was handed to it puts the value back. Timeouts are enforced by the
caller:
    ```python
    with anyio.fail_after(5):
        value = await rx.receive()
    ```
"""

from corsa.channels.channel import ChannelStatus, Eof, EofType, Receiver, Sender
from corsa.channels.factory import channel
from corsa.channels.queue import TransferQueue
from corsa.channels.fanin import select, source
from corsa.channels.stats import ChannelStats, QueueStatistics

__all__ = [
    'ChannelStats',
    'ChannelStatus',
    'Eof',
    'EofType',
    'QueueStatistics',
    'Receiver',
    'Sender',
    'TransferQueue',
    'channel',
    'select',
    'source',
]
