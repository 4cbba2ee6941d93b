"""
corsa: asynchronous uni-directional channels for anyio (asyncio or trio).

A channel is a Sender/Receiver pair. Sends are acknowledged one-to-one by
receives, back-pressure is expressed by suspending the sender, and either side
can end the channel.

```python
import anyio
import corsa

async def main():
    tx, rx = corsa.channel()

    async def produce():
        for i in range(3):
            await tx.send(i)
        await tx.end()

    async with anyio.create_task_group() as tg:
        tg.start_soon(produce)
        async for value in rx:
            print(value)

anyio.run(main)
```
"""

from corsa._config import ChannelConfig, get_config, init
from corsa.channels import (
    ChannelStats,
    ChannelStatus,
    Eof,
    EofType,
    Receiver,
    Sender,
    TransferQueue,
    channel,
    select,
    source,
)
from corsa.deferred import Deferred
from corsa.errors import (
    ChannelEmptyError,
    ChannelError,
    ElementOutOfRangeError,
    MoreThanOneElementError,
    QueryError,
    ReceiverEndedError,
    SenderEndedError,
    SequenceEmptyError,
)
from corsa.query import Query

__all__ = [
    'ChannelConfig',
    'ChannelEmptyError',
    'ChannelError',
    'ChannelStats',
    'ChannelStatus',
    'Deferred',
    'ElementOutOfRangeError',
    'Eof',
    'EofType',
    'MoreThanOneElementError',
    'Query',
    'QueryError',
    'Receiver',
    'ReceiverEndedError',
    'Sender',
    'SenderEndedError',
    'SequenceEmptyError',
    'TransferQueue',
    'channel',
    'get_config',
    'init',
    'select',
    'source',
]
