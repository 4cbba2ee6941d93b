"""Channel statistics structs."""

from __future__ import annotations

from datetime import datetime

import msgspec

__all__ = ['ChannelStats', 'QueueStatistics']


class QueueStatistics(msgspec.Struct, frozen=True, gc=False):
    """Occupancy snapshot of a transfer queue."""

    capacity: int | None
    buffered: int
    pending_senders: int
    pending_receivers: int


class ChannelStats(msgspec.Struct, frozen=True, gc=False):
    """Statistics snapshot for a channel."""

    status: str
    capacity: int | None
    buffered: int
    pending_senders: int
    pending_receivers: int
    pending_acks: int
    total_sent: int
    total_received: int
    created_at: datetime
