"""Error types for channels and the query operators built on them."""

from __future__ import annotations

__all__ = [
    'ChannelEmptyError',
    'ChannelError',
    'ElementOutOfRangeError',
    'MoreThanOneElementError',
    'QueryError',
    'ReceiverEndedError',
    'SenderEndedError',
    'SequenceEmptyError',
]


# --- Channel Errors ---


class ChannelError(Exception):
    """Base class for errors raised by channel endpoints."""


class SenderEndedError(ChannelError):
    """The sender has already ended the channel.

    Raised by `send()`/`end()` after the sender's `end()` completed, and used to
    reject sends that were still pending when the receiver observed `Eof`.
    """

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason
        super().__init__(reason or 'Cannot send to a closed channel')


class ReceiverEndedError(ChannelError):
    """The receiver has ended the channel; pending and future sends fail."""

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason
        super().__init__(reason or 'Cannot send to a channel the receiver has ended')


class ChannelEmptyError(ChannelError):
    """No value is available without suspending."""

    def __init__(self) -> None:
        super().__init__('Channel empty')


# --- Query Errors ---


class QueryError(Exception):
    """Base class for errors raised by query operators."""


class ElementOutOfRangeError(QueryError):
    """Requested index is past the end of the sequence."""

    def __init__(self, index: int) -> None:
        self.index = index
        super().__init__(f'Element at index {index} is out of range')


class SequenceEmptyError(QueryError):
    """The sequence (or its matching subset) has no elements."""

    def __init__(self, operation: str | None = None) -> None:
        self.operation = operation
        msg = 'Sequence contains no matching elements'
        if operation:
            msg = f'{operation}: {msg}'
        super().__init__(msg)


class MoreThanOneElementError(QueryError):
    """A single-element operator matched more than one element."""

    def __init__(self, operation: str | None = None) -> None:
        self.operation = operation
        msg = 'Sequence contains more than one matching element'
        if operation:
            msg = f'{operation}: {msg}'
        super().__init__(msg)
