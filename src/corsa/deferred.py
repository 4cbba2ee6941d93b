"""Deferred: a single-resolution completion handle built on anyio.Event."""

from __future__ import annotations

from typing import cast

import anyio

__all__ = ['Deferred']


class Deferred[T]:
    """A value (or error) delivered exactly once from one task to another.

    The first call to `resolve()` or `reject()` settles the handle; later calls
    return False and change nothing. Any number of tasks may `wait()` on it.
    There is no built-in timeout, compose with `anyio.fail_after()` instead.

    Example:
        ```python
        done = Deferred[int]()

        async def worker():
            done.resolve(42)

        async with anyio.create_task_group() as tg:
            tg.start_soon(worker)
            assert await done.wait() == 42
        ```
    """

    __slots__ = ('_error', '_event', '_settled', '_value')

    def __init__(self) -> None:
        self._event: anyio.Event = anyio.Event()
        self._value: T | None = None
        self._error: BaseException | None = None
        self._settled: bool = False

    @property
    def done(self) -> bool:
        """True once resolved or rejected."""
        return self._settled

    @property
    def rejected(self) -> bool:
        """True if settled with an error."""
        return self._error is not None

    def resolve(self, value: T) -> bool:
        """Settle with a value. Returns False if already settled."""
        if self._settled:
            return False
        self._value = value
        self._settled = True
        self._event.set()
        return True

    def reject(self, error: BaseException) -> bool:
        """Settle with an error. Returns False if already settled."""
        if self._settled:
            return False
        self._error = error
        self._settled = True
        self._event.set()
        return True

    def result(self) -> T:
        """Return the value without waiting.

        Raises:
            RuntimeError: If the handle is still pending.
            BaseException: The error it was rejected with.
        """
        if not self._settled:
            raise RuntimeError('Deferred is still pending')
        if self._error is not None:
            raise self._error
        return cast('T', self._value)

    async def wait(self) -> T:
        """Suspend until settled, then return the value or raise the error."""
        if not self._settled:
            await self._event.wait()
        return self.result()

    def __repr__(self) -> str:
        if not self._settled:
            state = 'pending'
        elif self._error is not None:
            state = f'rejected={self._error!r}'
        else:
            state = f'resolved={self._value!r}'
        return f'Deferred({state})'
