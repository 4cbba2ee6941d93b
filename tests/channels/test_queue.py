"""Tests for TransferQueue: admission, handoff, and back-pressure."""

from __future__ import annotations

import math

import anyio
import pytest
from corsa import ChannelEmptyError, TransferQueue


class TestTransferQueueBasic:
    """Tests for unbounded write/read."""

    async def test_write_then_read(self) -> None:
        queue: TransferQueue[int] = TransferQueue()
        await queue.write(1)
        await queue.write(2)
        assert len(queue) == 2
        assert await queue.read() == 1
        assert await queue.read() == 2
        assert len(queue) == 0

    async def test_read_first_receives_direct_handoff(self) -> None:
        """A parked reader gets the next write without it touching the buffer."""
        queue: TransferQueue[str] = TransferQueue()
        received: list[str] = []

        async def reader() -> None:
            received.append(await queue.read())

        async with anyio.create_task_group() as tg:
            tg.start_soon(reader)
            await anyio.wait_all_tasks_blocked()
            assert queue.statistics().pending_receivers == 1
            await queue.write('hello')
            assert len(queue) == 0

        assert received == ['hello']

    async def test_default_capacity_is_unbounded(self) -> None:
        queue: TransferQueue[int] = TransferQueue()
        assert queue.capacity == math.inf
        assert queue.statistics().capacity is None

    def test_negative_capacity_raises(self) -> None:
        with pytest.raises(ValueError, match='capacity must be >= 0'):
            TransferQueue(-1)


class TestTransferQueueBounded:
    """Tests for capacity-driven admission."""

    async def test_write_past_capacity_waits_for_one_read(self) -> None:
        """Capacity 3: writes 1..3 are immediate, write 4 waits for one read."""
        queue: TransferQueue[int] = TransferQueue(3)
        for value in (1, 2, 3):
            await queue.write(value)

        admitted: list[int] = []

        async def write_four() -> None:
            await queue.write(4)
            admitted.append(4)

        async with anyio.create_task_group() as tg:
            tg.start_soon(write_four)
            await anyio.sleep(0.25)
            assert admitted == []
            assert queue.statistics().pending_senders == 1

            assert await queue.read() == 1
            with anyio.fail_after(1):
                while not admitted:
                    await anyio.sleep(0.01)

        assert admitted == [4]
        assert [await queue.read() for _ in range(3)] == [2, 3, 4]

    async def test_capacity_one_scenario(self) -> None:
        """Capacity 1: write(2) stays parked until the read that returns 1."""
        queue: TransferQueue[int] = TransferQueue(1)
        await queue.write(1)
        admitted: list[int] = []

        async def write_two() -> None:
            await queue.write(2)
            admitted.append(2)

        async with anyio.create_task_group() as tg:
            tg.start_soon(write_two)
            await anyio.wait_all_tasks_blocked()
            assert admitted == []

            assert await queue.read() == 1
            await anyio.wait_all_tasks_blocked()
            assert admitted == [2]

        assert await queue.read() == 2

    async def test_new_write_queues_behind_parked_writers(self) -> None:
        """A write racing with a just-admitted writer keeps FIFO order."""
        queue: TransferQueue[str] = TransferQueue(1)
        await queue.write('a')

        async with anyio.create_task_group() as tg:
            tg.start_soon(queue.write, 'b')
            await anyio.wait_all_tasks_blocked()

            assert await queue.read() == 'a'
            # 'b' now fills the buffer, so 'c' must park
            assert queue.put('c') is not None

            assert await queue.read() == 'b'
            assert await queue.read() == 'c'

    async def test_zero_capacity_is_rendezvous(self) -> None:
        """Capacity 0: every write waits for a read."""
        queue: TransferQueue[int] = TransferQueue(0)
        admitted: list[int] = []

        async def writer() -> None:
            await queue.write(9)
            admitted.append(9)

        async with anyio.create_task_group() as tg:
            tg.start_soon(writer)
            await anyio.wait_all_tasks_blocked()
            assert admitted == []
            assert len(queue) == 0
            assert await queue.read() == 9

        assert admitted == [9]

    async def test_zero_capacity_write_to_parked_reader(self) -> None:
        """Capacity 0: a write goes straight to an already parked reader."""
        queue: TransferQueue[int] = TransferQueue(0)
        received: list[int] = []

        async def reader() -> None:
            received.append(await queue.read())

        async with anyio.create_task_group() as tg:
            tg.start_soon(reader)
            await anyio.wait_all_tasks_blocked()
            assert queue.put(5) is None

        assert received == [5]


class TestTransferQueueWithdrawal:
    """Tests for discard(), cancellation, and release_receivers()."""

    async def test_discard_parked_write(self) -> None:
        queue: TransferQueue[int] = TransferQueue(0)
        admission = queue.put(1)
        assert admission is not None
        assert queue.discard(admission) is True
        assert queue.statistics().pending_senders == 0
        assert queue.discard(admission) is False

    async def test_cancelled_write_is_withdrawn(self) -> None:
        queue: TransferQueue[int] = TransferQueue(1)
        await queue.write(1)

        with anyio.move_on_after(0.05):
            await queue.write(2)

        assert queue.statistics().pending_senders == 0
        assert await queue.read() == 1
        with pytest.raises(ChannelEmptyError):
            queue.read_nowait()

    async def test_cancelled_read_is_withdrawn(self) -> None:
        queue: TransferQueue[int] = TransferQueue()

        with anyio.move_on_after(0.05):
            await queue.read()

        assert queue.statistics().pending_receivers == 0
        await queue.write(3)
        assert len(queue) == 1
        assert await queue.read() == 3

    async def test_release_receivers_wakes_all(self) -> None:
        queue: TransferQueue[object] = TransferQueue()
        marker = object()
        received: list[object] = []

        async def reader() -> None:
            received.append(await queue.read())

        async with anyio.create_task_group() as tg:
            tg.start_soon(reader)
            tg.start_soon(reader)
            await anyio.wait_all_tasks_blocked()
            assert queue.release_receivers(marker) == 2

        assert received == [marker, marker]


class TestTransferQueueNoWait:
    """Tests for read_nowait()."""

    async def test_read_nowait_empty_raises(self) -> None:
        queue: TransferQueue[int] = TransferQueue()
        with pytest.raises(ChannelEmptyError, match='Channel empty'):
            queue.read_nowait()

    async def test_read_nowait_admits_parked_writer(self) -> None:
        queue: TransferQueue[int] = TransferQueue(0)
        admission = queue.put(4)
        assert admission is not None
        assert queue.read_nowait() == 4
        assert admission.done

    async def test_statistics_snapshot(self) -> None:
        queue: TransferQueue[int] = TransferQueue(2)
        queue.put(1)
        queue.put(2)
        queue.put(3)
        stats = queue.statistics()
        assert stats.capacity == 2
        assert stats.buffered == 2
        assert stats.pending_senders == 1
        assert stats.pending_receivers == 0


class TestTransferQueueWatch:
    """Tests for readable() and change notification."""

    async def test_readable_counts_parked_writers(self) -> None:
        queue: TransferQueue[int] = TransferQueue(0)
        assert not queue.readable()
        queue.put(1)
        assert queue.readable()
        assert len(queue) == 0

    async def test_watch_fires_on_put(self) -> None:
        queue: TransferQueue[int] = TransferQueue()
        changed = anyio.Event()
        queue.watch(changed)
        assert not changed.is_set()

        queue.put(1)
        assert changed.is_set()

    async def test_watch_fires_when_reader_parks(self) -> None:
        queue: TransferQueue[int] = TransferQueue()
        changed = anyio.Event()
        queue.watch(changed)

        async with anyio.create_task_group() as tg:
            tg.start_soon(queue.read)
            with anyio.fail_after(1):
                await changed.wait()
            assert queue.statistics().pending_receivers == 1
            queue.put(2)

    async def test_watch_fires_once(self) -> None:
        queue: TransferQueue[int] = TransferQueue()
        first = anyio.Event()
        queue.watch(first)
        queue.put(1)

        second = anyio.Event()
        queue.watch(second)
        queue.unwatch(second)
        queue.put(2)
        assert first.is_set()
        assert not second.is_set()
