"""Query operators over receivers and other async iterables.

`Query` wraps any async iterable (usually a `Receiver`) and offers LINQ-style
operators. Chaining operators (`map`, `filter`, `take`, ...) are lazy and return
a new `Query`; terminal operators (`collect`, `sum`, `first`, ...) consume the
source and return a value.

A query is single-pass, like the receiver it reads from. Operators that stop
early (`take`, `first`, `any`, ...) leave the rest of the channel unread and
the channel open.

Example:
    ```python
    evens = await rx.query().where(lambda n: n % 2 == 0).map(str).collect()
    ```
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, overload

from corsa.errors import ElementOutOfRangeError, MoreThanOneElementError, SequenceEmptyError

if TYPE_CHECKING:
    from collections.abc import AsyncIterable, AsyncIterator, Callable, Hashable, Iterable

__all__ = ['Query']

_MISSING: Any = object()


class Query[T]:
    """Lazy, single-pass query over an async iterable."""

    __slots__ = ('_source',)

    def __init__(self, source: AsyncIterable[T]) -> None:
        self._source = source

    def __aiter__(self) -> AsyncIterator[T]:
        return aiter(self._source)

    # --- Chaining operators ---

    def map[U](self, selector: Callable[[T], U]) -> Query[U]:
        """Project each element with `selector`."""

        async def mapped() -> AsyncIterator[U]:
            async for value in self._source:
                yield selector(value)

        return Query(mapped())

    select = map

    def filter(self, predicate: Callable[[T], bool]) -> Query[T]:
        """Keep elements for which `predicate` is true."""

        async def filtered() -> AsyncIterator[T]:
            async for value in self._source:
                if predicate(value):
                    yield value

        return Query(filtered())

    where = filter

    def select_many[U](self, selector: Callable[[T], Iterable[U]]) -> Query[U]:
        """Project each element to an iterable and flatten the results."""

        async def flattened() -> AsyncIterator[U]:
            async for value in self._source:
                for item in selector(value):
                    yield item

        return Query(flattened())

    def take(self, count: int) -> Query[T]:
        """Yield the first `count` elements, without reading past them."""

        async def taken() -> AsyncIterator[T]:
            if count <= 0:
                return
            remaining = count
            async for value in self._source:
                yield value
                remaining -= 1
                if remaining == 0:
                    return

        return Query(taken())

    def skip(self, count: int) -> Query[T]:
        """Drop the first `count` elements."""

        async def skipped() -> AsyncIterator[T]:
            index = 0
            async for value in self._source:
                if index >= count:
                    yield value
                index += 1

        return Query(skipped())

    def distinct(self) -> Query[T]:
        """Drop repeated elements, keeping first occurrences. Elements must be hashable."""

        async def unique() -> AsyncIterator[T]:
            seen: set[Hashable] = set()
            async for value in self._source:
                if value not in seen:
                    seen.add(value)  # type: ignore[arg-type]
                    yield value

        return Query(unique())

    def concat(self, other: AsyncIterable[T]) -> Query[T]:
        """Yield all of this query, then all of `other`."""

        async def chained() -> AsyncIterator[T]:
            async for value in self._source:
                yield value
            async for value in other:
                yield value

        return Query(chained())

    def intersect(self, other: AsyncIterable[T]) -> Query[T]:
        """Yield distinct elements that also occur in `other`.

        `other` is read to the end before the first element is produced.
        """

        async def common() -> AsyncIterator[T]:
            right: set[Hashable] = {value async for value in other}  # type: ignore[misc]
            emitted: set[Hashable] = set()
            async for value in self._source:
                if value in right and value not in emitted:
                    emitted.add(value)  # type: ignore[arg-type]
                    yield value

        return Query(common())

    def order_by(self, key: Callable[[T], Any]) -> Query[T]:
        """Sort ascending by `key` (stable). Buffers the whole source."""
        return self._sorted(key, reverse=False)

    def order_by_descending(self, key: Callable[[T], Any]) -> Query[T]:
        """Sort descending by `key` (stable). Buffers the whole source."""
        return self._sorted(key, reverse=True)

    def _sorted(self, key: Callable[[T], Any], *, reverse: bool) -> Query[T]:
        async def ordered() -> AsyncIterator[T]:
            values = [value async for value in self._source]
            for value in sorted(values, key=key, reverse=reverse):
                yield value

        return Query(ordered())

    def reverse(self) -> Query[T]:
        """Yield elements in reverse order. Buffers the whole source."""

        async def reversed_() -> AsyncIterator[T]:
            values = [value async for value in self._source]
            for value in reversed(values):
                yield value

        return Query(reversed_())

    # --- Terminal operators ---

    async def collect(self) -> list[T]:
        """Read every element into a list."""
        return [value async for value in self._source]

    async def aggregate[A](self, func: Callable[[A, T], A], seed: A) -> A:
        """Fold elements into an accumulator starting from `seed`."""
        acc = seed
        async for value in self._source:
            acc = func(acc, value)
        return acc

    reduce = aggregate

    async def all(self, predicate: Callable[[T], bool]) -> bool:
        """True if every element satisfies `predicate` (True when empty)."""
        async for value in self._source:
            if not predicate(value):
                return False
        return True

    async def any(self, predicate: Callable[[T], bool] | None = None) -> bool:
        """True if any element (satisfying `predicate`, if given) exists."""
        async for value in self._source:
            if predicate is None or predicate(value):
                return True
        return False

    async def count(self, predicate: Callable[[T], bool] | None = None) -> int:
        """Number of elements (satisfying `predicate`, if given)."""
        total = 0
        async for value in self._source:
            if predicate is None or predicate(value):
                total += 1
        return total

    async def sum(self, selector: Callable[[T], Any] | None = None) -> Any:
        """Sum of elements (or of `selector(element)`). 0 when empty."""
        total: Any = 0
        async for value in self._source:
            total += value if selector is None else selector(value)
        return total

    async def average(self, selector: Callable[[T], Any] | None = None) -> float:
        """Arithmetic mean of elements (or of `selector(element)`).

        Raises:
            SequenceEmptyError: If there are no elements.
        """
        total: Any = 0
        count = 0
        async for value in self._source:
            total += value if selector is None else selector(value)
            count += 1
        if count == 0:
            raise SequenceEmptyError('average')
        return total / count

    async def element_at(self, index: int) -> T:
        """Element at zero-based `index`.

        Raises:
            ElementOutOfRangeError: If `index` is negative or past the end.
        """
        value = await self.element_at_or_default(index, _MISSING)
        if value is _MISSING:
            raise ElementOutOfRangeError(index)
        return value

    @overload
    async def element_at_or_default(self, index: int) -> T | None: ...
    @overload
    async def element_at_or_default[D](self, index: int, default: D) -> T | D: ...

    async def element_at_or_default(self, index: int, default: Any = None) -> Any:
        """Element at zero-based `index`, or `default` if out of range."""
        if index < 0:
            return default
        position = 0
        async for value in self._source:
            if position == index:
                return value
            position += 1
        return default

    async def first(self, predicate: Callable[[T], bool] | None = None) -> T:
        """First element (satisfying `predicate`, if given).

        Raises:
            SequenceEmptyError: If no element matches.
        """
        value = await self.first_or_default(predicate, _MISSING)
        if value is _MISSING:
            raise SequenceEmptyError('first')
        return value

    async def first_or_default(
        self, predicate: Callable[[T], bool] | None = None, default: Any = None
    ) -> Any:
        """First element (satisfying `predicate`, if given), or `default`."""
        async for value in self._source:
            if predicate is None or predicate(value):
                return value
        return default

    async def last(self, predicate: Callable[[T], bool] | None = None) -> T:
        """Last element (satisfying `predicate`, if given).

        Raises:
            SequenceEmptyError: If no element matches.
        """
        value = await self.last_or_default(predicate, _MISSING)
        if value is _MISSING:
            raise SequenceEmptyError('last')
        return value

    async def last_or_default(
        self, predicate: Callable[[T], bool] | None = None, default: Any = None
    ) -> Any:
        """Last element (satisfying `predicate`, if given), or `default`."""
        found = default
        async for value in self._source:
            if predicate is None or predicate(value):
                found = value
        return found

    async def single(self, predicate: Callable[[T], bool] | None = None) -> T:
        """The only element (satisfying `predicate`, if given).

        Raises:
            SequenceEmptyError: If no element matches.
            MoreThanOneElementError: If more than one element matches.
        """
        value = await self.single_or_default(predicate, _MISSING)
        if value is _MISSING:
            raise SequenceEmptyError('single')
        return value

    async def single_or_default(
        self, predicate: Callable[[T], bool] | None = None, default: Any = None
    ) -> Any:
        """The only matching element, or `default` if none matches.

        Raises:
            MoreThanOneElementError: If more than one element matches.
        """
        found = _MISSING
        async for value in self._source:
            if predicate is None or predicate(value):
                if found is not _MISSING:
                    raise MoreThanOneElementError('single')
                found = value
        return default if found is _MISSING else found
