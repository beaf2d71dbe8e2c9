"""Lookahead over a single-pass record stream.

BAM decoding cannot be rewound, but cluster growth needs to look an arbitrary
number of records ahead (bounded by genomic distance, not by a count). The
``PeekIterator`` keeps only the records that have been peeked and not yet
consumed.
"""

from __future__ import annotations

from collections import deque
from typing import Deque, Generic, Iterable, Iterator, Optional, TypeVar

T = TypeVar("T")


class PeekIterator(Generic[T]):
    """Iterator with ``peek(k)`` lookahead.

    ``peek(0)`` is the item the next ``next()`` call returns. Exhaustion is
    reported by ``None`` from ``peek`` and by ``StopIteration`` from
    ``__next__``, so the wrapped stream must not yield ``None`` itself.
    """

    def __init__(self, source: Iterable[T]) -> None:
        self._source: Optional[Iterator[T]] = iter(source)
        self._buffer: Deque[T] = deque()

    def __iter__(self) -> "PeekIterator[T]":
        return self

    def __next__(self) -> T:
        if self._buffer:
            return self._buffer.popleft()
        if self._source is None:
            raise StopIteration
        try:
            return next(self._source)
        except StopIteration:
            self._source = None
            raise

    def next(self, default: Optional[T] = None) -> Optional[T]:
        """Consume and return the next item, or ``default`` once exhausted."""
        try:
            return self.__next__()
        except StopIteration:
            return default

    def peek(self, k: int = 0) -> Optional[T]:
        """Return the item ``k`` positions ahead without consuming it."""
        if k < 0:
            raise ValueError(f"peek offset must be >= 0, got {k}")
        while len(self._buffer) <= k:
            if self._source is None:
                return None
            try:
                self._buffer.append(next(self._source))
            except StopIteration:
                self._source = None
                return None
        return self._buffer[k]

    @property
    def buffered(self) -> int:
        """Number of records pulled from the source but not yet consumed."""
        return len(self._buffer)

    def close(self) -> None:
        """Close the source and drop buffered items; further calls see exhaustion."""
        source, self._source = self._source, None
        self._buffer.clear()
        close = getattr(source, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> "PeekIterator[T]":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
