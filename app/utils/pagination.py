"""Lazy iteration over cursor-paged (skip/limit) listings."""

from collections.abc import Callable, Iterator
from typing import TypeVar

from models.content import Collection

T = TypeVar("T")

Fetch = Callable[..., Collection[T]]


def iterate_paginated(
    fetch: Fetch,
    *,
    skip: int = 0,
    limit: int | None = None,
) -> Iterator[T]:
    """Yield every item of a paged listing, one page at a time.

    *fetch* is called as ``fetch(skip=..., limit=...)`` and must return a
    :class:`~models.content.Collection`.  ``limit=None`` leaves the page size
    to the server.

    The next page starts at ``result.skip + len(result.items)`` rather than
    ``skip + limit`` because servers may cap the page size below what was
    asked for.  An empty page ends the iteration; ``total`` is ignored.
    Errors raised by *fetch* propagate to the consumer.
    """
    while True:
        result = fetch(skip=skip, limit=limit)
        if not result.items:
            return
        yield from result.items
        skip = result.skip + len(result.items)
