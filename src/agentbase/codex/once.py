"""Initialize-once primitive for async resources."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class AsyncOnce(Generic[T]):
    """Memoize the result of an async factory.

    The first ``get()`` stores the in-flight task before yielding to the event
    loop, so concurrent callers share it instead of starting a second
    initialization. A failed initialization is forgotten and the next ``get()``
    starts over.
    """

    def __init__(self, factory: Callable[[], Awaitable[T]]) -> None:
        self._factory = factory
        self._task: Optional[asyncio.Future[T]] = None

    @property
    def started(self) -> bool:
        return self._task is not None

    async def get(self) -> T:
        task = self._task
        if task is None:
            task = asyncio.ensure_future(self._factory())
            self._task = task
        try:
            # shield: one cancelled waiter must not cancel the shared initialization
            return await asyncio.shield(task)
        except Exception:
            if self._task is task and task.done():
                self._task = None
            raise

    def reset(self) -> None:
        self._task = None


__all__ = ["AsyncOnce"]
