"""
StreamingProperty - observable value with a retained latest state.

A StreamingProperty is written by one producer (the engine) and read by any
number of observers:

- `value` returns the latest state at any time (poll)
- `subscribe(callback)` calls back with the current value immediately and
  then on every update (push)
- `async for value in prop.stream()` reads updates through a private
  unbounded queue per reader (pull)

Every reader gets its own queue, so a slow reader never blocks the producer
or other readers and never loses updates. After `_finalize()` no more
updates are accepted and all streams end.
"""

import asyncio
from typing import AsyncIterator, Callable, Generic, TypeVar

from agentrun.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Unsubscribe = Callable[[], None]


class StreamingProperty(Generic[T]):
    # Sentinel value to signal end of stream
    _SENTINEL = object()

    def __init__(self, initial: T, name: str = "property"):
        self.name = name
        self._value: T = initial
        self._callbacks: list[Callable[[T], None]] = []
        self._queues: set[asyncio.Queue] = set()
        self._finalized = False

    @property
    def value(self) -> T:
        """The current value."""
        return self._value

    @property
    def finalized(self) -> bool:
        return self._finalized

    def _update(self, new_value: T) -> None:
        """Set a new value and notify every observer. Ignored once finalized."""
        if self._finalized:
            return
        self._value = new_value
        for callback in list(self._callbacks):
            self._invoke(callback, new_value)
        for queue in self._queues:
            queue.put_nowait(new_value)

    def _finalize(self) -> None:
        """Mark the property complete and end all streams."""
        if self._finalized:
            return
        self._finalized = True
        for queue in self._queues:
            queue.put_nowait(self._SENTINEL)

    def _invoke(self, callback: Callable[[T], None], value: T) -> None:
        try:
            callback(value)
        except Exception:
            logger.exception("subscriber_callback_failed", property=self.name)

    def subscribe(self, callback: Callable[[T], None]) -> Unsubscribe:
        """
        Subscribe to changes. The callback is invoked immediately with the
        current value.

        Returns:
            A function that removes the subscription.
        """
        self._invoke(callback, self._value)
        if not self._finalized:
            self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    async def stream(self, include_current: bool = True) -> AsyncIterator[T]:
        """
        Iterate over updates until the property is finalized.

        Args:
            include_current: Yield the current value first
        """
        queue: asyncio.Queue = asyncio.Queue()
        if include_current:
            queue.put_nowait(self._value)
        if self._finalized:
            queue.put_nowait(self._SENTINEL)
        else:
            self._queues.add(queue)

        try:
            while True:
                item = await queue.get()
                if item is self._SENTINEL:
                    break
                yield item
        finally:
            self._queues.discard(queue)

    def __repr__(self) -> str:
        return f"StreamingProperty(name={self.name!r}, finalized={self._finalized}, value={self._value!r})"


__all__ = ["StreamingProperty", "Unsubscribe"]
