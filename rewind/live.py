"""Observable single-value state cells."""

import asyncio
import logging
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LiveValue(Generic[T]):
    """
    Holds the latest value and notifies subscribers on every write.

    Subscribers always see the newest value; values set while nobody is
    listening are not replayed.
    """

    def __init__(self, initial: T, name: str = ""):
        self._value = initial
        self._name = name
        self._subscribers: list[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        """Replace the value and notify subscribers."""
        self._value = value
        if self._name:
            logger.debug("%s -> %r", self._name, value)
        for callback in list(self._subscribers):
            callback(value)

    def subscribe(self, callback: Callable[[T], None], emit_current: bool = False) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it."""
        self._subscribers.append(callback)
        if emit_current:
            callback(self._value)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def wait_for(self, predicate: Callable[[T], bool]) -> T:
        """Wait until the value (current or a later one) satisfies `predicate`."""
        future: asyncio.Future = asyncio.get_running_loop().create_future()

        def check(value: T) -> None:
            if not future.done() and predicate(value):
                future.set_result(value)

        unsubscribe = self.subscribe(check, emit_current=True)
        try:
            return await future
        finally:
            unsubscribe()

    def __repr__(self) -> str:
        return f"LiveValue({self._name or '?'}={self._value!r})"
