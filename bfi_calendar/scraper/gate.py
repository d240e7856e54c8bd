"""
Bounded admission for concurrent page crawls.

``ConcurrencyGate`` is a FIFO counting semaphore for asyncio tasks. Unlike
``asyncio.Semaphore`` it hands out explicit permits and can be purged, which
rejects every queued waiter at once when a run is shut down.
"""

import asyncio
import logging
from collections import deque
from typing import Awaitable
from typing import Callable
from typing import Deque
from typing import TypeVar

from bfi_calendar.exceptions import GateCancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Permit:
    """A unit of admission handed out by ``ConcurrencyGate.acquire``."""

    __slots__ = ("generation", "released")

    def __init__(self, generation: int) -> None:
        self.generation = generation
        self.released = False

    def __repr__(self) -> str:
        return f"Permit(generation={self.generation}, released={self.released})"


class ConcurrencyGate:
    """
    Caps the number of tasks doing gated work at the same time.

    Waiters are admitted strictly in arrival order. All bookkeeping happens
    between awaits, so acquire and release are atomic on the event loop.

    ``purge()`` resets the count while permits may still be held. Those
    permits belong to an older generation; releasing them afterwards is logged
    and ignored rather than pushing the count below zero.
    """

    def __init__(self, capacity: int) -> None:
        if not isinstance(capacity, int) or capacity < 1:
            raise ValueError(f"capacity must be a positive integer, got {capacity!r}")
        self._capacity = capacity
        self._in_use = 0
        self._generation = 0
        self._waiters: Deque["asyncio.Future[Permit]"] = deque()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def in_use(self) -> int:
        return self._in_use

    @property
    def waiting(self) -> int:
        return sum(1 for waiter in self._waiters if not waiter.done())

    async def acquire(self) -> Permit:
        """Wait for and return a permit."""
        if self._in_use < self._capacity and not self.waiting:
            self._in_use += 1
            return Permit(self._generation)

        waiter: "asyncio.Future[Permit]" = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            return await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled() and waiter.exception() is None:
                # Admitted and cancelled in the same tick: hand the permit on.
                self.release(waiter.result())
            else:
                try:
                    self._waiters.remove(waiter)
                except ValueError:
                    pass
            raise

    def release(self, permit: Permit) -> None:
        """Return a permit and admit the longest waiting task."""
        if permit.released:
            raise RuntimeError(f"{permit!r} released twice")
        permit.released = True

        if permit.generation != self._generation:
            logger.warning(
                f"Ignoring release of a permit issued before the gate was purged ({permit!r})"
            )
            return

        self._in_use -= 1
        self._admit_waiters()

    async def run_exclusively(self, task: Callable[[], Awaitable[T]]) -> T:
        """Run ``task()`` while holding a permit; the permit is always returned."""
        permit = await self.acquire()
        try:
            return await task()
        finally:
            self.release(permit)

    def purge(self) -> int:
        """
        Reject every queued waiter with ``GateCancelled`` and reset the count.

        Only meant for abnormal shutdown. Tasks already holding permits keep
        running; see the class docstring for what happens when they release.

        Returns:
            Number of waiters rejected.
        """
        rejected = 0
        while self._waiters:
            waiter = self._waiters.popleft()
            if waiter.done():
                continue
            waiter.set_exception(GateCancelled("Task has been purged."))
            rejected += 1

        self._generation += 1
        self._in_use = 0
        if rejected:
            logger.info(f"Purged {rejected} waiting tasks from the gate")
        return rejected

    def _admit_waiters(self) -> None:
        while self._waiters and self._in_use < self._capacity:
            waiter = self._waiters.popleft()
            if waiter.done():
                continue
            self._in_use += 1
            waiter.set_result(Permit(self._generation))

    def __repr__(self) -> str:
        return (
            f"ConcurrencyGate(capacity={self._capacity}, in_use={self._in_use}, "
            f"waiting={self.waiting})"
        )
