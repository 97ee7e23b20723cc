"""Coalescing queue that turns bursts of notifications into batch calls.

Record stores notify the indexer once per changed record, often many
times in a row for the same record. Each queue collects those
notifications by key and hands them to a batch coroutine after a quiet
period:

    IDLE --push--> PENDING --timer--> FLUSHING --done--> IDLE
                      ^                   |
                      +--push (re-arms)---+  (back to PENDING when done)

A push for a key that is already pending replaces the item in place and
leaves the timer alone. A push for a new key cancels the armed timer and
arms a fresh one.

Flushes are fire-and-forget. The index is derived data that ``reindex``
can rebuild, so a failing flush is logged and dropped rather than
surfaced to whoever sent the notification.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Hashable
from enum import StrEnum
from typing import Generic, TypeVar

import structlog

log = structlog.get_logger()

T = TypeVar("T")


class QueueState(StrEnum):
    IDLE = "idle"
    PENDING = "pending"
    FLUSHING = "flushing"


class DebounceQueue(Generic[T]):
    def __init__(
        self,
        name: str,
        flush: Callable[[list[T]], Awaitable[object]],
        *,
        key: Callable[[T], Hashable],
        delay: float,
    ) -> None:
        self.name = name
        self._flush = flush
        self._key = key
        self._delay = delay
        self._pending: dict[Hashable, T] = {}
        self._timer: asyncio.TimerHandle | None = None
        self._task: asyncio.Task[None] | None = None
        self._state = QueueState.IDLE

    @property
    def state(self) -> QueueState:
        return self._state

    @property
    def pending(self) -> list[T]:
        return list(self._pending.values())

    def push(self, item: T) -> None:
        """Queue ``item``. Must be called from a running event loop."""
        key = self._key(item)
        if key in self._pending:
            self._pending[key] = item
            return
        self._pending[key] = item
        if self._timer is not None:
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().call_later(self._delay, self._on_timer)
        if self._state is QueueState.IDLE:
            self._state = QueueState.PENDING

    def _on_timer(self) -> None:
        self._timer = None
        if self._task is not None and not self._task.done():
            # A flush is still running; this batch goes out right after it
            self._task.add_done_callback(lambda _: self._start_flush())
            return
        self._start_flush()

    def _start_flush(self) -> None:
        if not self._pending or (self._task is not None and not self._task.done()):
            return
        batch, self._pending = list(self._pending.values()), {}
        self._state = QueueState.FLUSHING
        self._task = asyncio.get_running_loop().create_task(self._run(batch))

    async def _run(self, batch: list[T]) -> None:
        try:
            await self._flush(batch)
        except Exception:
            log.warning("debounce_flush_error", queue=self.name, items=len(batch), exc_info=True)
        finally:
            self._state = QueueState.PENDING if self._pending else QueueState.IDLE

    async def flush(self) -> None:
        """Flush pending items now and return once the queue is idle.

        A batch queued behind a running flush is started by that flush's
        done callback, so keep waiting until no task runs and nothing is pending.
        """
        while True:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            if self._task is not None and not self._task.done():
                await asyncio.shield(self._task)
                continue
            if not self._pending:
                return
            self._start_flush()

    async def aclose(self) -> None:
        """Flush what is left. The queue stays usable afterwards."""
        await self.flush()
