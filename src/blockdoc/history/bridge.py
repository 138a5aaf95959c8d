"""History bridge interface and the deferred-boundary task queue.

The engine talks to undo/redo storage only through ``HistoryBridge``. The
bridge is advisory: grouping changes undo granularity, never the
correctness of a mutation.
"""

import asyncio
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from blockdoc.models.mutation import BlockMutation
from blockdoc.utils.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class HistoryBridge(Protocol):
    """Operations the engine calls on an external history layer."""

    def begin_group(self) -> None:
        """Open a group; nested groups close with the outermost end_group."""

    def end_group(self) -> None:
        """Close the innermost group."""

    def stop_capturing(self) -> None:
        """Close the current undo entry so the next change starts a new one."""

    def mark_position_before_change(self, position: Any = None) -> None:
        """Remember an opaque caret handle for the next undo entry."""

    def record(self, mutation: BlockMutation) -> None:
        """Observe one applied mutation."""

    def undo(self) -> Any:
        """Undo one entry and return its caret handle, if any."""

    def redo(self) -> Any:
        """Redo one entry and return its caret handle, if any."""

    def clear(self) -> None:
        """Forget all entries (after loading a new document)."""


class NullHistory:
    """History bridge that records nothing."""

    def begin_group(self) -> None:
        pass

    def end_group(self) -> None:
        pass

    def stop_capturing(self) -> None:
        pass

    def mark_position_before_change(self, position: Any = None) -> None:
        pass

    def record(self, mutation: BlockMutation) -> None:
        pass

    def undo(self) -> Any:
        return None

    def redo(self) -> Any:
        return None

    def clear(self) -> None:
        pass


class IdleQueue:
    """
    Explicit queue of callbacks to run on the next idle tick.

    Used to defer a history boundary until cascading side effects of an
    edit have been applied. The first scheduled callback arranges a flush
    through ``call_soon`` on the injected loop, or on the running loop when
    none was injected. Hosts without an event loop call ``flush()``.

    Example:
        >>> queue = IdleQueue()
        >>> queue.schedule(history.stop_capturing)
        >>> queue.flush()
        1
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop
        self._pending: list[Callable[[], Any]] = []
        self._flush_scheduled = False

    @property
    def pending(self) -> int:
        return len(self._pending)

    def schedule(self, callback: Callable[[], Any]) -> None:
        self._pending.append(callback)
        if self._flush_scheduled:
            return
        loop = self._loop or self._running_loop()
        if loop is not None:
            self._flush_scheduled = True
            loop.call_soon(self.flush)

    @staticmethod
    def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    def flush(self) -> int:
        """
        Run every queued callback in scheduling order.

        Callbacks scheduled while flushing run on the next flush.

        Returns:
            Number of callbacks run
        """
        self._flush_scheduled = False
        callbacks, self._pending = self._pending, []
        for callback in callbacks:
            callback()
        if callbacks:
            logger.debug("idle_queue_flushed", count=len(callbacks))
        return len(callbacks)
