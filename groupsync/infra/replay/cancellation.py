# =============================================================================
# File: groupsync/infra/replay/cancellation.py
# Description: Explicit cancellation scopes for bounded log replay
# =============================================================================
# A scope is passed down from the caller of the replay into every drain.
# Each drain derives a child scope and cancels it on exit. Cancelling a scope
# cancels all of its descendants; the producer side of a log stream watches
# the scope it was opened with and stops as soon as it is cancelled.
# =============================================================================

from __future__ import annotations

import asyncio
import contextlib
from typing import Awaitable, Optional, Set, TypeVar

from groupsync.common.exceptions.exceptions import GroupSyncException

T = TypeVar("T")


class ScopeCancelledError(GroupSyncException):
    """Raised when work is attempted in, or interrupted by, a cancelled scope"""
    def __init__(self, reason: str = "scope cancelled"):
        super().__init__(reason)
        self.reason = reason


class CancellationScope:
    """
    Cancellable scope with parent/child propagation.

    Usage:
        root = CancellationScope()

        async with root.child() as scope:
            item = await scope.guard(stream.__anext__())

        root.cancel("account closed")  # fails every in-flight guard()
    """

    def __init__(self, parent: Optional[CancellationScope] = None):
        self._parent = parent
        self._children: Set[CancellationScope] = set()
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

        if parent is not None:
            if parent.cancelled:
                self._cancel_self(parent.reason)
            else:
                parent._children.add(self)

    # =========================================================================
    # State
    # =========================================================================

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def child(self) -> CancellationScope:
        """Derive a child scope, cancelled whenever this scope is."""
        return CancellationScope(parent=self)

    def cancel(self, reason: str = "scope cancelled") -> None:
        """Cancel this scope and every scope derived from it. Idempotent."""
        if self.cancelled:
            return
        self._cancel_self(reason)
        if self._parent is not None:
            self._parent._children.discard(self)

    def _cancel_self(self, reason: str) -> None:
        self._reason = reason
        self._event.set()
        children, self._children = self._children, set()
        for child in children:
            child._cancel_self(reason)

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise ScopeCancelledError(self._reason or "scope cancelled")

    # =========================================================================
    # Awaiting
    # =========================================================================

    async def wait(self) -> None:
        """Block until the scope is cancelled."""
        await self._event.wait()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """
        Await ``awaitable`` unless the scope gets cancelled first.

        Raises:
            ScopeCancelledError: If the scope is (or becomes) cancelled
        """
        task = asyncio.ensure_future(awaitable)
        if self.cancelled:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            self.raise_if_cancelled()

        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            waiter.cancel()
            # Let the awaitable unwind before the caller cleans up after it
            await asyncio.wait({task})
            raise

        if task.done():
            waiter.cancel()
            return task.result()

        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        raise ScopeCancelledError(self._reason or "scope cancelled")

    # =========================================================================
    # Context manager: the scope is released on exit
    # =========================================================================

    async def __aenter__(self) -> CancellationScope:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.cancel("scope released")
