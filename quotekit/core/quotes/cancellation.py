"""
Cooperative cancellation for quote fetches.

A `CancellationToken` is threaded explicitly through the router into every
provider call. The `CancellationController` owns the single active token
and always cancels the previous one before issuing the next.
"""

from __future__ import annotations

import asyncio
import itertools
from typing import Awaitable, Optional, TypeVar

from .errors import QuoteCancelledError


T = TypeVar("T")

_token_ids = itertools.count(1)


class CancellationToken:
    """One-shot cancellation flag with an awaitable signal."""

    def __init__(self, label: str = "") -> None:
        self.id = next(_token_ids)
        self.label = label
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "active"
        return f"CancellationToken(id={self.id}, {state})"

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise QuoteCancelledError(f"Quote request cancelled: {self.reason}")

    async def wait(self) -> None:
        await self._event.wait()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await `awaitable`, aborting it as soon as the token is cancelled."""
        self.raise_if_cancelled()
        work = asyncio.ensure_future(awaitable)
        watcher = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, watcher}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            watcher.cancel()

        if work.done():
            return work.result()

        work.cancel()
        await asyncio.gather(work, return_exceptions=True)
        raise QuoteCancelledError(f"Quote request cancelled: {self.reason}")


class CancellationController:
    """Holds the token of the most recently issued fetch."""

    def __init__(self) -> None:
        self._active: Optional[CancellationToken] = None

    @property
    def active(self) -> Optional[CancellationToken]:
        return self._active

    def issue(self, label: str = "") -> CancellationToken:
        self.cancel("superseded")
        token = CancellationToken(label)
        self._active = token
        return token

    def is_current(self, token: CancellationToken) -> bool:
        return self._active is token and not token.cancelled

    def cancel(self, reason: str = "cancelled") -> None:
        if self._active is not None:
            self._active.cancel(reason)
            self._active = None

    def release(self, token: CancellationToken) -> None:
        """Forget `token` once its fetch has committed, without cancelling it."""
        if self._active is token:
            self._active = None
