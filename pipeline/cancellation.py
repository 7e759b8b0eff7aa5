"""Cooperative cancellation for matrix runs and retry backoff waits."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Union


class OperationCancelled(Exception):
    """Raised when a cancellation token fires during a wait."""


class CancellationToken:
    """A one-way flag. Once cancelled it stays cancelled."""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def sleep(self, delay: float) -> None:
        """Sleep for ``delay`` seconds, or raise OperationCancelled as soon as the token fires."""
        if self.cancelled:
            raise OperationCancelled("Cancelled before backoff wait")
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        raise OperationCancelled("Cancelled during backoff wait")


CancellationLike = Union[CancellationToken, Callable[[], bool], None]


def is_cancelled(token: CancellationLike) -> bool:
    """Accept a token, a zero-arg ``is_cancelled`` callable, or None."""
    if token is None:
        return False
    if isinstance(token, CancellationToken):
        return token.cancelled
    return bool(token())


async def cancellable_sleep(delay: float, token: CancellationLike = None) -> None:
    if isinstance(token, CancellationToken):
        await token.sleep(delay)
        return
    if is_cancelled(token):
        raise OperationCancelled("Cancelled before backoff wait")
    await asyncio.sleep(delay)
    if is_cancelled(token):
        raise OperationCancelled("Cancelled during backoff wait")
