"""
Run-once gate for async initialization.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable


class Once:
    """
    Run an async initializer at most once successfully.

    Concurrent callers share the in-flight attempt. A failed attempt is
    reported to everyone awaiting it and then cleared, so the next call starts
    over. After a success every call returns immediately.
    """

    def __init__(self, initializer: Callable[[], Awaitable[None]]) -> None:
        self._initializer = initializer
        self._task: asyncio.Future[None] | None = None
        self._done = False

    @property
    def done(self) -> bool:
        return self._done

    async def __call__(self) -> None:
        if self._done:
            return None

        # No await between the check and the assignment: a single attempt per loop turn.
        task = self._task
        if task is None:
            task = asyncio.ensure_future(self._initializer())
            self._task = task

        try:
            # shield: a cancelled caller must not cancel the shared attempt.
            await asyncio.shield(task)
        except BaseException:
            if task.done() and self._task is task:
                self._task = None
            raise

        self._done = True
        return None
