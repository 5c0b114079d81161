"""
Cancellable delayed work keyed by session id.

The relay schedules two kinds of future work: the forced close of an
evicted controller after its grace period, and the expiry of an orphaned
active slot's reclaim window. Both are asyncio tasks tracked here so they
can be cancelled when the session resolves itself first (closes on its
own, reconnects, or is superseded).

Scheduling a key that already has a pending task replaces that task.
"""

import asyncio
from collections.abc import Awaitable, Callable

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

SessionCallback = Callable[[str], Awaitable[None]]


class SessionTaskScheduler:
    """Holds at most one pending delayed callback per session id."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._tasks: dict[str, asyncio.Task] = {}

    def schedule(self, session_id: str, delay: float, callback: SessionCallback) -> asyncio.Task:
        """
        Run `callback(session_id)` after `delay` seconds unless cancelled first.

        Args:
            session_id: Key for the task
            delay: Seconds to wait
            callback: Coroutine function invoked with the session id
        """
        self.cancel(session_id)

        async def delayed() -> None:
            try:
                await asyncio.sleep(delay)
            except asyncio.CancelledError:
                logger.debug("Scheduled task cancelled", scheduler=self.name, session_id=session_id)
                return

            # Untrack before running so the callback can not cancel itself
            if self._tasks.get(session_id) is task:
                del self._tasks[session_id]

            logger.debug("Scheduled task firing", scheduler=self.name, session_id=session_id)
            try:
                await callback(session_id)
            except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: timer callbacks run detached; a failure must be logged, not lost in an unobserved task
                logger.error(
                    "Scheduled task failed",
                    scheduler=self.name,
                    session_id=session_id,
                    error=str(e),
                    exc_info=True,
                )

        task = asyncio.create_task(delayed(), name=f"{self.name}:{session_id}")
        self._tasks[session_id] = task
        logger.debug("Scheduled task created", scheduler=self.name, session_id=session_id, delay=delay)
        return task

    def cancel(self, session_id: str) -> bool:
        """
        Cancel the pending task for a session, if any.

        Returns:
            True if a pending task was cancelled
        """
        task = self._tasks.pop(session_id, None)
        if task is None:
            return False
        task.cancel()
        return True

    def is_pending(self, session_id: str) -> bool:
        return session_id in self._tasks

    def pending_sessions(self) -> set[str]:
        return set(self._tasks)

    async def cancel_all(self) -> None:
        """Cancel every pending task and wait for them to unwind."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.debug("Scheduled tasks cleared", scheduler=self.name, cancelled=len(tasks))

    def __len__(self) -> int:
        return len(self._tasks)
