"""Keyed debouncing of edit-driven rescans.

Rapid successive edits to one document collapse into a single call after a
quiet period. Scheduling a new call for a key cancels the pending one.
"""

import asyncio
import functools
from typing import Any, Awaitable, Callable, Dict, Optional

from xml_sibling_indexer.shared import DebounceConfig, get_logger

Action = Callable[[], Awaitable[Any]]


class Debouncer:
    """Cancel-on-supersede debouncer keyed by document identity.

    Must be used from a running event loop.
    """

    def __init__(
        self,
        config: Optional[DebounceConfig] = None,
        correlation_id: Optional[str] = None
    ) -> None:
        self.config = config or DebounceConfig()
        self.logger = get_logger(__name__, correlation_id, "debouncer")
        self._pending: Dict[str, "asyncio.Task[Any]"] = {}
        self.fired = 0
        self.superseded = 0

    def schedule(
        self,
        key: str,
        action: Action,
        change_size: int = 0,
        delay: Optional[float] = None
    ) -> "asyncio.Task[Any]":
        """Run ``action`` after a quiet period, replacing any pending call for ``key``.

        Args:
            key: Debounce key, normally the document key
            action: Coroutine function to await once the period elapses
            change_size: Size of the edit; larger edits wait longer
            delay: Explicit delay in seconds, overriding the configured scaling

        Returns:
            The task that will run the action
        """
        if self.cancel(key):
            self.superseded += 1

        wait = self.config.delay_for(change_size) if delay is None else delay
        task = asyncio.ensure_future(self._run_after(key, action, wait))
        task.add_done_callback(functools.partial(self._log_failure, key))
        self._pending[key] = task
        return task

    def _log_failure(self, key: str, task: "asyncio.Task[Any]") -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.error(
                "Debounced action failed",
                extra={"key": key, "error": str(error)},
                exc_info=error,
            )

    async def _run_after(self, key: str, action: Action, wait: float) -> Any:
        await asyncio.sleep(wait)

        # Past the quiet period; a later schedule() must not cancel the action
        if self._pending.get(key) is asyncio.current_task():
            del self._pending[key]
        self.fired += 1
        self.logger.debug("Debounced action firing", extra={"key": key, "delay_s": wait})
        return await action()

    def cancel(self, key: str) -> bool:
        """Cancel the pending call for ``key``.

        Returns:
            True if a call was pending
        """
        task = self._pending.pop(key, None)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    def is_pending(self, key: str) -> bool:
        task = self._pending.get(key)
        return task is not None and not task.done()

    def cancel_all(self) -> int:
        """Cancel every pending call; returns how many were cancelled."""
        cancelled = 0
        for key in list(self._pending):
            if self.cancel(key):
                cancelled += 1
        return cancelled
