"""Trailing-edge debounce for async callbacks."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class Debouncer:
    """Run *callback* once, *delay* seconds after the last ``trigger()``.

    Every ``trigger()`` restarts the quiet period, so a burst of edits
    produces a single call.  Must be used from within a running event loop.

    Example:
        debouncer = Debouncer(3.0, coordinator.push)
        debouncer.trigger()  # on every recorded edit
    """

    def __init__(
        self, delay: float, callback: Callable[[], Awaitable[object]]
    ):
        self.delay = delay
        self._callback = callback
        self._task: asyncio.Task | None = None
        # Strong references to fired tasks until their callback returns
        self._running: set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        """True while a call is scheduled but has not started."""
        return self._task is not None and not self._task.done()

    @property
    def running(self) -> bool:
        """True while a fired callback is still executing."""
        return bool(self._running)

    def trigger(self) -> None:
        """Schedule the callback, cancelling any call still waiting."""
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._fire())

    def cancel(self) -> None:
        """Drop the scheduled call, if any."""
        if self.pending:
            self._task.cancel()  # type: ignore[union-attr]
        self._task = None

    async def flush(self) -> None:
        """Run a pending call now instead of waiting out the delay."""
        if not self.pending:
            return
        self.cancel()
        await self._callback()

    async def _fire(self) -> None:
        await asyncio.sleep(self.delay)
        # Detach before running so a trigger() from inside the callback
        # schedules a fresh call instead of cancelling this one.
        task = asyncio.current_task()
        self._running.add(task)  # type: ignore[arg-type]
        self._task = None
        try:
            await self._callback()
        except Exception:
            logger.exception("Debounced callback failed")
        finally:
            self._running.discard(task)  # type: ignore[arg-type]
