"""Serialize commit runs.

At most one pipeline run is in flight.  A batch pushed while another run
is active waits in FIFO order; each caller gets the result of its own
batch.  Batches are never merged.  A run that fails, or raises, resolves
its caller with ``Err`` and the next batch still runs.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Any, Awaitable, Callable

from obsync.core.result import Err, Result
from obsync.sync.models import CommitBatch, SyncError

logger = logging.getLogger(__name__)

Runner = Callable[[CommitBatch], Awaitable[Result]]


class CommitQueue:
    """FIFO of commit batches with a single worker.

    Args:
        runner: Coroutine function executing one batch; normally the
            coordinator's locked pipeline run.
    """

    def __init__(self, runner: Runner) -> None:
        self._runner = runner
        self._pending: deque[tuple[CommitBatch, asyncio.Future]] = deque()
        self._worker: asyncio.Task | None = None

    @property
    def pending(self) -> int:
        """Batches waiting behind the active run."""
        return len(self._pending)

    @property
    def active(self) -> bool:
        return self._worker is not None and not self._worker.done()

    async def push(self, batch: CommitBatch) -> Result[Any, SyncError]:
        """Run *batch* after every batch submitted before it.

        Returns:
            The runner's result for this batch.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()
        self._pending.append((batch, future))

        if self.active:
            logger.info(
                "Commit run in progress; queued batch of %d (%d waiting)",
                len(batch.modifications),
                len(self._pending),
            )
        else:
            self._worker = loop.create_task(self._drain())

        # Shield so a cancelled caller does not cancel the run itself
        return await asyncio.shield(future)

    async def join(self) -> None:
        """Wait until the queue is empty and no run is active."""
        while self.active:
            await asyncio.wait({self._worker})

    async def _drain(self) -> None:
        while self._pending:
            batch, future = self._pending.popleft()
            try:
                result = await self._runner(batch)
            except Exception as exc:
                logger.exception("Commit run raised")
                result = Err(SyncError(stage="internal", message=str(exc)))
            if not future.done():
                future.set_result(result)
