"""In-process discovery work queue with at-least-once redelivery.

A job whose handler raises is put back after an exponential backoff, up to
``max_retries`` redeliveries, then dropped with an error log. ``AuthMissing``
is never retried since no amount of redelivery can supply a token.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from skillsurf.errors import AuthMissing
from skillsurf.schemas.discovery import DiscoveryJob

logger = logging.getLogger(__name__)

JobHandler = Callable[[DiscoveryJob], Awaitable[Any]]

MAX_RETRY_DELAY = 60.0


@dataclass
class QueuedJob:
    job: DiscoveryJob
    attempts: int = 0


class DiscoveryQueue:
    """asyncio.Queue of discovery jobs drained by a fixed pool of workers."""

    def __init__(
        self,
        *,
        concurrency: int = 4,
        max_retries: int = 3,
        retry_base_delay: float = 2.0,
    ) -> None:
        self.concurrency = max(1, concurrency)
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay

        self._queue: asyncio.Queue[QueuedJob] = asyncio.Queue()
        self._workers: list[asyncio.Task] = []
        self._handler: JobHandler | None = None
        self._retry_timers: dict[int, asyncio.TimerHandle] = {}
        self._redelivered = asyncio.Event()

        self.acked = 0
        self.retried = 0
        self.dropped = 0

    @property
    def running(self) -> bool:
        return bool(self._workers)

    async def send(self, job: DiscoveryJob) -> None:
        await self._queue.put(QueuedJob(job=job))
        logger.debug("Enqueued %s (size=%d)", job.repo_full_name, self._queue.qsize())

    def start(self, handler: JobHandler) -> None:
        if self._workers:
            logger.warning("Discovery queue already running")
            return
        self._handler = handler
        self._workers = [
            asyncio.create_task(self._worker_loop(i), name=f"discovery-worker-{i}")
            for i in range(self.concurrency)
        ]
        logger.info("Started %d discovery queue workers", self.concurrency)

    async def stop(self) -> None:
        for timer in self._retry_timers.values():
            timer.cancel()
        self._retry_timers.clear()
        self._redelivered.set()
        if not self._workers:
            return
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info("Discovery queue workers stopped")

    async def join(self) -> None:
        """Wait until every enqueued job (including redeliveries) is settled."""
        await self._queue.join()
        while self._retry_timers:
            self._redelivered.clear()
            await self._redelivered.wait()
            await self._queue.join()

    def stats(self) -> dict[str, Any]:
        return {
            "queue_size": self._queue.qsize(),
            "workers": len(self._workers),
            "running": self.running,
            "acked": self.acked,
            "retried": self.retried,
            "dropped": self.dropped,
            "pending_retries": len(self._retry_timers),
        }

    async def _worker_loop(self, index: int) -> None:
        while True:
            item = await self._queue.get()
            try:
                await self._process(item)
            finally:
                self._queue.task_done()

    async def _process(self, item: QueuedJob) -> None:
        if self._handler is None:
            raise RuntimeError("DiscoveryQueue.start() must be called before processing jobs")
        name = item.job.repo_full_name
        try:
            await self._handler(item.job)
        except AuthMissing as exc:
            logger.error("Dropping %s: %s", name, exc)
            self.dropped += 1
            return
        except Exception:
            item.attempts += 1
            if item.attempts > self.max_retries:
                logger.exception("Dropping %s after %d attempts", name, item.attempts)
                self.dropped += 1
                return
            delay = min(self.retry_base_delay * 2 ** (item.attempts - 1), MAX_RETRY_DELAY)
            logger.warning(
                "Job %s failed (attempt %d/%d), retrying in %.1fs",
                name, item.attempts, self.max_retries + 1, delay, exc_info=True,
            )
            self.retried += 1
            # the worker moves on; the timer puts the job back
            loop = asyncio.get_running_loop()
            self._retry_timers[id(item)] = loop.call_later(delay, self._redeliver, item)
            return

        self.acked += 1
        logger.debug("Acked %s", name)

    def _redeliver(self, item: QueuedJob) -> None:
        self._retry_timers.pop(id(item), None)
        self._queue.put_nowait(item)
        self._redelivered.set()
