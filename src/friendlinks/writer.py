from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from .state import atomic_write_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WriteJob:
    target: Path
    content: str


class AsyncWriteQueue:
    """Persist files in the background with a fixed number of workers.

    A target is reserved from ``enqueue`` until its job finishes, so the same
    file is never queued or written twice at once. Failed jobs are logged and
    dropped; their reservation is released.
    """

    def __init__(self, *, concurrency: int = 4) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.concurrency = concurrency
        self._queue: asyncio.Queue[WriteJob] | None = None
        self._workers: list[asyncio.Task[None]] = []
        self._reserved: set[Path] = set()
        self._active = 0
        self.written: list[Path] = []
        self.failed: list[Path] = []

    @property
    def active(self) -> int:
        return self._active

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    def is_reserved(self, target: Path) -> bool:
        return target in self._reserved

    def _ensure_workers(self) -> asyncio.Queue[WriteJob]:
        # Workers are created lazily so they bind to the running loop.
        if self._queue is None:
            self._queue = asyncio.Queue()
            self._workers = [
                asyncio.create_task(self._worker(i, self._queue))
                for i in range(self.concurrency)
            ]
        return self._queue

    def enqueue(self, target: Path, content: str) -> bool:
        """Queue a write; False when the target is reserved or already exists."""

        if target in self._reserved:
            logger.debug("(async-write) %s already queued", target)
            return False
        if target.exists():
            logger.debug("(async-write) %s already exists", target)
            return False
        queue = self._ensure_workers()
        self._reserved.add(target)
        queue.put_nowait(WriteJob(target=target, content=content))
        logger.debug("(async-write) Enqueued %s (queue=%d)", target, queue.qsize())
        return True

    async def _worker(self, idx: int, queue: asyncio.Queue[WriteJob]) -> None:
        while True:
            job = await queue.get()
            self._active += 1
            logger.debug("(async-write) worker %d writing %s", idx, job.target)
            try:
                await asyncio.to_thread(atomic_write_text, job.target, job.content)
            except Exception as e:
                # Any failure drops the job; the worker keeps serving the queue.
                self.failed.append(job.target)
                logger.warning("(async-write) Failed to write %s: %s", job.target, e)
            else:
                self.written.append(job.target)
                logger.debug("(async-write) Wrote %s", job.target)
            finally:
                self._reserved.discard(job.target)
                self._active -= 1
                queue.task_done()

    async def flush(self) -> None:
        """Block until every queued write has finished."""

        if self._queue is None:
            return
        logger.debug("(async-write) Flushing %d pending writes", self.pending)
        await self._queue.join()

    async def close(self) -> None:
        await self.flush()
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        self._queue = None

    async def __aenter__(self) -> AsyncWriteQueue:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
