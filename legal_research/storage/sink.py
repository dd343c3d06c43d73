"""
Background persistence of newly discovered records.

The aggregation pipeline hands its deduplicated result set to the sink after
the response page is final. A single asyncio worker drains the queue, so store
writes never gate a search response and write failures never reach a caller.
"""

import asyncio
import contextlib
import contextvars

from legal_research.storage.database import RecordStore
from legal_research.utils.logging import get_logger
from legal_research.utils.schemas import Record

logger = get_logger(__name__)


class PersistenceSink:
    """Queue-backed writer that upserts records the store does not have yet.

    Example:
        sink = PersistenceSink(store)
        sink.submit(records)      # returns immediately
        await sink.drain()        # wait for queued batches (tests, shutdown)
        await sink.close()
    """

    def __init__(self, store: RecordStore, max_queue_size: int = 100):
        self._store = store
        self._queue: asyncio.Queue[list[Record]] = asyncio.Queue(maxsize=max_queue_size)
        self._worker: asyncio.Task[None] | None = None
        self.written_count = 0
        self.failed_batches = 0

    def submit(self, records: list[Record]) -> bool:
        """Enqueue a batch without waiting.

        Records already read from the store are dropped here.

        Returns:
            False if the batch was empty after filtering or the queue is full.
        """
        batch = [record for record in records if not record.in_store]
        if not batch:
            return False

        self._ensure_worker()
        try:
            self._queue.put_nowait(batch)
        except asyncio.QueueFull:
            logger.warning("Persistence queue full, dropping batch", size=len(batch))
            return False
        return True

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            # Fresh context: the worker outlives the request that started it
            self._worker = asyncio.create_task(
                self._run(), name="persistence-sink", context=contextvars.Context()
            )

    async def _run(self) -> None:
        while True:
            batch = await self._queue.get()
            try:
                await self._write(batch)
            except Exception as e:
                self.failed_batches += 1
                logger.error(
                    "Persisting records failed",
                    size=len(batch),
                    error_type=type(e).__name__,
                    error=str(e),
                )
            finally:
                self._queue.task_done()

    async def _write(self, batch: list[Record]) -> None:
        unique: dict[str, Record] = {}
        for record in batch:
            unique.setdefault(record.id, record)

        existing = await self._store.existing_ids(list(unique))
        new_records = [record for record_id, record in unique.items() if record_id not in existing]
        if not new_records:
            logger.debug("No new records to persist", skipped=len(unique))
            return

        written = await self._store.upsert_records(new_records)
        self.written_count += written
        logger.info("Persisted records", written=written, skipped=len(existing))

    async def drain(self) -> None:
        """Wait until every queued batch has been processed."""
        await self._queue.join()

    async def close(self) -> None:
        """Drain the queue and stop the worker."""
        if self._worker is None:
            return
        await self.drain()
        self._worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._worker
        self._worker = None
