"""Per-Worker Locks — single-writer discipline for worker aggregate updates.

Invariants:
    - At most one aggregate recompute per worker id at a time within a process
    - Different workers never contend
    - Lock objects are created lazily and reused for the life of the process

Design Decisions:
    - asyncio.Lock per worker id: the API runs on one event loop per process;
      cross-process exclusion comes from SELECT ... FOR UPDATE on the worker row
      (see services/reference_ledger.py)
    - No eviction: one small Lock per worker that ever received a reference
"""

import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import AsyncIterator
from uuid import UUID


class WorkerLockRegistry:
    """Hands out one asyncio.Lock per worker id."""

    def __init__(self) -> None:
        self._locks: defaultdict[UUID, asyncio.Lock] = defaultdict(asyncio.Lock)

    @asynccontextmanager
    async def hold(self, worker_id: UUID) -> AsyncIterator[None]:
        async with self._locks[worker_id]:
            yield

    def is_locked(self, worker_id: UUID) -> bool:
        lock = self._locks.get(worker_id)
        return lock is not None and lock.locked()


worker_locks = WorkerLockRegistry()
