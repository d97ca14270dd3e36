"""Worker Directory — worker profiles; aggregates are read-only here.

Invariants:
    - create() never sets aggregate columns (they start at their zero defaults)
    - Every listed community must exist
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vouch.core.domain_types import normalize_service_type
from vouch.core.errors import ResourceNotFoundError
from vouch.models.community import Community
from vouch.models.worker import Worker

logger = logging.getLogger(__name__)


class WorkerDirectory:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        name: str,
        service_types: list[str],
        community_ids: list[UUID],
        user_id: UUID | None = None,
    ) -> Worker:
        if community_ids:
            result = await self.db.execute(
                select(Community.id).where(Community.id.in_(community_ids)),
            )
            found = set(result.scalars().all())
            for community_id in community_ids:
                if community_id not in found:
                    raise ResourceNotFoundError("Community", str(community_id))

        worker = Worker(
            name=name,
            user_id=user_id,
            service_types=sorted({normalize_service_type(s) for s in service_types}),
            community_ids=[str(c) for c in dict.fromkeys(community_ids)],
        )
        self.db.add(worker)
        await self.db.commit()
        logger.info(
            f"Worker '{name}' registered for {', '.join(worker.service_types)}",
            extra={"worker_id": worker.id},
        )
        return worker

    async def get(self, worker_id: UUID) -> Worker:
        worker = await self.db.get(Worker, worker_id)
        if worker is None:
            raise ResourceNotFoundError("Worker", str(worker_id))
        return worker
