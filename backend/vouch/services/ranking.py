"""Ranking Engine — loads directory snapshots and community vouch counts, ranks them.

Invariants:
    - Read-only: never writes, never caches between calls
    - In-community vouches = non-disputed references authored by current members
      of the requesting community, counted per worker in one grouped query
    - Ordering itself lives in core/rank_workers.py

Design Decisions:
    - Service-type filtering in Python, not SQL: service_types is a JSON column
      and JSON containment differs between PostgreSQL and SQLite
"""

import logging
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from vouch.core.domain_types import DisputeStatus, SEARCH_PAGE_SIZE
from vouch.core.errors import ResourceNotFoundError
from vouch.core.rank_workers import (
    WorkerSnapshot, RankedPage, rank_workers, paginate,
)
from vouch.models.community import Community
from vouch.models.membership import Membership
from vouch.models.reference import Reference
from vouch.models.worker import Worker

logger = logging.getLogger(__name__)


def to_snapshot(worker: Worker) -> WorkerSnapshot:
    return WorkerSnapshot(
        id=worker.id,
        name=worker.name,
        service_types=frozenset(worker.service_types or []),
        total_references=worker.total_references,
        average_rating=worker.average_rating,
        repeat_customer_count=worker.repeat_customer_count,
        community_ids=frozenset(UUID(str(c)) for c in worker.community_ids or []),
    )


class RankingEngine:
    """Community-weighted worker search."""

    def __init__(self, db: AsyncSession, page_size: int = SEARCH_PAGE_SIZE):
        self.db = db
        self.page_size = page_size

    async def rank(
        self, community_id: UUID, service_type: str, page: int = 1,
    ) -> RankedPage:
        if await self.db.get(Community, community_id) is None:
            raise ResourceNotFoundError("Community", str(community_id))

        result = await self.db.execute(select(Worker))
        snapshots = [to_snapshot(w) for w in result.scalars().all()]
        vouches = await self.in_community_vouches(community_id)

        ranked = rank_workers(snapshots, service_type, vouches)
        logger.info(
            f"Ranked {len(ranked)} worker(s) for '{service_type}'",
            extra={"community_id": community_id},
        )
        return paginate(ranked, page, self.page_size)

    async def in_community_vouches(self, community_id: UUID) -> dict[UUID, int]:
        members = select(Membership.user_id).where(
            Membership.community_id == community_id,
        )
        result = await self.db.execute(
            select(Reference.worker_id, func.count(Reference.id))
            .where(Reference.author_id.in_(members))
            .where(Reference.dispute_status != DisputeStatus.DISPUTED.value)
            .group_by(Reference.worker_id),
        )
        return {worker_id: count for worker_id, count in result.all()}
