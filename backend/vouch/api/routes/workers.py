"""Worker Routes — directory, ranked search, per-worker references, re-derivation.

Invariants:
    - /search is registered before /{worker_id} so the literal path wins
    - Search recomputes the ranking on every call (no cached pages)
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from vouch.api.dependencies import get_current_user_id, get_is_admin
from vouch.config import Settings, get_settings
from vouch.infrastructure.database import get_db
from vouch.schemas.reference import ReferenceResponse
from vouch.schemas.worker import (
    WorkerCreate, WorkerResponse, WorkerSummary, WorkerSearchResponse,
)
from vouch.services.ranking import RankingEngine
from vouch.services.reference_ledger import ReferenceLedger
from vouch.services.workers import WorkerDirectory

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/workers", tags=["workers"])


@router.post(
    "", response_model=WorkerResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_worker(
    body: WorkerCreate,
    _: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Register a worker profile. Aggregates start at zero."""
    return await WorkerDirectory(db).create(
        name=body.name,
        service_types=body.service_types,
        community_ids=body.community_ids,
        user_id=body.user_id,
    )


@router.get("/search", response_model=WorkerSearchResponse)
async def search_workers(
    community_id: UUID,
    service_type: str = Query(min_length=1, max_length=80),
    page: int = Query(1, ge=1),
    _: UUID = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db),
):
    """Workers offering service_type, ordered by trust from community_id's members."""
    ranked = await RankingEngine(db, settings.search_page_size).rank(
        community_id, service_type, page,
    )
    return WorkerSearchResponse(
        community_id=community_id,
        service_type=service_type,
        page=ranked.page,
        page_size=ranked.page_size,
        total=ranked.total,
        has_more=ranked.has_more,
        workers=[
            WorkerSummary(
                position=item.position,
                id=item.worker.id,
                name=item.worker.name,
                service_types=sorted(item.worker.service_types),
                in_community_vouches=item.in_community_vouches,
                total_references=item.worker.total_references,
                average_rating=item.worker.average_rating,
                repeat_customer_count=item.worker.repeat_customer_count,
            )
            for item in ranked.items
        ],
    )


@router.get("/{worker_id}", response_model=WorkerResponse)
async def get_worker(
    worker_id: UUID,
    _: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await WorkerDirectory(db).get(worker_id)


@router.get("/{worker_id}/references", response_model=list[ReferenceResponse])
async def list_worker_references(
    worker_id: UUID,
    _: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """All references for a worker, newest first. Disputed ones included."""
    await WorkerDirectory(db).get(worker_id)
    return await ReferenceLedger(db).list_for_worker(worker_id)


@router.post("/{worker_id}/rederive", response_model=WorkerResponse)
async def rederive_worker_aggregates(
    worker_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    is_admin: bool = Depends(get_is_admin),
    db: AsyncSession = Depends(get_db),
):
    """Admin: rebuild cached aggregates from the reference ledger."""
    return await ReferenceLedger(db).rederive(worker_id, user_id, is_admin)
