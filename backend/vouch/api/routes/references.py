"""Reference Routes — submit, read, edit, dispute, resolve.

Invariants:
    - No DELETE route: references are never removed, only disputed
    - Worker notification runs as a background task after the commit; its
      failure never affects the response
"""

import logging
from functools import partial
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from vouch.api.dependencies import get_current_user_id, get_is_admin, get_notifier
from vouch.config import Settings, get_settings
from vouch.core.enforce_reference import RatingData
from vouch.core.repository_protocols import Notifier
from vouch.infrastructure.database import get_db
from vouch.infrastructure.notifier import notify_safely
from vouch.schemas.reference import (
    ReferenceCreate, ReferenceEdit, DisputeRequest, ReferenceResponse,
)
from vouch.services.reference_ledger import ReferenceLedger

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/references", tags=["references"])


@router.post(
    "", response_model=ReferenceResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_reference(
    body: ReferenceCreate,
    background_tasks: BackgroundTasks,
    user_id: UUID = Depends(get_current_user_id),
    notifier: Notifier = Depends(get_notifier),
    db: AsyncSession = Depends(get_db),
):
    """Vouch for a worker after a completed booking."""
    reference = await ReferenceLedger(db).submit(
        author_id=user_id,
        booking_id=body.booking_id,
        worker_id=body.worker_id,
        community_id=body.community_id,
        rating_data=RatingData(
            service_type=body.service_type,
            rating=body.rating,
            sub_ratings=body.sub_ratings.as_dict(),
            description=body.description,
            photo_urls=tuple(body.photo_urls),
        ),
    )
    background_tasks.add_task(
        notify_safely,
        partial(
            notifier.reference_submitted,
            reference.worker_id, reference.id, reference.rating,
        ),
        "Reference notification",
    )
    return reference


@router.get("/{reference_id}", response_model=ReferenceResponse)
async def get_reference(
    reference_id: UUID,
    _: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await ReferenceLedger(db).get(reference_id)


@router.patch("/{reference_id}", response_model=ReferenceResponse)
async def edit_reference(
    reference_id: UUID,
    body: ReferenceEdit,
    user_id: UUID = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db),
):
    """Author edits within the grace window. Previous content kept in edit_history;
    sub_ratings merge into the existing ones."""
    ledger = ReferenceLedger(db, edit_window_hours=settings.reference_edit_window_hours)
    return await ledger.edit(
        reference_id,
        user_id,
        new_rating=body.rating,
        new_description=body.description,
        new_sub_ratings=body.sub_ratings.as_dict() if body.sub_ratings else None,
    )


@router.post("/{reference_id}/dispute", response_model=ReferenceResponse)
async def dispute_reference(
    reference_id: UUID,
    body: DisputeRequest,
    background_tasks: BackgroundTasks,
    user_id: UUID = Depends(get_current_user_id),
    is_admin: bool = Depends(get_is_admin),
    notifier: Notifier = Depends(get_notifier),
    db: AsyncSession = Depends(get_db),
):
    """Reviewed worker (or admin) disputes a reference."""
    reference = await ReferenceLedger(db).dispute(
        reference_id, user_id, body.reason, is_admin=is_admin,
    )
    background_tasks.add_task(
        notify_safely,
        partial(
            notifier.reference_disputed,
            reference.worker_id, reference.id, body.reason,
        ),
        "Dispute notification",
    )
    return reference


@router.post("/{reference_id}/resolve", response_model=ReferenceResponse)
async def resolve_reference_dispute(
    reference_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    is_admin: bool = Depends(get_is_admin),
    db: AsyncSession = Depends(get_db),
):
    """Admin closes an open dispute."""
    return await ReferenceLedger(db).resolve_dispute(reference_id, user_id, is_admin)
