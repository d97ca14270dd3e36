"""Booking Routes — snapshot ingestion from the external booking lifecycle.

Invariants:
    - PUT is idempotent: the latest snapshot wins
    - Admin identities only (the lifecycle service authenticates as one)
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vouch.api.dependencies import get_current_user_id, get_is_admin
from vouch.core.errors import ErrorContext, UnauthorizedError
from vouch.infrastructure.database import get_db
from vouch.schemas.booking import BookingSnapshot, BookingResponse
from vouch.services.bookings import upsert_booking

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/bookings", tags=["bookings"])


@router.put("/{booking_id}", response_model=BookingResponse)
async def put_booking_snapshot(
    booking_id: UUID,
    body: BookingSnapshot,
    user_id: UUID = Depends(get_current_user_id),
    is_admin: bool = Depends(get_is_admin),
    db: AsyncSession = Depends(get_db),
):
    if not is_admin:
        raise UnauthorizedError(
            "Only the booking lifecycle service can publish booking snapshots",
            ErrorContext(user_id=str(user_id)),
        )
    return await upsert_booking(
        db, booking_id, body.seeker_id, body.worker_id,
        body.status, body.payment_status,
    )
