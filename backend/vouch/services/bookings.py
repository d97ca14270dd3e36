"""Booking Snapshots — mirror of the external booking lifecycle.

Invariants:
    - The only writer of booking rows
    - A status change refreshes the worker's aggregates (response_rate) through
      the Reference Ledger, which stays the sole aggregate writer
    - Reassigning a booking refreshes the previous worker as well
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from vouch.core.domain_types import BookingStatus, PaymentStatus
from vouch.core.time_windows import utc_now
from vouch.infrastructure.worker_locks import WorkerLockRegistry, worker_locks
from vouch.models.booking import Booking
from vouch.models.worker import Worker
from vouch.services.reference_ledger import ReferenceLedger

logger = logging.getLogger(__name__)


async def upsert_booking(
    db: AsyncSession,
    booking_id: UUID,
    seeker_id: UUID,
    worker_id: UUID,
    status: BookingStatus,
    payment_status: PaymentStatus,
    locks: WorkerLockRegistry = worker_locks,
) -> Booking:
    """Record the lifecycle's current view of a booking.

    Reassigning a booking to another worker refreshes both workers.
    """
    booking = await db.get(Booking, booking_id)
    previous_worker_id = None
    if booking is None:
        booking = Booking(id=booking_id)
        db.add(booking)
    else:
        previous_worker_id = booking.worker_id
    booking.seeker_id = seeker_id
    booking.worker_id = worker_id
    booking.status = status.value
    booking.payment_status = payment_status.value
    booking.updated_at = utc_now()
    await db.commit()
    logger.info(
        f"Booking snapshot stored ({status.value}/{payment_status.value})",
        extra={"booking_id": booking_id, "worker_id": worker_id},
    )

    ledger = ReferenceLedger(db, locks=locks)
    affected = [worker_id]
    if previous_worker_id is not None and previous_worker_id != worker_id:
        affected.append(previous_worker_id)
    for affected_id in affected:
        if await db.get(Worker, affected_id) is not None:
            await ledger.recompute_aggregates(affected_id)
    return booking
