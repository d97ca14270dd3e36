"""Booking Schemas — snapshots pushed by the external booking lifecycle."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from vouch.core.domain_types import BookingStatus, PaymentStatus


class BookingSnapshot(BaseModel):
    seeker_id: UUID
    worker_id: UUID
    status: BookingStatus
    payment_status: PaymentStatus = PaymentStatus.PENDING


class BookingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    seeker_id: UUID
    worker_id: UUID
    status: BookingStatus
    payment_status: PaymentStatus
    updated_at: datetime
