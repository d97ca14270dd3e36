"""Reference ORM — a community member's vouch for a worker after a completed booking.

Invariants:
    - Unique per (author_id, booking_id)
    - Never deleted (no cascade from workers, no delete path in services)
    - rating and sub_ratings on the 1–5 scale
    - edit_history is append-only: each edit reassigns a longer list
    - dispute_status transitions: none -> disputed -> resolved

Design Decisions:
    - JSON for sub_ratings/photo_urls/edit_history: small, always read whole
    - worker_id indexed: aggregate recompute scans one worker's references
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    String, Text, Integer, Boolean, DateTime, JSON, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from vouch.db.base import Base


class Reference(Base):
    """Community-vouched reference."""
    __tablename__ = "worker_references"
    __table_args__ = (
        UniqueConstraint("author_id", "booking_id", name="uq_reference_author_booking"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    worker_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("workers.id"), nullable=False, index=True,
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True,
    )
    community_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("communities.id"), nullable=False,
    )
    booking_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False,
    )
    service_type: Mapped[str] = mapped_column(String(80), nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    sub_ratings: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    photo_urls: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    # Repeat-customer tracking
    is_repeat_customer: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    times_used: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Dispute workflow
    dispute_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="none",
    )
    dispute_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    disputed_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True,
    )
    disputed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    resolved_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True,
    )
    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    # Edit grace window
    is_edited: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    edit_history: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
