"""Worker ORM — directory profile plus derived trust aggregates.

Invariants:
    - service_types stored normalized (lowercase, stripped)
    - total_references, average_rating, repeat_customer_count, response_rate and
      sub_rating_averages are a cache of core/worker_stats.py over the worker's
      references; only the Reference Ledger writes them

Design Decisions:
    - JSON for service_types/community_ids: portable across PostgreSQL and SQLite;
      service filtering happens in core/rank_workers.py
    - user_id links the worker's own account (authorizes disputes)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, Float, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from vouch.db.base import Base


class Worker(Base):
    """Worker directory entry."""
    __tablename__ = "workers"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True, index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    service_types: Mapped[list] = mapped_column(
        JSON, nullable=False, default=list,
    )
    community_ids: Mapped[list] = mapped_column(
        JSON, nullable=False, default=list,
    )

    # Derived — owned by the Reference Ledger
    total_references: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    average_rating: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0,
    )
    repeat_customer_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    response_rate: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0,
    )
    sub_rating_averages: Mapped[dict] = mapped_column(
        JSON, nullable=False, default=dict,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
