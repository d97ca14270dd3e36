"""Community ORM — a neighbourhood or society whose members vouch for workers.

Invariants:
    - Immutable after creation except member_count
    - verification_method is one of VerificationMethod ("whatsapp" | "admin")
    - member_count mirrors the number of Membership rows (maintained by services/membership.py)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, Float, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from vouch.db.base import Base


class Community(Base):
    """Community registry entry."""
    __tablename__ = "communities"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    verification_method: Mapped[str] = mapped_column(
        String(20), nullable=False, default="whatsapp",
    )
    member_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
