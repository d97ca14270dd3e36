"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - UserId, WorkerId, CommunityId, ReferenceId, BookingId wrap UUIDs
    - Ratings are integers bounded 1–5 (RATING_MIN..RATING_MAX)
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders, store as plain VARCHAR
"""

from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

UserId = NewType("UserId", UUID)
WorkerId = NewType("WorkerId", UUID)
CommunityId = NewType("CommunityId", UUID)
ReferenceId = NewType("ReferenceId", UUID)
BookingId = NewType("BookingId", UUID)


# ─── Value Types ─────────────────────────────────────────────────

Rating = NewType("Rating", int)  # 1–5

RATING_MIN: int = 1
RATING_MAX: int = 5

SUB_RATING_DIMENSIONS: tuple[str, ...] = (
    "professionalism", "punctuality", "cleanliness", "value_for_money",
)

EDIT_WINDOW_HOURS: int = 24
CODE_TTL_HOURS: int = 24
SEARCH_PAGE_SIZE: int = 20


# ─── Enums ───────────────────────────────────────────────────────

class VerificationMethod(str, Enum):
    """How a community admits members."""
    WHATSAPP = "whatsapp"
    ADMIN = "admin"


class DisputeStatus(str, Enum):
    """Reference dispute lifecycle: none -> disputed -> resolved."""
    NONE = "none"
    DISPUTED = "disputed"
    RESOLVED = "resolved"


class BookingStatus(str, Enum):
    """Booking states as reported by the external booking lifecycle."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DECLINED = "declined"


class PaymentStatus(str, Enum):
    """Payment states as reported by the external booking lifecycle."""
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


def normalize_service_type(service_type: str) -> str:
    """Service types compare case-insensitively, ignoring surrounding space."""
    return service_type.strip().lower()
