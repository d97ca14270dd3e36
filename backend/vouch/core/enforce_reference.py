"""Reference Integrity Enforcement — preconditions for every Reference Ledger write.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Return a VouchError on violation, None on success — the shell raises it
    - validate_submission chains all checks in a fixed order — first error wins:
      membership -> booking ownership -> booking completed -> duplicate
    - References are never deleted; the only visibility change is a dispute transition
    - Edit snapshots are appended, never rewritten

Design Decisions:
    - Facts dataclasses instead of ORM rows: rules are testable without a database
    - Returning errors (not raising) keeps every check independently assertable
      (ADR: Functional Core — shell decides when to raise)
"""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from vouch.core.domain_types import (
    BookingStatus, DisputeStatus, RATING_MIN, RATING_MAX, SUB_RATING_DIMENSIONS,
    EDIT_WINDOW_HOURS,
)
from vouch.core.errors import (
    VouchError, ErrorContext, UnauthorizedError, BookingNotCompletedError,
    DuplicateReferenceError, ReferenceLockedError, InvalidDisputeTransitionError,
    RatingValidationError, ResourceNotFoundError,
)
from vouch.core.time_windows import ensure_utc, is_within_window


@dataclass(frozen=True)
class BookingFacts:
    """What the ledger reads from the external booking lifecycle."""
    booking_id: UUID
    seeker_id: UUID
    worker_id: UUID
    status: BookingStatus


@dataclass(frozen=True)
class SubmissionFacts:
    """Everything validate_submission needs, loaded by the shell beforehand."""
    author_id: UUID
    worker_id: UUID
    booking_id: UUID
    community_id: UUID
    author_is_member: bool
    booking: BookingFacts | None
    already_submitted: bool


@dataclass(frozen=True)
class RatingData:
    """The author-supplied content of a reference."""
    service_type: str
    rating: int
    sub_ratings: dict[str, int] = field(default_factory=dict)
    description: str = ""
    photo_urls: tuple[str, ...] = ()


# ─── Ratings ─────────────────────────────────────────────────────

def check_rating(value: int, field_name: str) -> VouchError | None:
    """A single rating must be an int on the 1–5 scale."""
    if isinstance(value, bool) or not isinstance(value, int):
        return RatingValidationError(f"{field_name} must be an integer", field_name)
    if not RATING_MIN <= value <= RATING_MAX:
        return RatingValidationError(
            f"{field_name} must be between {RATING_MIN} and {RATING_MAX}, got {value}",
            field_name,
        )
    return None


def validate_rating_data(
    rating: int, sub_ratings: dict[str, int] | None,
) -> VouchError | None:
    """Overall rating plus optional structured sub-ratings."""
    error = check_rating(rating, "rating")
    if error:
        return error
    for name, value in (sub_ratings or {}).items():
        if name not in SUB_RATING_DIMENSIONS:
            return RatingValidationError(
                f"Unknown sub-rating '{name}'. "
                f"Expected one of: {', '.join(SUB_RATING_DIMENSIONS)}",
                f"sub_ratings.{name}",
            )
        error = check_rating(value, f"sub_ratings.{name}")
        if error:
            return error
    return None


# ─── Submission ──────────────────────────────────────────────────

def check_membership(facts: SubmissionFacts) -> VouchError | None:
    """Only verified members of the community may vouch in its name."""
    if not facts.author_is_member:
        return UnauthorizedError(
            "Only verified members of this community can submit references",
            ErrorContext(
                user_id=str(facts.author_id),
                community_id=str(facts.community_id),
            ),
        )
    return None


def check_booking_ownership(facts: SubmissionFacts) -> VouchError | None:
    """The booking must exist, belong to the author and be for this worker."""
    booking = facts.booking
    if booking is None:
        return ResourceNotFoundError("Booking", str(facts.booking_id))
    if booking.seeker_id != facts.author_id or booking.worker_id != facts.worker_id:
        return UnauthorizedError(
            "Booking does not belong to this author and worker",
            ErrorContext(
                user_id=str(facts.author_id), worker_id=str(facts.worker_id),
            ),
        )
    return None


def check_booking_completed(facts: SubmissionFacts) -> VouchError | None:
    if facts.booking is not None and facts.booking.status != BookingStatus.COMPLETED:
        return BookingNotCompletedError(
            str(facts.booking_id), facts.booking.status.value,
        )
    return None


def check_not_duplicate(facts: SubmissionFacts) -> VouchError | None:
    if facts.already_submitted:
        return DuplicateReferenceError(
            str(facts.booking_id), ErrorContext(user_id=str(facts.author_id)),
        )
    return None


def validate_submission(facts: SubmissionFacts) -> VouchError | None:
    """Chain all submission preconditions. First error wins."""
    for check in (
        check_membership,
        check_booking_ownership,
        check_booking_completed,
        check_not_duplicate,
    ):
        error = check(facts)
        if error:
            return error
    return None


def repeat_customer_status(prior_undisputed: int) -> tuple[bool, int]:
    """(is_repeat_customer, times_used) for a new reference.

    prior_undisputed counts the author's earlier references for the same
    worker that are not currently disputed.
    """
    return prior_undisputed > 0, prior_undisputed + 1


# ─── Edit window ─────────────────────────────────────────────────

def check_edit_allowed(
    author_id: UUID,
    editor_id: UUID,
    created_at: datetime,
    now: datetime,
    window_hours: int = EDIT_WINDOW_HOURS,
) -> VouchError | None:
    """Only the author, only inside the grace window."""
    if editor_id != author_id:
        return UnauthorizedError(
            "Only the author can edit a reference",
            ErrorContext(user_id=str(editor_id)),
        )
    if not is_within_window(created_at, now, window_hours):
        return ReferenceLockedError(window_hours, ErrorContext(user_id=str(editor_id)))
    return None


def build_edit_snapshot(
    old_rating: int,
    old_description: str,
    edited_at: datetime,
    old_sub_ratings: dict[str, int] | None = None,
) -> dict:
    """Entry appended to edit_history — JSON-serializable."""
    return {
        "edited_at": ensure_utc(edited_at).isoformat(),
        "old_rating": old_rating,
        "old_description": old_description,
        "old_sub_ratings": dict(old_sub_ratings or {}),
    }


# ─── Disputes ────────────────────────────────────────────────────

def check_dispute_allowed(
    current: DisputeStatus,
    raised_by: UUID,
    worker_user_id: UUID | None,
    is_admin: bool,
) -> VouchError | None:
    """Reviewed worker or an admin may open a dispute, once, from 'none'."""
    if not is_admin and raised_by != worker_user_id:
        return UnauthorizedError(
            "Only the reviewed worker or an admin can dispute a reference",
            ErrorContext(user_id=str(raised_by)),
        )
    if current != DisputeStatus.NONE:
        return InvalidDisputeTransitionError(
            current.value, DisputeStatus.DISPUTED.value,
        )
    return None


def check_resolution_allowed(
    current: DisputeStatus, resolved_by: UUID, is_admin: bool,
) -> VouchError | None:
    """Resolution is an admin-only disputed -> resolved transition."""
    if not is_admin:
        return UnauthorizedError(
            "Only admins can resolve disputes",
            ErrorContext(user_id=str(resolved_by)),
        )
    if current != DisputeStatus.DISPUTED:
        return InvalidDisputeTransitionError(
            current.value, DisputeStatus.RESOLVED.value,
        )
    return None


def counts_toward_rating(status: DisputeStatus) -> bool:
    """Open disputes are excluded from averages; resolved ones count again."""
    return status != DisputeStatus.DISPUTED
