"""Reference integrity rules — pure checks, each returning an error or None."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from vouch.core.domain_types import BookingStatus, DisputeStatus
from vouch.core.enforce_reference import (
    BookingFacts, SubmissionFacts,
    check_rating, validate_rating_data, validate_submission,
    repeat_customer_status, check_edit_allowed, build_edit_snapshot,
    check_dispute_allowed, check_resolution_allowed, counts_toward_rating,
)
from vouch.core.errors import (
    UnauthorizedError, BookingNotCompletedError, DuplicateReferenceError,
    ReferenceLockedError, InvalidDisputeTransitionError, RatingValidationError,
    ResourceNotFoundError,
)

AUTHOR = uuid4()
WORKER = uuid4()
COMMUNITY = uuid4()
BOOKING = uuid4()
T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _facts(**overrides) -> SubmissionFacts:
    values = dict(
        author_id=AUTHOR,
        worker_id=WORKER,
        booking_id=BOOKING,
        community_id=COMMUNITY,
        author_is_member=True,
        booking=BookingFacts(BOOKING, AUTHOR, WORKER, BookingStatus.COMPLETED),
        already_submitted=False,
    )
    values.update(overrides)
    return SubmissionFacts(**values)


# ─── Ratings ─────────────────────────────────────────────────────

@pytest.mark.parametrize("value", [1, 3, 5])
def test_valid_ratings(value):
    assert check_rating(value, "rating") is None


@pytest.mark.parametrize("value", [0, 6, -1])
def test_out_of_range_ratings(value):
    error = check_rating(value, "rating")
    assert isinstance(error, RatingValidationError)
    assert error.field == "rating"


def test_bool_is_not_a_rating():
    assert isinstance(check_rating(True, "rating"), RatingValidationError)


def test_sub_ratings_validated_by_dimension():
    assert validate_rating_data(4, {"punctuality": 5, "cleanliness": 3}) is None
    error = validate_rating_data(4, {"punctuality": 9})
    assert error.field == "sub_ratings.punctuality"


def test_unknown_sub_rating_rejected():
    error = validate_rating_data(4, {"friendliness": 5})
    assert isinstance(error, RatingValidationError)
    assert "friendliness" in error.message


# ─── Submission chain ────────────────────────────────────────────

def test_valid_submission_passes():
    assert validate_submission(_facts()) is None


def test_non_member_rejected():
    assert isinstance(
        validate_submission(_facts(author_is_member=False)), UnauthorizedError,
    )


def test_missing_booking_is_not_found():
    error = validate_submission(_facts(booking=None))
    assert isinstance(error, ResourceNotFoundError)
    assert error.resource_type == "Booking"


def test_booking_of_another_seeker_rejected():
    booking = BookingFacts(BOOKING, uuid4(), WORKER, BookingStatus.COMPLETED)
    assert isinstance(validate_submission(_facts(booking=booking)), UnauthorizedError)


def test_booking_for_another_worker_rejected():
    booking = BookingFacts(BOOKING, AUTHOR, uuid4(), BookingStatus.COMPLETED)
    assert isinstance(validate_submission(_facts(booking=booking)), UnauthorizedError)


@pytest.mark.parametrize("status", [
    BookingStatus.PENDING, BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED,
])
def test_incomplete_booking_rejected(status):
    booking = BookingFacts(BOOKING, AUTHOR, WORKER, status)
    error = validate_submission(_facts(booking=booking))
    assert isinstance(error, BookingNotCompletedError)
    assert error.status == status.value


def test_duplicate_rejected():
    assert isinstance(
        validate_submission(_facts(already_submitted=True)), DuplicateReferenceError,
    )


def test_membership_checked_before_duplicate():
    error = validate_submission(_facts(author_is_member=False, already_submitted=True))
    assert isinstance(error, UnauthorizedError)


def test_repeat_customer_status():
    assert repeat_customer_status(0) == (False, 1)
    assert repeat_customer_status(1) == (True, 2)
    assert repeat_customer_status(4) == (True, 5)


# ─── Edit window ─────────────────────────────────────────────────

def test_author_can_edit_inside_window():
    assert check_edit_allowed(AUTHOR, AUTHOR, T0, T0 + timedelta(hours=23)) is None


def test_edit_locked_after_window():
    error = check_edit_allowed(AUTHOR, AUTHOR, T0, T0 + timedelta(hours=25))
    assert isinstance(error, ReferenceLockedError)


def test_edit_locked_exactly_at_window():
    error = check_edit_allowed(AUTHOR, AUTHOR, T0, T0 + timedelta(hours=24))
    assert isinstance(error, ReferenceLockedError)


def test_only_author_edits():
    error = check_edit_allowed(AUTHOR, uuid4(), T0, T0 + timedelta(hours=1))
    assert isinstance(error, UnauthorizedError)


def test_edit_snapshot_is_json_friendly():
    snapshot = build_edit_snapshot(3, "ok", T0, {"punctuality": 2})
    assert snapshot == {
        "edited_at": T0.isoformat(),
        "old_rating": 3,
        "old_description": "ok",
        "old_sub_ratings": {"punctuality": 2},
    }


# ─── Disputes ────────────────────────────────────────────────────

def test_worker_account_can_dispute():
    worker_user = uuid4()
    assert check_dispute_allowed(DisputeStatus.NONE, worker_user, worker_user, False) is None


def test_admin_can_dispute():
    assert check_dispute_allowed(DisputeStatus.NONE, uuid4(), None, True) is None


def test_stranger_cannot_dispute():
    error = check_dispute_allowed(DisputeStatus.NONE, uuid4(), uuid4(), False)
    assert isinstance(error, UnauthorizedError)


@pytest.mark.parametrize("current", [DisputeStatus.DISPUTED, DisputeStatus.RESOLVED])
def test_dispute_only_from_none(current):
    error = check_dispute_allowed(current, uuid4(), None, True)
    assert isinstance(error, InvalidDisputeTransitionError)
    assert error.target == "disputed"


def test_admin_resolves_open_dispute():
    assert check_resolution_allowed(DisputeStatus.DISPUTED, uuid4(), True) is None


def test_non_admin_cannot_resolve():
    error = check_resolution_allowed(DisputeStatus.DISPUTED, uuid4(), False)
    assert isinstance(error, UnauthorizedError)


def test_cannot_resolve_undisputed():
    error = check_resolution_allowed(DisputeStatus.NONE, uuid4(), True)
    assert isinstance(error, InvalidDisputeTransitionError)


def test_counts_toward_rating():
    assert counts_toward_rating(DisputeStatus.NONE)
    assert not counts_toward_rating(DisputeStatus.DISPUTED)
    assert counts_toward_rating(DisputeStatus.RESOLVED)
