"""Reference Ledger — submit/edit/dispute/resolve against a real (SQLite) session.

Invariants exercised:
    - Worker aggregates always equal a recompute over the worker's references
    - Duplicate (author, booking) pairs rejected, first reference kept
    - Edits locked after the grace window; history appended per edit
    - Disputed references count in total_references but not in averages
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy import select, func

from vouch.core.domain_types import BookingStatus, DisputeStatus
from vouch.core.enforce_reference import RatingData
from vouch.core.errors import (
    UnauthorizedError, BookingNotCompletedError, DuplicateReferenceError,
    ReferenceLockedError, InvalidDisputeTransitionError, RatingValidationError,
    ResourceNotFoundError,
)
from vouch.core.time_windows import ensure_utc
from vouch.models.reference import Reference
from vouch.models.worker import Worker
from vouch.services.reference_ledger import ReferenceLedger


@pytest.fixture
def ledger(test_db, locks):
    return ReferenceLedger(test_db, locks=locks)


@pytest.fixture
async def setup(seed):
    community = await seed.community()
    author = await seed.member(community)
    worker_user = uuid4()
    worker = await seed.worker(user_id=worker_user)
    return community, author, worker, worker_user


async def _submit(ledger, seed, community, author, worker, rating=5, **kwargs):
    booking = await seed.booking(author, worker)
    return await ledger.submit(
        author, booking.id, worker.id, community.id,
        RatingData(service_type="Plumbing", rating=rating, **kwargs),
    )


async def test_submit_persists_and_updates_aggregates(ledger, seed, setup, test_db):
    community, author, worker, _ = setup
    ref = await _submit(ledger, seed, community, author, worker, rating=4,
                        sub_ratings={"punctuality": 5})

    assert ref.service_type == "plumbing"
    assert ref.dispute_status == DisputeStatus.NONE.value
    assert ref.is_repeat_customer is False
    assert ref.times_used == 1

    stored = await test_db.get(Worker, worker.id, populate_existing=True)
    assert stored.total_references == 1
    assert stored.average_rating == 4.0
    assert stored.sub_rating_averages == {"punctuality": 5.0}


async def test_non_member_cannot_submit(ledger, seed, setup):
    community, _, worker, _ = setup
    outsider = uuid4()
    booking = await seed.booking(outsider, worker)
    with pytest.raises(UnauthorizedError):
        await ledger.submit(
            outsider, booking.id, worker.id, community.id,
            RatingData(service_type="plumbing", rating=5),
        )


async def test_unknown_worker_is_not_found(ledger, setup):
    community, author, _, _ = setup
    with pytest.raises(ResourceNotFoundError):
        await ledger.submit(
            author, uuid4(), uuid4(), community.id,
            RatingData(service_type="plumbing", rating=5),
        )


async def test_unknown_booking_is_not_found(ledger, setup):
    community, author, worker, _ = setup
    with pytest.raises(ResourceNotFoundError):
        await ledger.submit(
            author, uuid4(), worker.id, community.id,
            RatingData(service_type="plumbing", rating=5),
        )


async def test_incomplete_booking_rejected(ledger, seed, setup):
    community, author, worker, _ = setup
    booking = await seed.booking(author, worker, BookingStatus.IN_PROGRESS)
    with pytest.raises(BookingNotCompletedError):
        await ledger.submit(
            author, booking.id, worker.id, community.id,
            RatingData(service_type="plumbing", rating=5),
        )


async def test_invalid_rating_rejected_before_any_write(ledger, seed, setup, test_db):
    community, author, worker, _ = setup
    booking = await seed.booking(author, worker)
    with pytest.raises(RatingValidationError):
        await ledger.submit(
            author, booking.id, worker.id, community.id,
            RatingData(service_type="plumbing", rating=7),
        )
    count = await test_db.execute(select(func.count(Reference.id)))
    assert count.scalar_one() == 0


async def test_duplicate_submission_rejected(ledger, seed, setup, test_db):
    community, author, worker, _ = setup
    booking = await seed.booking(author, worker)
    data = RatingData(service_type="plumbing", rating=5)
    await ledger.submit(author, booking.id, worker.id, community.id, data)

    with pytest.raises(DuplicateReferenceError):
        await ledger.submit(author, booking.id, worker.id, community.id, data)

    count = await test_db.execute(select(func.count(Reference.id)))
    assert count.scalar_one() == 1
    stored = await test_db.get(Worker, worker.id, populate_existing=True)
    assert stored.total_references == 1


async def test_second_booking_marks_repeat_customer(ledger, seed, setup, test_db):
    community, author, worker, _ = setup
    await _submit(ledger, seed, community, author, worker)
    second = await _submit(ledger, seed, community, author, worker, rating=4)

    assert second.is_repeat_customer is True
    assert second.times_used == 2
    stored = await test_db.get(Worker, worker.id, populate_existing=True)
    assert stored.repeat_customer_count == 1
    assert stored.average_rating == 4.5


async def test_disputed_prior_reference_not_counted_for_repeat(ledger, seed, setup):
    community, author, worker, worker_user = setup
    first = await _submit(ledger, seed, community, author, worker)
    await ledger.dispute(first.id, worker_user, "did not happen")

    second = await _submit(ledger, seed, community, author, worker)
    assert second.is_repeat_customer is False
    assert second.times_used == 1


# ─── Edit ────────────────────────────────────────────────────────

async def test_edit_within_window_keeps_history(ledger, seed, setup, test_db):
    community, author, worker, _ = setup
    ref = await _submit(ledger, seed, community, author, worker, rating=5,
                        description="great")

    edited = await ledger.edit(ref.id, author, new_rating=3, new_description="ok")

    assert edited.rating == 3
    assert edited.description == "ok"
    assert edited.is_edited is True
    assert len(edited.edit_history) == 1
    assert edited.edit_history[0]["old_rating"] == 5
    assert edited.edit_history[0]["old_description"] == "great"
    stored = await test_db.get(Worker, worker.id, populate_existing=True)
    assert stored.average_rating == 3.0


async def test_each_edit_appends_history(ledger, seed, setup):
    community, author, worker, _ = setup
    ref = await _submit(ledger, seed, community, author, worker, rating=5)
    await ledger.edit(ref.id, author, new_rating=4)
    edited = await ledger.edit(ref.id, author, new_rating=2)
    assert [h["old_rating"] for h in edited.edit_history] == [5, 4]


async def test_edit_merges_sub_ratings(ledger, seed, setup, test_db):
    community, author, worker, _ = setup
    ref = await _submit(ledger, seed, community, author, worker,
                        sub_ratings={"punctuality": 5, "cleanliness": 4})

    edited = await ledger.edit(ref.id, author, new_sub_ratings={"cleanliness": 2})

    assert edited.sub_ratings == {"punctuality": 5, "cleanliness": 2}
    assert edited.edit_history[0]["old_sub_ratings"] == {
        "punctuality": 5, "cleanliness": 4,
    }
    stored = await test_db.get(Worker, worker.id, populate_existing=True)
    assert stored.sub_rating_averages == {"punctuality": 5.0, "cleanliness": 2.0}


async def test_edit_after_window_is_locked(ledger, seed, setup):
    community, author, worker, _ = setup
    ref = await _submit(ledger, seed, community, author, worker)
    later = ensure_utc(ref.created_at) + timedelta(hours=25)
    with pytest.raises(ReferenceLockedError):
        await ledger.edit(ref.id, author, new_rating=1, now=later)


async def test_only_author_can_edit(ledger, seed, setup):
    community, author, worker, _ = setup
    ref = await _submit(ledger, seed, community, author, worker)
    with pytest.raises(UnauthorizedError):
        await ledger.edit(ref.id, uuid4(), new_rating=1)


# ─── Disputes ────────────────────────────────────────────────────

async def test_dispute_excludes_rating_but_keeps_count(ledger, seed, setup, test_db):
    community, author, worker, worker_user = setup
    await _submit(ledger, seed, community, author, worker, rating=5)
    other = await seed.member(community)
    low = await _submit(ledger, seed, community, other, worker, rating=1)

    disputed = await ledger.dispute(low.id, worker_user, "never showed up")

    assert disputed.dispute_status == DisputeStatus.DISPUTED.value
    assert disputed.dispute_reason == "never showed up"
    assert disputed.disputed_by == worker_user
    stored = await test_db.get(Worker, worker.id, populate_existing=True)
    assert stored.total_references == 2
    assert stored.average_rating == 5.0


async def test_stranger_cannot_dispute(ledger, seed, setup):
    community, author, worker, _ = setup
    ref = await _submit(ledger, seed, community, author, worker)
    with pytest.raises(UnauthorizedError):
        await ledger.dispute(ref.id, uuid4(), "not fair at all")


async def test_dispute_twice_rejected(ledger, seed, setup):
    community, author, worker, worker_user = setup
    ref = await _submit(ledger, seed, community, author, worker)
    await ledger.dispute(ref.id, worker_user, "first dispute")
    with pytest.raises(InvalidDisputeTransitionError):
        await ledger.dispute(ref.id, worker_user, "second dispute")


async def test_resolve_restores_rating(ledger, seed, setup, test_db):
    community, author, worker, worker_user = setup
    await _submit(ledger, seed, community, author, worker, rating=5)
    other = await seed.member(community)
    low = await _submit(ledger, seed, community, other, worker, rating=1)
    await ledger.dispute(low.id, worker_user, "never showed up")

    admin = uuid4()
    resolved = await ledger.resolve_dispute(low.id, admin, is_admin=True)

    assert resolved.dispute_status == DisputeStatus.RESOLVED.value
    assert resolved.resolved_by == admin
    stored = await test_db.get(Worker, worker.id, populate_existing=True)
    assert stored.average_rating == 3.0


async def test_resolve_requires_admin(ledger, seed, setup):
    community, author, worker, worker_user = setup
    ref = await _submit(ledger, seed, community, author, worker)
    await ledger.dispute(ref.id, worker_user, "never showed up")
    with pytest.raises(UnauthorizedError):
        await ledger.resolve_dispute(ref.id, worker_user, is_admin=False)


async def test_resolved_cannot_be_disputed_again(ledger, seed, setup):
    community, author, worker, worker_user = setup
    ref = await _submit(ledger, seed, community, author, worker)
    await ledger.dispute(ref.id, worker_user, "never showed up")
    await ledger.resolve_dispute(ref.id, uuid4(), is_admin=True)
    with pytest.raises(InvalidDisputeTransitionError):
        await ledger.dispute(ref.id, worker_user, "again please")


# ─── Aggregates ──────────────────────────────────────────────────

async def test_rederive_repairs_drift(ledger, seed, setup, test_db):
    community, author, worker, _ = setup
    await _submit(ledger, seed, community, author, worker, rating=4)
    await _submit(ledger, seed, community, author, worker, rating=2)

    drifted = await test_db.get(Worker, worker.id, populate_existing=True)
    drifted.total_references = 99
    drifted.average_rating = 1.0
    await test_db.commit()

    repaired = await ledger.rederive(worker.id, uuid4(), is_admin=True)
    assert repaired.total_references == 2
    assert repaired.average_rating == 3.0


async def test_rederive_requires_admin(ledger, setup):
    _, _, worker, _ = setup
    with pytest.raises(UnauthorizedError):
        await ledger.rederive(worker.id, uuid4(), is_admin=False)


async def test_response_rate_from_bookings(ledger, seed, setup, test_db):
    _, author, worker, _ = setup
    await seed.booking(author, worker, BookingStatus.COMPLETED)
    await seed.booking(author, worker, BookingStatus.PENDING)

    updated = await ledger.recompute_aggregates(worker.id)
    assert updated.response_rate == 0.5


async def test_list_for_worker_includes_disputed(ledger, seed, setup):
    community, author, worker, worker_user = setup
    ref = await _submit(ledger, seed, community, author, worker)
    await ledger.dispute(ref.id, worker_user, "never showed up")
    listed = await ledger.list_for_worker(worker.id)
    assert [r.id for r in listed] == [ref.id]
