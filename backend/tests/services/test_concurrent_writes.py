"""Concurrent ledger writes — no lost updates on a worker's aggregates.

Each writer runs on its own session (separate connection), sharing one lock
registry, the way concurrent requests share the process-wide registry.
"""

import asyncio
from uuid import uuid4

from sqlalchemy import select, func

from vouch.core.domain_types import DisputeStatus
from vouch.core.enforce_reference import RatingData
from vouch.models.reference import Reference
from vouch.models.worker import Worker
from vouch.services.reference_ledger import ReferenceLedger

RATINGS = [5, 4, 3, 5, 4, 2, 5, 1]


async def test_parallel_submits_and_dispute_keep_aggregates_exact(
    file_session_factory, file_seed, locks,
):
    community = await file_seed.community()
    worker_user = uuid4()
    worker = await file_seed.worker(user_id=worker_user)

    first_author = await file_seed.member(community)
    first_booking = await file_seed.booking(first_author, worker)
    early = await ReferenceLedger(file_seed.db, locks=locks).submit(
        first_author, first_booking.id, worker.id, community.id,
        RatingData(service_type="plumbing", rating=1),
    )

    jobs = []
    for rating in RATINGS:
        author = await file_seed.member(community)
        booking = await file_seed.booking(author, worker)
        jobs.append((author, booking.id, rating))

    async def submit(author, booking_id, rating):
        async with file_session_factory() as db:
            await ReferenceLedger(db, locks=locks).submit(
                author, booking_id, worker.id, community.id,
                RatingData(service_type="plumbing", rating=rating),
            )

    async def dispute():
        async with file_session_factory() as db:
            await ReferenceLedger(db, locks=locks).dispute(
                early.id, worker_user, "job was never started",
            )

    await asyncio.gather(*(submit(*job) for job in jobs), dispute())

    async with file_session_factory() as db:
        stored = await db.get(Worker, worker.id)
        count = await db.execute(
            select(func.count(Reference.id)).where(Reference.worker_id == worker.id),
        )
        disputed = await db.get(Reference, early.id)

        assert disputed.dispute_status == DisputeStatus.DISPUTED.value
        assert stored.total_references == count.scalar_one() == len(RATINGS) + 1
        assert stored.average_rating == round(sum(RATINGS) / len(RATINGS), 2)

        before = (
            stored.total_references, stored.average_rating,
            stored.repeat_customer_count, stored.sub_rating_averages,
        )
        rederived = await ReferenceLedger(db, locks=locks).rederive(
            worker.id, uuid4(), is_admin=True,
        )
        after = (
            rederived.total_references, rederived.average_rating,
            rederived.repeat_customer_count, rederived.sub_rating_averages,
        )
        assert after == before
