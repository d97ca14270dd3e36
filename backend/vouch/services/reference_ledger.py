"""Reference Ledger — submit, edit, dispute and resolve references; owns worker aggregates.

Invariants:
    - Every precondition is checked by core/enforce_reference.py before any write
    - Reference write and aggregate recompute commit in one transaction
    - Aggregate recompute runs under the per-worker lock and a row lock on the
      worker (SELECT ... FOR UPDATE) — no lost updates between concurrent writers
    - Aggregates are recomputed from the full reference scan, never incremented
    - No delete path: references are only ever disputed

Design Decisions:
    - Impureim sandwich: load facts (IO) -> validate (pure) -> persist (IO)
    - Unique-constraint race on (author_id, booking_id) surfaces as
      DuplicateReferenceError, same as the pre-check
    - `now` injectable on time-sensitive operations: window checks stay testable
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vouch.core.domain_types import (
    BookingStatus, DisputeStatus, EDIT_WINDOW_HOURS,
)
from vouch.core.enforce_reference import (
    BookingFacts, SubmissionFacts, RatingData,
    validate_rating_data, validate_submission, repeat_customer_status,
    check_edit_allowed, build_edit_snapshot,
    check_dispute_allowed, check_resolution_allowed,
)
from vouch.core.errors import (
    ErrorContext, DuplicateReferenceError, ResourceNotFoundError, UnauthorizedError,
)
from vouch.core.time_windows import utc_now
from vouch.core.worker_stats import (
    ReferenceStats, WorkerAggregates, compute_worker_aggregates,
)
from vouch.infrastructure.worker_locks import WorkerLockRegistry, worker_locks
from vouch.models.booking import Booking
from vouch.models.membership import Membership
from vouch.models.reference import Reference
from vouch.models.worker import Worker

logger = logging.getLogger(__name__)


class ReferenceLedger:
    """Append-mostly store of vouches and sole writer of worker aggregates."""

    def __init__(
        self,
        db: AsyncSession,
        locks: WorkerLockRegistry = worker_locks,
        edit_window_hours: int = EDIT_WINDOW_HOURS,
    ):
        self.db = db
        self.locks = locks
        self.edit_window_hours = edit_window_hours

    # ─── Reads ──────────────────────────────────────────────────

    async def get(self, reference_id: UUID) -> Reference:
        reference = await self.db.get(Reference, reference_id)
        if reference is None:
            raise ResourceNotFoundError("Reference", str(reference_id))
        return reference

    async def list_for_worker(self, worker_id: UUID) -> list[Reference]:
        result = await self.db.execute(
            select(Reference)
            .where(Reference.worker_id == worker_id)
            .order_by(Reference.created_at.desc(), Reference.id),
        )
        return list(result.scalars().all())

    # ─── Submit ─────────────────────────────────────────────────

    async def submit(
        self,
        author_id: UUID,
        booking_id: UUID,
        worker_id: UUID,
        community_id: UUID,
        rating_data: RatingData,
    ) -> Reference:
        """Persist a reference for a completed booking and refresh aggregates."""
        error = validate_rating_data(rating_data.rating, rating_data.sub_ratings)
        if error:
            raise error
        await self._get_worker(worker_id)

        facts = SubmissionFacts(
            author_id=author_id,
            worker_id=worker_id,
            booking_id=booking_id,
            community_id=community_id,
            author_is_member=await self._is_member(author_id, community_id),
            booking=await self._booking_facts(booking_id),
            already_submitted=await self._already_submitted(author_id, booking_id),
        )
        error = validate_submission(facts)
        if error:
            raise error

        async with self.locks.hold(worker_id):
            worker = await self._lock_worker_row(worker_id)
            prior = await self._count_prior_undisputed(author_id, worker_id)
            is_repeat, times_used = repeat_customer_status(prior)
            reference = Reference(
                worker_id=worker_id,
                author_id=author_id,
                community_id=community_id,
                booking_id=booking_id,
                service_type=rating_data.service_type.strip().lower(),
                rating=rating_data.rating,
                sub_ratings=dict(rating_data.sub_ratings),
                description=rating_data.description,
                photo_urls=list(rating_data.photo_urls),
                is_repeat_customer=is_repeat,
                times_used=times_used,
                dispute_status=DisputeStatus.NONE.value,
            )
            self.db.add(reference)
            try:
                await self.db.flush()
            except IntegrityError:
                await self.db.rollback()
                raise DuplicateReferenceError(
                    str(booking_id), ErrorContext(user_id=str(author_id)),
                )
            await self._apply_aggregates(worker)
            await self.db.commit()

        logger.info(
            f"Reference submitted (rating={reference.rating}, repeat={is_repeat})",
            extra={
                "reference_id": reference.id, "worker_id": worker_id,
                "user_id": author_id, "community_id": community_id,
            },
        )
        return reference

    # ─── Edit ───────────────────────────────────────────────────

    async def edit(
        self,
        reference_id: UUID,
        editor_id: UUID,
        new_rating: int | None = None,
        new_description: str | None = None,
        new_sub_ratings: dict[str, int] | None = None,
        now: datetime | None = None,
    ) -> Reference:
        """Edit within the grace window; the previous content is kept in edit_history.

        Sub-ratings merge key by key: omitted keys keep their current value.
        """
        now = now or utc_now()
        reference = await self.get(reference_id)
        error = check_edit_allowed(
            reference.author_id, editor_id, reference.created_at, now,
            self.edit_window_hours,
        )
        if error:
            error.context.reference_id = str(reference_id)
            raise error

        rating = new_rating if new_rating is not None else reference.rating
        sub_ratings = {**reference.sub_ratings, **(new_sub_ratings or {})}
        error = validate_rating_data(rating, sub_ratings)
        if error:
            raise error

        async with self.locks.hold(reference.worker_id):
            worker = await self._lock_worker_row(reference.worker_id)
            snapshot = build_edit_snapshot(
                reference.rating, reference.description, now, reference.sub_ratings,
            )
            reference.edit_history = [*reference.edit_history, snapshot]
            reference.rating = rating
            reference.sub_ratings = dict(sub_ratings)
            if new_description is not None:
                reference.description = new_description
            reference.is_edited = True
            await self.db.flush()
            await self._apply_aggregates(worker)
            await self.db.commit()

        logger.info(
            f"Reference edited (revision {len(reference.edit_history)})",
            extra={"reference_id": reference_id, "user_id": editor_id},
        )
        return reference

    # ─── Disputes ───────────────────────────────────────────────

    async def dispute(
        self,
        reference_id: UUID,
        raised_by: UUID,
        reason: str,
        is_admin: bool = False,
        now: datetime | None = None,
    ) -> Reference:
        """Open a dispute. Allowed at any time; excludes the rating from averages."""
        reference = await self.get(reference_id)
        worker = await self._get_worker(reference.worker_id)
        error = check_dispute_allowed(
            DisputeStatus(reference.dispute_status), raised_by, worker.user_id, is_admin,
        )
        if error:
            error.context.reference_id = str(reference_id)
            raise error

        async with self.locks.hold(reference.worker_id):
            worker = await self._lock_worker_row(reference.worker_id)
            reference.dispute_status = DisputeStatus.DISPUTED.value
            reference.dispute_reason = reason
            reference.disputed_by = raised_by
            reference.disputed_at = now or utc_now()
            await self.db.flush()
            await self._apply_aggregates(worker)
            await self.db.commit()

        logger.info(
            "Reference disputed",
            extra={"reference_id": reference_id, "user_id": raised_by},
        )
        return reference

    async def resolve_dispute(
        self,
        reference_id: UUID,
        resolved_by: UUID,
        is_admin: bool,
        now: datetime | None = None,
    ) -> Reference:
        """Admin closes a dispute; the reference counts toward averages again."""
        reference = await self.get(reference_id)
        error = check_resolution_allowed(
            DisputeStatus(reference.dispute_status), resolved_by, is_admin,
        )
        if error:
            error.context.reference_id = str(reference_id)
            raise error

        async with self.locks.hold(reference.worker_id):
            worker = await self._lock_worker_row(reference.worker_id)
            reference.dispute_status = DisputeStatus.RESOLVED.value
            reference.resolved_by = resolved_by
            reference.resolved_at = now or utc_now()
            await self.db.flush()
            await self._apply_aggregates(worker)
            await self.db.commit()

        logger.info(
            "Reference dispute resolved",
            extra={"reference_id": reference_id, "user_id": resolved_by},
        )
        return reference

    # ─── Aggregates ─────────────────────────────────────────────

    async def recompute_aggregates(self, worker_id: UUID) -> Worker:
        """Re-derive a worker's cached aggregates from its references."""
        await self._get_worker(worker_id)
        async with self.locks.hold(worker_id):
            worker = await self._lock_worker_row(worker_id)
            aggregates = await self._apply_aggregates(worker)
            await self.db.commit()
        logger.info(
            f"Aggregates re-derived (total_references={aggregates.total_references})",
            extra={"worker_id": worker_id},
        )
        return worker

    async def rederive(
        self, worker_id: UUID, requested_by: UUID, is_admin: bool,
    ) -> Worker:
        """Admin-triggered re-derivation (drift repair)."""
        if not is_admin:
            raise UnauthorizedError(
                "Only admins can re-derive worker aggregates",
                ErrorContext(user_id=str(requested_by), worker_id=str(worker_id)),
            )
        return await self.recompute_aggregates(worker_id)

    async def _apply_aggregates(self, worker: Worker) -> WorkerAggregates:
        """Scan references + bookings and overwrite the worker's cached fields."""
        rows = await self.db.execute(
            select(
                Reference.rating,
                Reference.dispute_status,
                Reference.is_repeat_customer,
                Reference.sub_ratings,
            ).where(Reference.worker_id == worker.id),
        )
        references = [
            ReferenceStats(
                rating=rating,
                dispute_status=DisputeStatus(status),
                is_repeat_customer=is_repeat,
                sub_ratings=sub_ratings or {},
            )
            for rating, status, is_repeat, sub_ratings in rows.all()
        ]
        statuses = await self.db.execute(
            select(Booking.status).where(Booking.worker_id == worker.id),
        )
        aggregates = compute_worker_aggregates(
            references, [BookingStatus(s) for s in statuses.scalars().all()],
        )
        for column, value in aggregates.as_fields().items():
            setattr(worker, column, value)
        await self.db.flush()
        return aggregates

    # ─── Loaders ────────────────────────────────────────────────

    async def _get_worker(self, worker_id: UUID) -> Worker:
        worker = await self.db.get(Worker, worker_id)
        if worker is None:
            raise ResourceNotFoundError("Worker", str(worker_id))
        return worker

    async def _lock_worker_row(self, worker_id: UUID) -> Worker:
        result = await self.db.execute(
            select(Worker)
            .where(Worker.id == worker_id)
            .with_for_update()
            .execution_options(populate_existing=True),
        )
        return result.scalar_one()

    async def _is_member(self, user_id: UUID, community_id: UUID) -> bool:
        result = await self.db.execute(
            select(Membership.id)
            .where(Membership.user_id == user_id)
            .where(Membership.community_id == community_id),
        )
        return result.scalar_one_or_none() is not None

    async def _booking_facts(self, booking_id: UUID) -> BookingFacts | None:
        booking = await self.db.get(Booking, booking_id)
        if booking is None:
            return None
        return BookingFacts(
            booking_id=booking.id,
            seeker_id=booking.seeker_id,
            worker_id=booking.worker_id,
            status=BookingStatus(booking.status),
        )

    async def _already_submitted(self, author_id: UUID, booking_id: UUID) -> bool:
        result = await self.db.execute(
            select(Reference.id)
            .where(Reference.author_id == author_id)
            .where(Reference.booking_id == booking_id),
        )
        return result.scalar_one_or_none() is not None

    async def _count_prior_undisputed(self, author_id: UUID, worker_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count(Reference.id))
            .where(Reference.author_id == author_id)
            .where(Reference.worker_id == worker_id)
            .where(Reference.dispute_status != DisputeStatus.DISPUTED.value),
        )
        return result.scalar_one()
