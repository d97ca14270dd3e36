"""Worker Stats — pure re-derivation of a worker's aggregates from its references.

Invariants:
    - Aggregates are a cache: compute_worker_aggregates over the full reference
      scan is the single source of truth
    - total_references counts every reference, disputed ones included
    - average_rating, sub-rating averages and repeat_customer_count skip open disputes
    - Never raises — empty inputs produce zeros

Design Decisions:
    - Full recompute instead of incremental running means: no drift, and a
      concurrent writer under the worker lock always sees a consistent scan
    - Rounded to 2 decimals for display, matching what the directory stores
"""

from dataclasses import dataclass, field

from vouch.core.domain_types import (
    BookingStatus, DisputeStatus, SUB_RATING_DIMENSIONS,
)
from vouch.core.enforce_reference import counts_toward_rating


@dataclass(frozen=True)
class ReferenceStats:
    """Only the reference fields aggregates depend on."""
    rating: int
    dispute_status: DisputeStatus = DisputeStatus.NONE
    is_repeat_customer: bool = False
    sub_ratings: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class WorkerAggregates:
    total_references: int = 0
    average_rating: float = 0.0
    repeat_customer_count: int = 0
    response_rate: float = 0.0
    sub_rating_averages: dict[str, float] = field(default_factory=dict)

    def as_fields(self) -> dict:
        """Column-name -> value mapping for the Worker row."""
        return {
            "total_references": self.total_references,
            "average_rating": self.average_rating,
            "repeat_customer_count": self.repeat_customer_count,
            "response_rate": self.response_rate,
            "sub_rating_averages": dict(self.sub_rating_averages),
        }


def _mean(values: list[int]) -> float:
    if not values:
        return 0.0
    return round(sum(values) / len(values), 2)


def compute_response_rate(booking_statuses: list[BookingStatus]) -> float:
    """Share of bookings the worker acted on (anything that left 'pending')."""
    if not booking_statuses:
        return 0.0
    responded = sum(1 for s in booking_statuses if s != BookingStatus.PENDING)
    return round(responded / len(booking_statuses), 2)


def compute_worker_aggregates(
    references: list[ReferenceStats],
    booking_statuses: list[BookingStatus] | None = None,
) -> WorkerAggregates:
    """Compute every derived Worker field. Pure, no IO."""
    counted = [r for r in references if counts_toward_rating(r.dispute_status)]

    sub_averages: dict[str, float] = {}
    for dimension in SUB_RATING_DIMENSIONS:
        values = [
            r.sub_ratings[dimension] for r in counted
            if dimension in r.sub_ratings
        ]
        if values:
            sub_averages[dimension] = _mean(values)

    return WorkerAggregates(
        total_references=len(references),
        average_rating=_mean([r.rating for r in counted]),
        repeat_customer_count=sum(1 for r in counted if r.is_repeat_customer),
        response_rate=compute_response_rate(booking_statuses or []),
        sub_rating_averages=sub_averages,
    )
