"""Worker Ranking — community-weighted ordering of workers for a search.

Invariants:
    - PURE: inputs are snapshots, output is a new list; nothing is cached between calls
    - Sort keys, all descending: in-community vouches, total_references,
      average_rating, repeat_customer_count; then worker id ascending
    - Workers with no references are never excluded, they sort last in their tier
    - Pages are 1-based and fixed-size; a page past the end is empty

Design Decisions:
    - One composite sort key instead of chained stable sorts: same order, one pass
    - Negated numeric keys give "descending" while the UUID tie-break stays ascending
    - in_community_vouches arrives precomputed (a grouped COUNT in the shell),
      so ranking never walks individual references
"""

from dataclasses import dataclass, field
from itertools import islice
from uuid import UUID

from vouch.core.domain_types import SEARCH_PAGE_SIZE, normalize_service_type


@dataclass(frozen=True)
class WorkerSnapshot:
    """Directory fields the ranking reads."""
    id: UUID
    name: str
    service_types: frozenset[str]
    total_references: int = 0
    average_rating: float = 0.0
    repeat_customer_count: int = 0
    community_ids: frozenset[UUID] = field(default_factory=frozenset)


@dataclass(frozen=True)
class RankedWorker:
    worker: WorkerSnapshot
    in_community_vouches: int
    position: int


@dataclass(frozen=True)
class RankedPage:
    items: list[RankedWorker]
    page: int
    page_size: int
    total: int

    @property
    def has_more(self) -> bool:
        return self.page * self.page_size < self.total


def offers_service(worker: WorkerSnapshot, service_type: str) -> bool:
    wanted = normalize_service_type(service_type)
    return any(normalize_service_type(s) == wanted for s in worker.service_types)


def ranking_key(
    worker: WorkerSnapshot, in_community_vouches: int,
) -> tuple[int, int, float, int, UUID]:
    return (
        -in_community_vouches,
        -worker.total_references,
        -worker.average_rating,
        -worker.repeat_customer_count,
        worker.id,
    )


def rank_workers(
    workers: list[WorkerSnapshot],
    service_type: str,
    in_community_vouches: dict[UUID, int],
) -> list[RankedWorker]:
    """Filter by service type and order by trust. Pure, deterministic."""
    candidates = [w for w in workers if offers_service(w, service_type)]
    ordered = sorted(
        candidates,
        key=lambda w: ranking_key(w, in_community_vouches.get(w.id, 0)),
    )
    return [
        RankedWorker(
            worker=w,
            in_community_vouches=in_community_vouches.get(w.id, 0),
            position=i + 1,
        )
        for i, w in enumerate(ordered)
    ]


def paginate(
    ranked: list[RankedWorker], page: int, page_size: int = SEARCH_PAGE_SIZE,
) -> RankedPage:
    """Slice one page out of a ranking. page < 1 is treated as 1."""
    page = max(page, 1)
    start = (page - 1) * page_size
    items = list(islice(ranked, start, start + page_size))
    return RankedPage(items=items, page=page, page_size=page_size, total=len(ranked))
