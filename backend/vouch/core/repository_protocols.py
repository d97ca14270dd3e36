"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - Outbound side effects (worker notifications, code delivery) go through Notifier
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Notifier calls are fire-and-forget from the ledger's point of view:
      a failed notification never rolls back a committed write
"""

from typing import Protocol

from vouch.core.domain_types import UserId, WorkerId, CommunityId, ReferenceId


class Notifier(Protocol):
    """Contract for outbound notifications — implemented by infrastructure."""
    async def reference_submitted(
        self, worker_id: WorkerId, reference_id: ReferenceId, rating: int,
    ) -> None: ...
    async def reference_disputed(
        self, worker_id: WorkerId, reference_id: ReferenceId, reason: str,
    ) -> None: ...
    async def verification_code_issued(
        self, user_id: UserId, community_id: CommunityId, code: str,
    ) -> None: ...
