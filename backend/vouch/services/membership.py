"""Membership Service — verification codes, verified memberships, admin revocation.

Invariants:
    - One live code per (user, community); re-issuing restarts the TTL
    - verify() consumes the code and creates the membership in one commit
    - member_count changes are single-statement increments (no read-modify-write)
    - Memberships in other communities are never touched

Design Decisions:
    - Re-verifying an existing membership returns it unchanged (idempotent)
    - A concurrent duplicate verify loses on the unique constraint and returns
      the winner's membership
    - A concurrent first issue loses on uq_code_user_community and re-issues
      onto the winner's row
"""

import logging
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vouch.core.domain_types import CODE_TTL_HOURS, VerificationMethod
from vouch.core.errors import ErrorContext, ResourceNotFoundError, UnauthorizedError
from vouch.core.time_windows import ensure_utc, utc_now
from vouch.core.verification_codes import (
    generate_code, check_code, check_issue_allowed,
)
from vouch.models.community import Community
from vouch.models.membership import Membership
from vouch.models.verification_code import VerificationCode

logger = logging.getLogger(__name__)


class MembershipService:
    """Membership & community verification."""

    def __init__(self, db: AsyncSession, code_ttl_hours: int = CODE_TTL_HOURS):
        self.db = db
        self.code_ttl_hours = code_ttl_hours

    async def issue_code(
        self,
        community_id: UUID,
        user_id: UUID,
        issued_by: UUID,
        is_admin: bool = False,
        now: datetime | None = None,
    ) -> tuple[VerificationCode, VerificationMethod]:
        """Issue (or re-issue) the code for (user, community)."""
        now = now or utc_now()
        community = await self._get_community(community_id)
        method = VerificationMethod(community.verification_method)
        error = check_issue_allowed(method, user_id, issued_by, is_admin)
        if error:
            error.context.community_id = str(community_id)
            raise error

        code = generate_code()
        record = await self._find_code(user_id, community_id)
        if record is None:
            record = VerificationCode(user_id=user_id, community_id=community_id)
            self.db.add(record)
        record.code = code
        record.issued_by = issued_by
        record.issued_at = now
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            record = await self._find_code(user_id, community_id)
            if record is None:
                raise
            record.code = code
            record.issued_by = issued_by
            record.issued_at = now
        await self.db.commit()

        logger.info(
            f"Verification code issued via {method.value}",
            extra={"user_id": user_id, "community_id": community_id},
        )
        return record, method

    def expires_at(self, record: VerificationCode) -> datetime:
        return ensure_utc(record.issued_at) + timedelta(hours=self.code_ttl_hours)

    async def verify(
        self,
        user_id: UUID,
        community_id: UUID,
        code: str,
        now: datetime | None = None,
    ) -> Membership:
        """Exchange a valid code for an immutable membership."""
        now = now or utc_now()
        await self._get_community(community_id)
        existing = await self.get_membership(user_id, community_id)
        if existing is not None:
            return existing

        record = await self._find_code(user_id, community_id)
        error = check_code(
            record.code if record else None,
            record.issued_at if record else None,
            code, now, self.code_ttl_hours,
        )
        if error:
            error.context.user_id = str(user_id)
            error.context.community_id = str(community_id)
            raise error

        membership = Membership(
            user_id=user_id, community_id=community_id, verified_at=now,
        )
        self.db.add(membership)
        await self.db.delete(record)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            winner = await self.get_membership(user_id, community_id)
            if winner is None:
                raise
            return winner
        await self.db.execute(
            update(Community)
            .where(Community.id == community_id)
            .values(member_count=Community.member_count + 1),
        )
        await self.db.commit()

        logger.info(
            "Membership verified",
            extra={"user_id": user_id, "community_id": community_id},
        )
        return membership

    async def revoke(
        self,
        community_id: UUID,
        user_id: UUID,
        revoked_by: UUID,
        is_admin: bool,
    ) -> None:
        """Admin-only removal of a membership."""
        if not is_admin:
            raise UnauthorizedError(
                "Only admins can revoke memberships",
                ErrorContext(user_id=str(revoked_by), community_id=str(community_id)),
            )
        membership = await self.get_membership(user_id, community_id)
        if membership is None:
            raise ResourceNotFoundError(
                "Membership", f"{user_id}@{community_id}",
            )
        await self.db.delete(membership)
        await self.db.execute(
            update(Community)
            .where(Community.id == community_id)
            .where(Community.member_count > 0)
            .values(member_count=Community.member_count - 1),
        )
        await self.db.commit()
        logger.info(
            "Membership revoked",
            extra={"user_id": user_id, "community_id": community_id},
        )

    async def get_membership(
        self, user_id: UUID, community_id: UUID,
    ) -> Membership | None:
        result = await self.db.execute(
            select(Membership)
            .where(Membership.user_id == user_id)
            .where(Membership.community_id == community_id),
        )
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: UUID) -> list[Membership]:
        result = await self.db.execute(
            select(Membership)
            .where(Membership.user_id == user_id)
            .order_by(Membership.verified_at),
        )
        return list(result.scalars().all())

    async def _find_code(
        self, user_id: UUID, community_id: UUID,
    ) -> VerificationCode | None:
        result = await self.db.execute(
            select(VerificationCode)
            .where(VerificationCode.user_id == user_id)
            .where(VerificationCode.community_id == community_id),
        )
        return result.scalar_one_or_none()

    async def _get_community(self, community_id: UUID) -> Community:
        community = await self.db.get(Community, community_id)
        if community is None:
            raise ResourceNotFoundError("Community", str(community_id))
        return community
