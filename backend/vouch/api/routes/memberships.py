"""Membership Routes — verification codes, verify, revoke, own memberships.

Invariants:
    - whatsapp communities: the code goes out through the notifier, never in the response
    - admin communities: the issuing admin receives the code in the response
    - Code delivery is a background task; its failure never undoes the issue
"""

import logging
from functools import partial
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from vouch.api.dependencies import get_current_user_id, get_is_admin, get_notifier
from vouch.config import Settings, get_settings
from vouch.core.domain_types import VerificationMethod
from vouch.core.repository_protocols import Notifier
from vouch.infrastructure.database import get_db
from vouch.infrastructure.notifier import notify_safely
from vouch.schemas.community import (
    CodeIssueRequest, CodeIssueResponse, VerifyRequest, MembershipResponse,
)
from vouch.services.membership import MembershipService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["memberships"])


@router.post(
    "/communities/{community_id}/verification-codes",
    response_model=CodeIssueResponse,
    status_code=status.HTTP_201_CREATED,
)
async def issue_verification_code(
    community_id: UUID,
    body: CodeIssueRequest,
    background_tasks: BackgroundTasks,
    user_id: UUID = Depends(get_current_user_id),
    is_admin: bool = Depends(get_is_admin),
    notifier: Notifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db),
):
    """Issue a verification code for the caller (or, for admins, any user)."""
    target_user = body.user_id or user_id
    service = MembershipService(db, settings.verification_code_ttl_hours)
    record, method = await service.issue_code(
        community_id, target_user, user_id, is_admin,
    )

    if method == VerificationMethod.WHATSAPP:
        background_tasks.add_task(
            notify_safely,
            partial(
                notifier.verification_code_issued,
                target_user, community_id, record.code,
            ),
            "Verification code delivery",
        )
    return CodeIssueResponse(
        community_id=community_id,
        user_id=target_user,
        issued_at=record.issued_at,
        expires_at=service.expires_at(record),
        delivery=method.value,
        code=record.code if method == VerificationMethod.ADMIN else None,
    )


@router.post(
    "/communities/{community_id}/verify",
    response_model=MembershipResponse,
)
async def verify_membership(
    community_id: UUID,
    body: VerifyRequest,
    user_id: UUID = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db),
):
    """Exchange the caller's code for a community membership."""
    service = MembershipService(db, settings.verification_code_ttl_hours)
    return await service.verify(user_id, community_id, body.code)


@router.delete(
    "/communities/{community_id}/members/{member_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def revoke_membership(
    community_id: UUID,
    member_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    is_admin: bool = Depends(get_is_admin),
    db: AsyncSession = Depends(get_db),
):
    """Admin removes a member from a community."""
    await MembershipService(db).revoke(community_id, member_id, user_id, is_admin)


@router.get("/users/me/memberships", response_model=list[MembershipResponse])
async def list_my_memberships(
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await MembershipService(db).list_for_user(user_id)
