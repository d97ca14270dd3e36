"""Community Routes — registry create/read/list.

Invariants:
    - Any authenticated user may read; only admins create communities
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from vouch.api.dependencies import get_current_user_id, get_is_admin
from vouch.core.errors import ErrorContext, UnauthorizedError
from vouch.infrastructure.database import get_db
from vouch.schemas.community import CommunityCreate, CommunityResponse
from vouch.services.communities import CommunityRegistry

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/communities", tags=["communities"])


@router.post(
    "", response_model=CommunityResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_community(
    body: CommunityCreate,
    user_id: UUID = Depends(get_current_user_id),
    is_admin: bool = Depends(get_is_admin),
    db: AsyncSession = Depends(get_db),
):
    """Register a community (admin only)."""
    if not is_admin:
        raise UnauthorizedError(
            "Only admins can register communities",
            ErrorContext(user_id=str(user_id)),
        )
    return await CommunityRegistry(db).create(
        name=body.name,
        city=body.city,
        state=body.state,
        verification_method=body.verification_method,
        latitude=body.latitude,
        longitude=body.longitude,
    )


@router.get("", response_model=list[CommunityResponse])
async def list_communities(
    city: str | None = Query(None, max_length=100),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    _: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """List communities, optionally filtered by city."""
    return await CommunityRegistry(db).list_communities(city, limit, offset)


@router.get("/{community_id}", response_model=CommunityResponse)
async def get_community(
    community_id: UUID,
    _: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await CommunityRegistry(db).get(community_id)
