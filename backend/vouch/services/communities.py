"""Community Registry — create and look up communities.

Invariants:
    - New communities start with member_count = 0
    - Only member_count ever changes after creation (services/membership.py)
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vouch.core.domain_types import VerificationMethod
from vouch.core.errors import ResourceNotFoundError
from vouch.models.community import Community

logger = logging.getLogger(__name__)


class CommunityRegistry:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        name: str,
        city: str,
        state: str,
        verification_method: VerificationMethod,
        latitude: float | None = None,
        longitude: float | None = None,
    ) -> Community:
        community = Community(
            name=name, city=city, state=state,
            latitude=latitude, longitude=longitude,
            verification_method=verification_method.value,
            member_count=0,
        )
        self.db.add(community)
        await self.db.commit()
        logger.info(
            f"Community '{name}' created ({verification_method.value})",
            extra={"community_id": community.id},
        )
        return community

    async def get(self, community_id: UUID) -> Community:
        community = await self.db.get(Community, community_id)
        if community is None:
            raise ResourceNotFoundError("Community", str(community_id))
        return community

    async def list_communities(
        self, city: str | None = None, limit: int = 20, offset: int = 0,
    ) -> list[Community]:
        query = select(Community).order_by(Community.name, Community.id)
        if city:
            query = query.where(Community.city == city)
        result = await self.db.execute(query.limit(limit).offset(offset))
        return list(result.scalars().all())
