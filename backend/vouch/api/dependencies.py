"""Request Dependencies — caller identity, admin role, notifier.

Invariants:
    - Identity comes from the X-User-Id header set by the upstream auth gateway;
      it is trusted as-is (no credential checks here)
    - A missing header is a 401, a malformed one a 400 validation error
    - Admin role derives from Settings.admin_user_ids only

Design Decisions:
    - Notifier built once per process from settings; tests override get_notifier
"""

from functools import lru_cache
from uuid import UUID

from fastapi import Depends, Header

from vouch.config import Settings, get_settings
from vouch.core.errors import AuthenticationRequiredError
from vouch.core.repository_protocols import Notifier
from vouch.infrastructure.notifier import build_notifier


async def get_current_user_id(
    x_user_id: UUID | None = Header(None, alias="X-User-Id"),
) -> UUID:
    if x_user_id is None:
        raise AuthenticationRequiredError()
    return x_user_id


async def get_is_admin(
    user_id: UUID = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
) -> bool:
    return settings.is_admin(user_id)


@lru_cache
def get_notifier() -> Notifier:
    return build_notifier(get_settings())
