"""Verification Codes — issuing and checking community membership codes.

Invariants:
    - Codes are 6 decimal digits, generated from a CSPRNG
    - check_code order: no code issued -> InvalidCode, mismatch -> InvalidCode,
      matched but >= ttl old -> CodeExpired
    - Non-ASCII input is an InvalidCode, never a comparison error
    - Mismatched codes never reveal whether the code is also expired

Design Decisions:
    - Constant-time comparison (hmac.compare_digest) for supplied codes
    - Issuing policy is pure: the shell only loads the community and the caller role
"""

import hmac
import secrets
from datetime import datetime
from uuid import UUID

from vouch.core.domain_types import CODE_TTL_HOURS, VerificationMethod
from vouch.core.errors import (
    VouchError, ErrorContext, InvalidCodeError, CodeExpiredError, UnauthorizedError,
)
from vouch.core.time_windows import is_within_window

CODE_LENGTH: int = 6


def generate_code(length: int = CODE_LENGTH) -> str:
    return "".join(secrets.choice("0123456789") for _ in range(length))


def normalize_code(code: str) -> str:
    return "".join(code.split())


def check_issue_allowed(
    method: VerificationMethod,
    user_id: UUID,
    issued_by: UUID,
    is_admin: bool,
) -> VouchError | None:
    """whatsapp: users request their own code. admin: only admins issue codes."""
    if method == VerificationMethod.ADMIN and not is_admin:
        return UnauthorizedError(
            "This community admits members through an administrator",
            ErrorContext(user_id=str(issued_by)),
        )
    if method == VerificationMethod.WHATSAPP and issued_by != user_id and not is_admin:
        return UnauthorizedError(
            "Users can only request verification codes for themselves",
            ErrorContext(user_id=str(issued_by)),
        )
    return None


def check_code(
    stored_code: str | None,
    issued_at: datetime | None,
    supplied: str,
    now: datetime,
    ttl_hours: int = CODE_TTL_HOURS,
) -> VouchError | None:
    """Validate a supplied code against the one issued for (user, community)."""
    if stored_code is None or issued_at is None:
        return InvalidCodeError()
    supplied = normalize_code(supplied)
    if not supplied.isascii():
        return InvalidCodeError()
    if not hmac.compare_digest(stored_code.encode(), supplied.encode()):
        return InvalidCodeError()
    if not is_within_window(issued_at, now, ttl_hours):
        return CodeExpiredError(ttl_hours)
    return None
