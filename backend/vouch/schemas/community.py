"""Community & Membership Schemas — registry and verification payloads.

Invariants:
    - Coordinates bounded to valid latitude/longitude ranges
    - Verification codes are 4–16 digits (whitespace stripped)
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from vouch.core.domain_types import VerificationMethod


class CommunityCreate(BaseModel):
    name: str = Field(min_length=2, max_length=200)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=100)
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    verification_method: VerificationMethod = VerificationMethod.WHATSAPP

    @field_validator("name", "city", "state")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty or whitespace")
        return v


class CommunityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    city: str
    state: str
    latitude: float | None
    longitude: float | None
    verification_method: VerificationMethod
    member_count: int
    created_at: datetime


class CodeIssueRequest(BaseModel):
    """user_id defaults to the caller (whatsapp self-service)."""
    user_id: UUID | None = None


class CodeIssueResponse(BaseModel):
    community_id: UUID
    user_id: UUID
    issued_at: datetime
    expires_at: datetime
    delivery: str
    # Present only when an admin issues the code and must hand it over
    code: str | None = None


class VerifyRequest(BaseModel):
    code: str = Field(min_length=4, max_length=16)

    @field_validator("code")
    @classmethod
    def digits_only(cls, v: str) -> str:
        v = "".join(v.split())
        if not (v.isascii() and v.isdigit()):
            raise ValueError("code must contain digits 0-9 only")
        return v


class MembershipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    community_id: UUID
    verified_at: datetime
