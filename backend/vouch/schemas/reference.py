"""Reference Schemas — submission, edit and dispute payloads with field-level validation.

Invariants:
    - rating and every sub-rating bounded 1–5
    - Only the four known sub-rating dimensions are accepted
    - description stripped; dispute reason required and non-empty
    - ReferenceEdit must change something

Design Decisions:
    - SubRatings as a model with optional fields: partial sub-ratings are allowed,
      unknown dimensions rejected by extra="forbid"
    - Bounds duplicated in core/enforce_reference.py: the core checks again so
      services stay safe when called without the HTTP layer
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from vouch.core.domain_types import DisputeStatus


class SubRatings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    professionalism: int | None = Field(None, ge=1, le=5)
    punctuality: int | None = Field(None, ge=1, le=5)
    cleanliness: int | None = Field(None, ge=1, le=5)
    value_for_money: int | None = Field(None, ge=1, le=5)

    def as_dict(self) -> dict[str, int]:
        return self.model_dump(exclude_none=True)


class ReferenceCreate(BaseModel):
    worker_id: UUID
    booking_id: UUID
    community_id: UUID
    service_type: str = Field(min_length=1, max_length=80)
    rating: int = Field(ge=1, le=5)
    sub_ratings: SubRatings = Field(default_factory=SubRatings)
    description: str = Field("", max_length=5000)
    photo_urls: list[str] = Field(default_factory=list, max_length=10)

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: str) -> str:
        return v.strip()


class ReferenceEdit(BaseModel):
    rating: int | None = Field(None, ge=1, le=5)
    description: str | None = Field(None, max_length=5000)
    sub_ratings: SubRatings | None = None

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else v

    @model_validator(mode="after")
    def require_change(self):
        if self.rating is None and self.description is None and self.sub_ratings is None:
            raise ValueError("edit requires rating, description or sub_ratings")
        return self


class DisputeRequest(BaseModel):
    reason: str = Field(min_length=5, max_length=2000)

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 5:
            raise ValueError("reason must be at least 5 characters")
        return v


class EditSnapshot(BaseModel):
    edited_at: datetime
    old_rating: int
    old_description: str
    old_sub_ratings: dict[str, int] = Field(default_factory=dict)


class ReferenceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    worker_id: UUID
    author_id: UUID
    community_id: UUID
    booking_id: UUID
    service_type: str
    rating: int
    sub_ratings: dict[str, int]
    description: str
    photo_urls: list[str]
    is_repeat_customer: bool
    times_used: int
    dispute_status: DisputeStatus
    dispute_reason: str | None
    is_edited: bool
    edit_history: list[EditSnapshot]
    created_at: datetime
