"""Worker Schemas — directory payloads and ranked search results.

Invariants:
    - WorkerCreate never carries aggregate fields (they are derived)
    - At least one service type per worker
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from vouch.core.domain_types import normalize_service_type


class WorkerCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=2, max_length=200)
    user_id: UUID | None = None
    service_types: list[str] = Field(min_length=1, max_length=20)
    community_ids: list[UUID] = Field(default_factory=list)

    @field_validator("service_types")
    @classmethod
    def normalize_services(cls, v: list[str]) -> list[str]:
        cleaned = sorted({normalize_service_type(s) for s in v if s.strip()})
        if not cleaned:
            raise ValueError("at least one non-empty service type is required")
        return cleaned


class WorkerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID | None
    name: str
    service_types: list[str]
    community_ids: list[UUID]
    total_references: int
    average_rating: float
    repeat_customer_count: int
    response_rate: float
    sub_rating_averages: dict[str, float]
    created_at: datetime


class WorkerSummary(BaseModel):
    """One row of a ranked search."""
    position: int
    id: UUID
    name: str
    service_types: list[str]
    in_community_vouches: int
    total_references: int
    average_rating: float
    repeat_customer_count: int


class WorkerSearchResponse(BaseModel):
    community_id: UUID
    service_type: str
    page: int
    page_size: int
    total: int
    has_more: bool
    workers: list[WorkerSummary]
