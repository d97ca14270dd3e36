"""Initial schema — communities, memberships, verification codes, workers, bookings, references.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "communities",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("city", sa.String(100), nullable=False),
        sa.Column("state", sa.String(100), nullable=False),
        sa.Column("latitude", sa.Float, nullable=True),
        sa.Column("longitude", sa.Float, nullable=True),
        sa.Column("verification_method", sa.String(20), nullable=False, server_default="whatsapp"),
        sa.Column("member_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "memberships",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), nullable=False, index=True),
        sa.Column(
            "community_id", UUID(as_uuid=True),
            sa.ForeignKey("communities.id", ondelete="CASCADE"), nullable=False, index=True,
        ),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "community_id", name="uq_membership_user_community"),
    )

    op.create_table(
        "verification_codes",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), nullable=False),
        sa.Column(
            "community_id", UUID(as_uuid=True),
            sa.ForeignKey("communities.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("code", sa.String(12), nullable=False),
        sa.Column("issued_by", UUID(as_uuid=True), nullable=False),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "community_id", name="uq_code_user_community"),
    )

    op.create_table(
        "workers",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), nullable=True, index=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("service_types", sa.JSON, nullable=False),
        sa.Column("community_ids", sa.JSON, nullable=False),
        sa.Column("total_references", sa.Integer, nullable=False, server_default="0"),
        sa.Column("average_rating", sa.Float, nullable=False, server_default="0"),
        sa.Column("repeat_customer_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("response_rate", sa.Float, nullable=False, server_default="0"),
        sa.Column("sub_rating_averages", sa.JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "bookings",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("seeker_id", UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("worker_id", UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "worker_references",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("worker_id", UUID(as_uuid=True), sa.ForeignKey("workers.id"), nullable=False, index=True),
        sa.Column("author_id", UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("community_id", UUID(as_uuid=True), sa.ForeignKey("communities.id"), nullable=False),
        sa.Column("booking_id", UUID(as_uuid=True), nullable=False),
        sa.Column("service_type", sa.String(80), nullable=False),
        sa.Column("rating", sa.Integer, nullable=False),
        sa.Column("sub_ratings", sa.JSON, nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("photo_urls", sa.JSON, nullable=False),
        sa.Column("is_repeat_customer", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("times_used", sa.Integer, nullable=False, server_default="1"),
        sa.Column("dispute_status", sa.String(20), nullable=False, server_default="none"),
        sa.Column("dispute_reason", sa.Text, nullable=True),
        sa.Column("disputed_by", UUID(as_uuid=True), nullable=True),
        sa.Column("disputed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_by", UUID(as_uuid=True), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_edited", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("edit_history", sa.JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("author_id", "booking_id", name="uq_reference_author_booking"),
    )


def downgrade() -> None:
    op.drop_table("worker_references")
    op.drop_table("bookings")
    op.drop_table("workers")
    op.drop_table("verification_codes")
    op.drop_table("memberships")
    op.drop_table("communities")
