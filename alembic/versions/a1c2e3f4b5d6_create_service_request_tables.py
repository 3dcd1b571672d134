"""create_service_request_tables

Revision ID: a1c2e3f4b5d6
Revises:
Create Date: 2026-10-19 09:00:00.000000

사용자(users), 서비스 요청(service_requests), 추천(upvotes) 테이블 생성.
추천은 (요청, 사용자) / (요청, IP) 쌍마다 하나만 허용되며
user_id 와 ip_address 중 정확히 하나만 채워진다.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "a1c2e3f4b5d6"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("email", sa.String(256), nullable=False, unique=True),
        sa.Column("first_name", sa.String(100), server_default="", nullable=False),
        sa.Column("last_name", sa.String(100), server_default="", nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), server_default="Citizen", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "service_requests",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("category", sa.String(30), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("address", sa.String(500), nullable=False),
        sa.Column("neighborhood", sa.String(200), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("status", sa.String(20), server_default="Open", nullable=False),
        sa.Column("submitted_by_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_service_requests_status", "service_requests", ["status"])
    op.create_index("ix_service_requests_category", "service_requests", ["category"])
    op.create_index("ix_service_requests_created_at", "service_requests", ["created_at"])
    op.create_index("ix_service_requests_submitted_by_id", "service_requests", ["submitted_by_id"])

    op.create_table(
        "upvotes",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("service_request_id", UUID(as_uuid=True), sa.ForeignKey("service_requests.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("service_request_id", "user_id", name="uq_upvote_request_user"),
        sa.UniqueConstraint("service_request_id", "ip_address", name="uq_upvote_request_ip"),
        sa.CheckConstraint(
            "(user_id IS NOT NULL AND ip_address IS NULL) OR (user_id IS NULL AND ip_address IS NOT NULL)",
            name="ck_upvote_single_actor",
        ),
    )
    op.create_index("ix_upvotes_service_request_id", "upvotes", ["service_request_id"])


def downgrade() -> None:
    op.drop_index("ix_upvotes_service_request_id")
    op.drop_table("upvotes")
    op.drop_index("ix_service_requests_submitted_by_id")
    op.drop_index("ix_service_requests_created_at")
    op.drop_index("ix_service_requests_category")
    op.drop_index("ix_service_requests_status")
    op.drop_table("service_requests")
    op.drop_table("users")
