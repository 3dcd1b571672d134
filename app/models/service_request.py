"""서비스 요청 관련 SQLAlchemy ORM 모델 정의.

Service request SQLAlchemy ORM model definitions.
Includes citizen-submitted service requests and their upvotes
("I'm affected too" votes).

Tables:
    - service_requests: 서비스 요청 (Potholes, graffiti, leaks, ...)
    - upvotes: 추천 (One vote per user, or per IP for anonymous voters)
"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum as SAEnum,
    Float,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class ServiceRequestCategory(str, Enum):
    """서비스 요청 분류 — Service request category."""

    POTHOLE = "Pothole"
    STREET_LIGHT = "StreetLight"
    GRAFFITI = "Graffiti"
    ILLEGAL_DUMPING = "IllegalDumping"
    SIDEWALK_REPAIR = "SidewalkRepair"
    TREE_MAINTENANCE = "TreeMaintenance"
    WATER_LEAK = "WaterLeak"
    OTHER = "Other"


class ServiceRequestStatus(str, Enum):
    """서비스 요청 상태 — 어떤 상태에서든 다른 상태로 전이 가능.

    Service request status. Transitions are unconstrained.
    """

    OPEN = "Open"
    IN_PROGRESS = "InProgress"
    CLOSED = "Closed"


def _enum_values(enum_cls: type[Enum]) -> list[str]:
    """DB에는 멤버 이름이 아닌 값(value)을 저장 — Persist values, not member names."""
    return [member.value for member in enum_cls]


class ServiceRequest(Base):
    """서비스 요청 모델 — 시민이 제출한 민원.

    Service request model — An issue reported by a citizen or guest.
    submitted_by_id is NULL for guest submissions.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        category: 분류 (Category enum, stored as string)
        description: 상세 설명 (Description, 10–2000 chars)
        address: 주소 (Street address, max 500 chars)
        neighborhood: 동네 (Locality derived from the address, nullable)
        latitude: 위도 (Latitude, optional)
        longitude: 경도 (Longitude, optional)
        status: 처리 상태 (Status enum, stored as string)
        submitted_by_id: 제출자 FK (Submitter, NULL = guest)
        created_at: 생성 일시 UTC (Creation timestamp)
        updated_at: 수정 일시 UTC (Last status change timestamp)

    Relationships:
        submitted_by: 제출자 (Submitting user)
        upvotes: 추천 목록 (Upvotes, cascade delete)
    """

    __tablename__ = "service_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    category: Mapped[ServiceRequestCategory] = mapped_column(
        SAEnum(ServiceRequestCategory, native_enum=False, length=30, values_callable=_enum_values),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    # 주소에서 추출한 동네 — 통계 집계용 (Derived from the address for statistics)
    neighborhood: Mapped[str | None] = mapped_column(String(200), nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    status: Mapped[ServiceRequestStatus] = mapped_column(
        SAEnum(ServiceRequestStatus, native_enum=False, length=20, values_callable=_enum_values),
        nullable=False,
        default=ServiceRequestStatus.OPEN,
    )
    # 제출자 FK — 사용자 삭제 시 NULL (SET NULL on user delete, NULL = guest)
    submitted_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_service_requests_status", "status"),
        Index("ix_service_requests_category", "category"),
        Index("ix_service_requests_created_at", "created_at"),
        Index("ix_service_requests_submitted_by_id", "submitted_by_id"),
    )

    # 관계 — Relationships
    submitted_by = relationship("User", back_populates="submitted_requests")
    upvotes = relationship("Upvote", back_populates="service_request", cascade="all, delete-orphan", passive_deletes=True)


class Upvote(Base):
    """추천 모델 — 요청당 행위자(actor) 1표.

    Upvote model — At most one vote per actor per request.
    Authenticated voters are stored by user_id; anonymous voters by ip_address.
    Exactly one of the two is populated, and each pair with the request id is
    unique, so the database is the final guard against duplicate votes.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        service_request_id: 대상 요청 FK (Owning service request)
        user_id: 로그인 사용자 FK (Voter, NULL for anonymous votes)
        ip_address: 익명 투표자 IP (Anonymous voter IP, NULL when user_id is set)
        created_at: 생성 일시 UTC (Vote timestamp)
    """

    __tablename__ = "upvotes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    service_request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("service_requests.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=True
    )
    # IPv6 최대 길이 45자 (Max textual IPv6 length)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("service_request_id", "user_id", name="uq_upvote_request_user"),
        UniqueConstraint("service_request_id", "ip_address", name="uq_upvote_request_ip"),
        CheckConstraint(
            "(user_id IS NOT NULL AND ip_address IS NULL) OR (user_id IS NULL AND ip_address IS NOT NULL)",
            name="ck_upvote_single_actor",
        ),
        Index("ix_upvotes_service_request_id", "service_request_id"),
    )

    service_request = relationship("ServiceRequest", back_populates="upvotes")
