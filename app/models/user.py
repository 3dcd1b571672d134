"""사용자 관련 SQLAlchemy ORM 모델 정의.

User SQLAlchemy ORM model definitions.
Citizens, staff and administrators share one table; the role column
decides what the account may do.

Tables:
    - users: 사용자 계정 (User accounts with a single role)
"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import String, Boolean, DateTime, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class UserRole(str, Enum):
    """사용자 역할 — Account roles.

    Admin은 직원 계정 생성 가능, Staff는 요청 상태 변경 및 대시보드 조회,
    Citizen은 요청 제출 및 추천만 가능.
    """

    ADMIN = "Admin"
    STAFF = "Staff"
    CITIZEN = "Citizen"


class User(Base):
    """사용자 모델 — 시스템 사용자 계정 정보.

    User model — System user account information.
    Email is the login identifier and is globally unique.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        email: 로그인 이메일 (Login email, unique)
        first_name: 이름 (First name)
        last_name: 성 (Last name)
        password_hash: bcrypt 해시된 비밀번호 (bcrypt-hashed password)
        role: 역할 (Admin / Staff / Citizen)
        is_active: 활성 상태 (Active status, soft-delete pattern)
        created_at: 생성 일시 UTC (Creation timestamp)
        updated_at: 수정 일시 UTC (Last update timestamp)

    Relationships:
        submitted_requests: 제출한 서비스 요청 목록 (Service requests submitted by this user)
    """

    __tablename__ = "users"

    # 사용자 고유 식별자 — User unique identifier (UUID v4, auto-generated)
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # 로그인 이메일 — 전역 고유 (Globally unique login email)
    email: Mapped[str] = mapped_column(String(256), nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    # 비밀번호 해시 — bcrypt hashed password (평문 저장 금지, never store plaintext)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    # 역할 — 문자열로 저장 (Stored as its string value)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=UserRole.CITIZEN.value)
    # 활성 상태 — Whether the user account is active
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    # 생성 일시 — Record creation timestamp (UTC)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    # 수정 일시 — Last modification timestamp (UTC, auto-updated)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # 관계 — Relationships
    submitted_requests = relationship("ServiceRequest", back_populates="submitted_by")

    @property
    def display_name(self) -> str:
        """메일 인사말 등에 쓰는 표시 이름 — 이름이 비어 있으면 이메일."""
        full_name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full_name or self.email
