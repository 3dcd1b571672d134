"""SQLAlchemy ORM 모델 패키지 — 모든 도메인 모델의 중앙 임포트 지점.

SQLAlchemy ORM models package — Central import point for all domain models.
Importing from this package ensures all models are registered with the
SQLAlchemy metadata, which is required for Alembic migrations and
relationship resolution.

Modules:
    user: 사용자 및 역할 (User accounts and roles)
    service_request: 서비스 요청 및 추천 (Service requests and upvotes)
"""

from app.models.user import User, UserRole
from app.models.service_request import (
    ServiceRequest,
    ServiceRequestCategory,
    ServiceRequestStatus,
    Upvote,
)

__all__ = [
    "User", "UserRole",
    "ServiceRequest", "ServiceRequestCategory", "ServiceRequestStatus", "Upvote",
]
