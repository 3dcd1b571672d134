"""서비스 요청 Pydantic 스키마.

Service request request/response schemas, list query options,
viewer identity, and dashboard statistics payloads.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.service_request import (
    ServiceRequest,
    ServiceRequestCategory,
    ServiceRequestStatus,
)


class Viewer(BaseModel):
    """요청자 식별 정보 — 로그인 사용자 ID 또는 익명 IP.

    Identity context of the caller. Either field may be missing; with both
    missing the caller is "no viewer" and never matches any upvote.
    """

    user_id: UUID | None = None
    ip_address: str | None = None

    @property
    def has_identity(self) -> bool:
        return self.user_id is not None or bool(self.ip_address)


class SortOption(str, Enum):
    """목록 정렬 키 — List sort keys."""

    CREATED_AT_ASC = "createdAt_asc"
    CREATED_AT_DESC = "createdAt_desc"
    UPDATED_AT_ASC = "updatedAt_asc"
    UPDATED_AT_DESC = "updatedAt_desc"
    UPVOTES_DESC = "upvotes_desc"

    @classmethod
    def parse(cls, value: str | None) -> "SortOption":
        """대소문자 무시 매칭, 알 수 없는 값은 기본값(createdAt_desc)."""
        if value:
            lowered = value.strip().lower()
            for option in cls:
                if option.value.lower() == lowered:
                    return option
        return cls.CREATED_AT_DESC


class ServiceRequestCreate(BaseModel):
    """서비스 요청 생성 스키마.

    Attributes:
        category: 분류 (Request category)
        description: 상세 설명 (10–2000 chars)
        address: 주소 (max 500 chars)
        latitude: 위도 (Optional, -90..90)
        longitude: 경도 (Optional, -180..180)
        captcha_token: reCAPTCHA v3 토큰 (Checked by the router when reCAPTCHA is configured)
    """

    category: ServiceRequestCategory
    description: str = Field(min_length=10, max_length=2000)
    address: str = Field(min_length=1, max_length=500)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    captcha_token: str | None = None


class StatusUpdate(BaseModel):
    status: ServiceRequestStatus


class ServiceRequestQuery(BaseModel):
    """목록 조회 조건 — 정규화(페이지 보정)는 서비스에서 수행.

    List query options as received; the service clamps page/page_size
    and resolves the sort key.
    """

    status: ServiceRequestStatus | None = None
    category: ServiceRequestCategory | None = None
    sort: str | None = None
    page: int = 1
    page_size: int = 25


class ServiceRequestResponse(BaseModel):
    """서비스 요청 응답 — 조회자 기준 추천 정보 포함.

    Service request view annotated for the current viewer.
    """

    id: UUID
    category: ServiceRequestCategory
    description: str
    address: str
    neighborhood: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    status: ServiceRequestStatus
    created_at: datetime
    updated_at: datetime
    submitted_by_id: UUID | None = None
    upvote_count: int = 0
    has_upvoted: bool = False

    @classmethod
    def from_model(
        cls,
        request: ServiceRequest,
        upvote_count: int = 0,
        has_upvoted: bool = False,
    ) -> "ServiceRequestResponse":
        return cls(
            id=request.id,
            category=request.category,
            description=request.description,
            address=request.address,
            neighborhood=request.neighborhood,
            latitude=request.latitude,
            longitude=request.longitude,
            status=request.status,
            created_at=request.created_at,
            updated_at=request.updated_at,
            submitted_by_id=request.submitted_by_id,
            upvote_count=upvote_count,
            has_upvoted=has_upvoted,
        )


# === 대시보드 통계 (Dashboard statistics) 스키마 ===

class DailyCount(BaseModel):
    date: str  # YYYY-MM-DD (UTC 기준 날짜)
    count: int


class NeighborhoodCount(BaseModel):
    neighborhood: str
    count: int


class DashboardStats(BaseModel):
    """대시보드 통계 응답 스키마.

    Attributes:
        total_requests: 전체 요청 수 (Total number of requests)
        by_status: 상태별 건수 — 관측된 상태만 포함 (Counts for observed statuses only)
        by_category: 분류별 건수 — 관측된 분류만 포함 (Counts for observed categories only)
        requests_over_time: 최근 30일 일별 건수, 날짜 오름차순 (Daily counts, trailing 30 days)
        average_resolution_hours: 종료 요청 평균 처리 시간(시간, 소수 1자리)
        top_neighborhoods: 요청 수 상위 5개 동네 (Top 5 neighborhoods)
    """

    total_requests: int
    by_status: dict[str, int]
    by_category: dict[str, int]
    requests_over_time: list[DailyCount]
    average_resolution_hours: float
    top_neighborhoods: list[NeighborhoodCount]
