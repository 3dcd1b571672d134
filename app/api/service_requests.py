"""서비스 요청 라우터 — 민원 제출, 조회, 상태 변경, 추천, 통계.

Service Request Router — Citizen-facing and staff-facing endpoints.
Guests may submit, browse and upvote (identified by IP); "my requests"
needs a login; status changes and dashboard statistics are staff only.
"""

from io import BytesIO
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import (
    get_captcha_verifier,
    get_current_user,
    get_service_request_service,
    get_viewer,
    require_staff,
)
from app.config import settings
from app.database import get_db
from app.models.service_request import ServiceRequestCategory, ServiceRequestStatus
from app.models.user import User
from app.schemas.service_request import (
    DashboardStats,
    ServiceRequestCreate,
    ServiceRequestQuery,
    ServiceRequestResponse,
    StatusUpdate,
    Viewer,
)
from app.services.captcha_service import CaptchaVerifier
from app.services.service_request_service import ServiceRequestService
from app.utils.exceptions import BadRequestError, DuplicateError, NotFoundError
from app.utils.pagination import Page

router: APIRouter = APIRouter()

# reCAPTCHA v3 action 이름 — 프론트엔드 grecaptcha.execute()와 일치해야 함
SUBMIT_ACTION: str = "submit_request"


def list_query(
    status: Annotated[ServiceRequestStatus | None, Query()] = None,
    category: Annotated[ServiceRequestCategory | None, Query()] = None,
    sort: Annotated[str | None, Query(description="createdAt_asc | createdAt_desc | updatedAt_asc | updatedAt_desc | upvotes_desc")] = None,
    page: Annotated[int, Query()] = 1,
    page_size: Annotated[int, Query(alias="pageSize")] = settings.DEFAULT_PAGE_SIZE,
) -> ServiceRequestQuery:
    """목록 쿼리 파라미터 — 범위 보정은 서비스에서 수행."""
    return ServiceRequestQuery(
        status=status, category=category, sort=sort, page=page, page_size=page_size
    )


@router.post("", response_model=ServiceRequestResponse, status_code=201)
async def create_service_request(
    data: ServiceRequestCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    viewer: Annotated[Viewer, Depends(get_viewer)],
    service: Annotated[ServiceRequestService, Depends(get_service_request_service)],
    captcha: Annotated[CaptchaVerifier, Depends(get_captcha_verifier)],
) -> ServiceRequestResponse:
    """서비스 요청 제출 — 게스트 허용, reCAPTCHA 설정 시 토큰 검증."""
    if captcha.is_configured and not await captcha.verify(data.captcha_token, SUBMIT_ACTION):
        raise BadRequestError("CAPTCHA verification failed. Please try again.")

    result = await service.create_request(db, data, viewer)
    await db.commit()
    return result


@router.get("", response_model=Page[ServiceRequestResponse])
async def list_service_requests(
    db: Annotated[AsyncSession, Depends(get_db)],
    viewer: Annotated[Viewer, Depends(get_viewer)],
    service: Annotated[ServiceRequestService, Depends(get_service_request_service)],
    query: Annotated[ServiceRequestQuery, Depends(list_query)],
) -> Page[ServiceRequestResponse]:
    """서비스 요청 목록 — 필터/정렬/페이지네이션."""
    return await service.list_requests(db, query, viewer)


@router.get("/my", response_model=Page[ServiceRequestResponse])
async def list_my_service_requests(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    viewer: Annotated[Viewer, Depends(get_viewer)],
    service: Annotated[ServiceRequestService, Depends(get_service_request_service)],
    query: Annotated[ServiceRequestQuery, Depends(list_query)],
) -> Page[ServiceRequestResponse]:
    """내가 제출한 요청 목록. 로그인 필수."""
    return await service.list_my_requests(db, query, viewer)


@router.get("/stats", response_model=DashboardStats)
async def get_statistics(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_staff)],
    service: Annotated[ServiceRequestService, Depends(get_service_request_service)],
) -> DashboardStats:
    """대시보드 통계. Staff+."""
    return await service.get_statistics(db)


@router.get("/stats/export")
async def export_statistics(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_staff)],
    service: Annotated[ServiceRequestService, Depends(get_service_request_service)],
) -> StreamingResponse:
    """대시보드 통계를 Excel 파일로 내보냅니다. Staff+."""
    excel_bytes: bytes = await service.export_statistics(db)
    return StreamingResponse(
        BytesIO(excel_bytes),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": "attachment; filename=service_request_stats.xlsx"},
    )


@router.get("/{request_id}", response_model=ServiceRequestResponse)
async def get_service_request(
    request_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    viewer: Annotated[Viewer, Depends(get_viewer)],
    service: Annotated[ServiceRequestService, Depends(get_service_request_service)],
) -> ServiceRequestResponse:
    """서비스 요청 상세 조회."""
    result = await service.get_request(db, request_id, viewer)
    if result is None:
        raise NotFoundError("Service request not found")
    return result


@router.put("/{request_id}/status", response_model=ServiceRequestResponse)
async def update_service_request_status(
    request_id: UUID,
    data: StatusUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_staff)],
    service: Annotated[ServiceRequestService, Depends(get_service_request_service)],
) -> ServiceRequestResponse:
    """상태 변경. Staff+. 서비스에서 커밋 후 제출자에게 메일 알림(비동기)."""
    result = await service.update_status(db, request_id, data.status)
    if result is None:
        raise NotFoundError("Service request not found")
    return result


@router.post("/{request_id}/upvote", response_model=ServiceRequestResponse)
async def upvote_service_request(
    request_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    viewer: Annotated[Viewer, Depends(get_viewer)],
    service: Annotated[ServiceRequestService, Depends(get_service_request_service)],
) -> ServiceRequestResponse:
    """추천("나도 불편해요") — 행위자당 1회, 실패 시 409."""
    if not await service.upvote(db, request_id, viewer):
        raise DuplicateError("Already upvoted or request not found")
    await db.commit()
    return await service.get_request(db, request_id, viewer)


@router.delete("/{request_id}/upvote", response_model=ServiceRequestResponse)
async def remove_service_request_upvote(
    request_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    viewer: Annotated[Viewer, Depends(get_viewer)],
    service: Annotated[ServiceRequestService, Depends(get_service_request_service)],
) -> ServiceRequestResponse:
    """추천 취소 — 추천 기록이 없으면 404."""
    if not await service.remove_upvote(db, request_id, viewer):
        raise NotFoundError("Upvote not found")
    await db.commit()
    result = await service.get_request(db, request_id, viewer)
    if result is None:
        raise NotFoundError("Service request not found")
    return result
