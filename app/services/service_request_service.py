"""서비스 요청 서비스 — 요청 생성/조회/상태 변경/추천 비즈니스 로직.

Service request service — Business logic for citizen service requests.
Covers creation with neighborhood extraction, filtered/sorted/paginated
listing annotated per viewer, status changes with submitter notification,
at-most-one-vote-per-actor upvotes, and dashboard statistics.

Not-found and duplicate-vote outcomes are returned as None / False;
the routers map them to HTTP status codes.
"""

import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Iterable, Sequence
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.service_request import (
    ServiceRequest,
    ServiceRequestStatus,
    Upvote,
)
from app.repositories.service_request_repository import (
    ServiceRequestStore,
    service_request_repository,
)
from app.schemas.service_request import (
    DashboardStats,
    ServiceRequestCreate,
    ServiceRequestQuery,
    ServiceRequestResponse,
    SortOption,
    Viewer,
)
from app.services.notification_service import (
    NotificationDispatcher,
    notification_dispatcher,
)
from app.services.statistics_service import compute_statistics, export_statistics_excel
from app.utils.address import extract_neighborhood
from app.utils.pagination import Page, normalize_page

logger = logging.getLogger(__name__)


def upvote_matches(upvote: Upvote, viewer: Viewer) -> bool:
    """추천 레코드가 조회자의 것인지 판단합니다.

    An authenticated viewer is matched by user_id only, regardless of IP.
    An anonymous viewer is matched by ip_address only, and only against
    anonymous records. A viewer with no identity matches nothing.
    """
    if viewer.user_id is not None:
        return upvote.user_id == viewer.user_id
    if viewer.ip_address:
        return upvote.user_id is None and upvote.ip_address == viewer.ip_address
    return False


def annotate(
    requests: Iterable[ServiceRequest],
    upvotes: Iterable[Upvote],
    viewer: Viewer,
) -> list[ServiceRequestResponse]:
    """요청 목록에 추천 수와 조회자 추천 여부를 붙입니다.

    Pure annotation step: upvotes are pre-fetched for the whole page
    and grouped here, so no per-item loading happens.
    """
    grouped: dict[UUID, list[Upvote]] = defaultdict(list)
    for upvote in upvotes:
        grouped[upvote.service_request_id].append(upvote)

    return [
        ServiceRequestResponse.from_model(
            request,
            upvote_count=len(grouped[request.id]),
            has_upvoted=any(upvote_matches(u, viewer) for u in grouped[request.id]),
        )
        for request in requests
    ]


class ServiceRequestService:
    """서비스 요청 서비스.

    Attributes:
        store: 요청/추천 저장소 (ServiceRequestStore implementation)
        notifications: 상태 변경 알림 발송기 (Detached notification dispatcher)
    """

    def __init__(
        self,
        store: ServiceRequestStore = service_request_repository,
        notifications: NotificationDispatcher = notification_dispatcher,
    ) -> None:
        self.store: ServiceRequestStore = store
        self.notifications: NotificationDispatcher = notifications

    async def _annotate(
        self,
        db: AsyncSession,
        requests: Sequence[ServiceRequest],
        viewer: Viewer,
    ) -> list[ServiceRequestResponse]:
        upvotes = await self.store.get_upvotes(db, [r.id for r in requests])
        return annotate(requests, upvotes, viewer)

    # --- 생성 (Create) ---

    async def create_request(
        self,
        db: AsyncSession,
        data: ServiceRequestCreate,
        viewer: Viewer,
    ) -> ServiceRequestResponse:
        """서비스 요청을 생성합니다.

        New requests start Open with both timestamps set to the same instant.
        The submitter is the authenticated viewer, or None for guests.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            data: 생성 요청 데이터 (Validated creation payload)
            viewer: 요청자 식별 정보 (Caller identity)

        Returns:
            ServiceRequestResponse: 생성된 요청 (추천 0건)
        """
        now = datetime.now(timezone.utc)
        request = await self.store.create(
            db,
            {
                "id": uuid4(),
                "category": data.category,
                "description": data.description,
                "address": data.address,
                "neighborhood": extract_neighborhood(data.address),
                "latitude": data.latitude,
                "longitude": data.longitude,
                "status": ServiceRequestStatus.OPEN,
                "created_at": now,
                "updated_at": now,
                "submitted_by_id": viewer.user_id,
            },
        )
        logger.info(
            "Created service request %s - Category: %s, Neighborhood: %s",
            request.id, request.category.value, request.neighborhood,
        )
        return ServiceRequestResponse.from_model(request)

    # --- 조회 (Read) ---

    async def list_requests(
        self,
        db: AsyncSession,
        query: ServiceRequestQuery,
        viewer: Viewer,
        submitted_by_id: UUID | None = None,
    ) -> Page[ServiceRequestResponse]:
        """필터/정렬/페이지네이션이 적용된 요청 목록을 조회합니다.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            query: 목록 조건 (Filters, sort key, page and page size as received)
            viewer: 조회자 — has_upvoted 계산용 (Viewer for has_upvoted)
            submitted_by_id: 제출자 필터 (Submitter filter, used by "my requests")

        Returns:
            Page[ServiceRequestResponse]: 페이지 결과 (Page with total count and total pages)
        """
        page, page_size = normalize_page(query.page, query.page_size, settings.MAX_PAGE_SIZE)
        sort = SortOption.parse(query.sort)

        requests, total = await self.store.list_page(
            db,
            status=query.status,
            category=query.category,
            submitted_by_id=submitted_by_id,
            sort=sort,
            page=page,
            page_size=page_size,
        )
        items = await self._annotate(db, requests, viewer)
        return Page[ServiceRequestResponse].build(items, total, page, page_size)

    async def list_my_requests(
        self,
        db: AsyncSession,
        query: ServiceRequestQuery,
        viewer: Viewer,
    ) -> Page[ServiceRequestResponse]:
        """내가 제출한 요청 목록 — 로그인 사용자 전용.

        Guests have no "my requests" view; without a user id the page is empty.
        """
        if viewer.user_id is None:
            page, page_size = normalize_page(query.page, query.page_size, settings.MAX_PAGE_SIZE)
            return Page[ServiceRequestResponse].build([], 0, page, page_size)
        return await self.list_requests(db, query, viewer, submitted_by_id=viewer.user_id)

    async def get_request(
        self,
        db: AsyncSession,
        request_id: UUID,
        viewer: Viewer,
    ) -> ServiceRequestResponse | None:
        request = await self.store.get_by_id(db, request_id)
        if request is None:
            return None
        items = await self._annotate(db, [request], viewer)
        return items[0]

    # --- 상태 변경 (Status transition) ---

    async def update_status(
        self,
        db: AsyncSession,
        request_id: UUID,
        new_status: ServiceRequestStatus,
    ) -> ServiceRequestResponse | None:
        """요청 상태를 변경·커밋한 뒤 제출자에게 알림을 보냅니다.

        Any status may follow any other; every change touches updated_at.
        The change is committed here, and only then is the submitter notified
        (when they exist and have an email). A failed commit propagates and
        sends nothing. Notification runs detached and never affects the result.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            request_id: 대상 요청 UUID (Target request)
            new_status: 새 상태 (New status)

        Returns:
            ServiceRequestResponse | None: 변경된 요청, 없으면 None (None when not found)
        """
        request = await self.store.get_with_submitter(db, request_id)
        if request is None:
            return None

        old_status = request.status
        request.status = new_status
        request.updated_at = datetime.now(timezone.utc)
        submitter = request.submitted_by
        request = await self.store.save(db, request)

        logger.info(
            "Updated service request %s status: %s -> %s",
            request_id, old_status.value, new_status.value,
        )

        items = await self._annotate(db, [request], Viewer())
        await db.commit()

        if submitter is not None and submitter.email:
            self.notifications.dispatch(
                contact=submitter.email,
                display_name=submitter.display_name,
                request_id=request.id,
                category=request.category.value,
                old_status=old_status.value,
                new_status=new_status.value,
            )

        return items[0]

    # --- 추천 (Upvotes) ---

    async def upvote(
        self,
        db: AsyncSession,
        request_id: UUID,
        viewer: Viewer,
    ) -> bool:
        """요청에 추천합니다. 행위자당 1회.

        Returns False without mutating anything when the request does not
        exist, the viewer has no identity, or the actor already voted.
        The store's unique constraint is the final guard for concurrent votes.
        """
        if not viewer.has_identity:
            return False

        request = await self.store.get_by_id(db, request_id)
        if request is None:
            return False

        user_id, ip_address = self._actor_key(viewer)
        existing = await self.store.find_upvote(db, request_id, user_id, ip_address)
        if existing is not None:
            logger.info("Duplicate upvote ignored for request %s", request_id)
            return False

        created = await self.store.add_upvote(db, request_id, user_id, ip_address)
        if created is None:
            return False

        logger.info(
            "Upvote added to request %s by %s",
            request_id, "user" if user_id is not None else "anonymous",
        )
        return True

    async def remove_upvote(
        self,
        db: AsyncSession,
        request_id: UUID,
        viewer: Viewer,
    ) -> bool:
        """조회자의 추천을 취소합니다. 추천이 없으면 False."""
        if not viewer.has_identity:
            return False

        user_id, ip_address = self._actor_key(viewer)
        existing = await self.store.find_upvote(db, request_id, user_id, ip_address)
        if existing is None:
            return False

        await self.store.delete_upvote(db, existing)
        logger.info("Upvote removed from request %s", request_id)
        return True

    @staticmethod
    def _actor_key(viewer: Viewer) -> tuple[UUID | None, str | None]:
        # 로그인 사용자는 user_id만, 익명은 IP만으로 식별
        if viewer.user_id is not None:
            return viewer.user_id, None
        return None, viewer.ip_address

    # --- 통계 (Statistics) ---

    async def get_statistics(self, db: AsyncSession) -> DashboardStats:
        requests = await self.store.get_all(db)
        return compute_statistics(requests)

    async def export_statistics(self, db: AsyncSession) -> bytes:
        """대시보드 통계를 Excel 파일(bytes)로 내보냅니다."""
        return export_statistics_excel(await self.get_statistics(db))


service_request_service: ServiceRequestService = ServiceRequestService()
