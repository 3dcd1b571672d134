"""서비스 요청 레포지토리.

Service request repository — Handles service_requests and upvotes DB queries.
Defines the ServiceRequestStore protocol the service layer depends on, and
the SQLAlchemy implementation used in production.
"""

import logging
from typing import Any, Protocol, Sequence
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.service_request import (
    ServiceRequest,
    ServiceRequestCategory,
    ServiceRequestStatus,
    Upvote,
)
from app.repositories.base import BaseRepository
from app.schemas.service_request import SortOption
from app.utils.pagination import paginate

logger = logging.getLogger(__name__)


class ServiceRequestStore(Protocol):
    """서비스 요청 저장소 인터페이스.

    Persistence port for service requests and upvotes. The upvote uniqueness
    constraint must be enforced by the implementation itself: add_upvote
    returns None when a matching vote already exists.
    """

    async def create(self, db: AsyncSession, obj_data: dict[str, Any]) -> ServiceRequest: ...

    async def get_by_id(self, db: AsyncSession, record_id: UUID) -> ServiceRequest | None: ...

    async def get_with_submitter(self, db: AsyncSession, request_id: UUID) -> ServiceRequest | None: ...

    async def list_page(
        self,
        db: AsyncSession,
        *,
        status: ServiceRequestStatus | None,
        category: ServiceRequestCategory | None,
        submitted_by_id: UUID | None,
        sort: SortOption,
        page: int,
        page_size: int,
    ) -> tuple[Sequence[ServiceRequest], int]: ...

    async def get_all(self, db: AsyncSession) -> Sequence[ServiceRequest]: ...

    async def get_upvotes(self, db: AsyncSession, request_ids: Sequence[UUID]) -> Sequence[Upvote]: ...

    async def find_upvote(
        self,
        db: AsyncSession,
        request_id: UUID,
        user_id: UUID | None,
        ip_address: str | None,
    ) -> Upvote | None: ...

    async def add_upvote(
        self,
        db: AsyncSession,
        request_id: UUID,
        user_id: UUID | None,
        ip_address: str | None,
    ) -> Upvote | None: ...

    async def delete_upvote(self, db: AsyncSession, upvote: Upvote) -> None: ...

    async def save(self, db: AsyncSession, request: ServiceRequest) -> ServiceRequest: ...


# 정렬 키별 ORDER BY 절 — upvotes_desc는 집계 조인이 필요해 별도 처리
# ORDER BY clauses per sort key; upvotes_desc needs a count join and is built separately
_ORDERINGS = {
    SortOption.CREATED_AT_ASC: (ServiceRequest.created_at.asc(),),
    SortOption.CREATED_AT_DESC: (ServiceRequest.created_at.desc(),),
    SortOption.UPDATED_AT_ASC: (ServiceRequest.updated_at.asc(),),
    SortOption.UPDATED_AT_DESC: (ServiceRequest.updated_at.desc(),),
}


class ServiceRequestRepository(BaseRepository[ServiceRequest]):

    def __init__(self) -> None:
        super().__init__(ServiceRequest)

    def build_list_query(
        self,
        status: ServiceRequestStatus | None = None,
        category: ServiceRequestCategory | None = None,
        submitted_by_id: UUID | None = None,
        sort: SortOption = SortOption.CREATED_AT_DESC,
    ) -> Select:
        """필터와 정렬이 적용된 목록 SELECT를 생성합니다."""
        query: Select = select(ServiceRequest)
        if status is not None:
            query = query.where(ServiceRequest.status == status)
        if category is not None:
            query = query.where(ServiceRequest.category == category)
        if submitted_by_id is not None:
            query = query.where(ServiceRequest.submitted_by_id == submitted_by_id)

        if sort == SortOption.UPVOTES_DESC:
            # 추천 수 집계 서브쿼리 — 추천 없는 요청은 0으로 취급
            counts = (
                select(
                    Upvote.service_request_id,
                    func.count(Upvote.id).label("upvote_count"),
                )
                .group_by(Upvote.service_request_id)
                .subquery()
            )
            query = query.outerjoin(
                counts, counts.c.service_request_id == ServiceRequest.id
            ).order_by(
                func.coalesce(counts.c.upvote_count, 0).desc(),
                ServiceRequest.created_at.desc(),
            )
        else:
            query = query.order_by(*_ORDERINGS[sort])
        return query

    async def list_page(
        self,
        db: AsyncSession,
        *,
        status: ServiceRequestStatus | None = None,
        category: ServiceRequestCategory | None = None,
        submitted_by_id: UUID | None = None,
        sort: SortOption = SortOption.CREATED_AT_DESC,
        page: int = 1,
        page_size: int = 25,
    ) -> tuple[Sequence[ServiceRequest], int]:
        query = self.build_list_query(status, category, submitted_by_id, sort)
        return await paginate(db, query, page, page_size)

    async def get_with_submitter(
        self,
        db: AsyncSession,
        request_id: UUID,
    ) -> ServiceRequest | None:
        """제출자를 함께 로드 — 상태 변경 알림 대상 확인용."""
        result = await db.execute(
            select(ServiceRequest)
            .options(selectinload(ServiceRequest.submitted_by))
            .where(ServiceRequest.id == request_id)
        )
        return result.scalar_one_or_none()

    async def get_upvotes(
        self,
        db: AsyncSession,
        request_ids: Sequence[UUID],
    ) -> Sequence[Upvote]:
        if not request_ids:
            return []
        result = await db.execute(
            select(Upvote).where(Upvote.service_request_id.in_(list(request_ids)))
        )
        return result.scalars().all()

    async def find_upvote(
        self,
        db: AsyncSession,
        request_id: UUID,
        user_id: UUID | None,
        ip_address: str | None,
    ) -> Upvote | None:
        query: Select = select(Upvote).where(Upvote.service_request_id == request_id)
        if user_id is not None:
            query = query.where(Upvote.user_id == user_id)
        else:
            query = query.where(Upvote.user_id.is_(None), Upvote.ip_address == ip_address)
        result = await db.execute(query)
        return result.scalars().first()

    async def add_upvote(
        self,
        db: AsyncSession,
        request_id: UUID,
        user_id: UUID | None,
        ip_address: str | None,
    ) -> Upvote | None:
        """추천을 저장합니다. 유니크 제약 위반 시 None.

        The insert runs inside a SAVEPOINT so a uniqueness violation from a
        concurrent vote only rolls back this insert, not the caller's transaction.
        """
        upvote = Upvote(
            service_request_id=request_id,
            user_id=user_id,
            ip_address=None if user_id is not None else ip_address,
        )
        try:
            async with db.begin_nested():
                db.add(upvote)
                await db.flush()
        except IntegrityError:
            logger.warning(
                "Upvote rejected by unique constraint for request %s", request_id
            )
            return None
        return upvote

    async def delete_upvote(self, db: AsyncSession, upvote: Upvote) -> None:
        await db.delete(upvote)
        await db.flush()


service_request_repository: ServiceRequestRepository = ServiceRequestRepository()
