"""페이지네이션 유틸리티 모듈.

Pagination utility module.
Provides page/page-size normalization, a generic paginate function for
SQLAlchemy async queries, and a Page response model for consistent
pagination across list endpoints.
"""

import math
from typing import Any, Generic, Sequence, TypeVar

from pydantic import BaseModel
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """페이지네이션 결과 모델.

    Pagination result model for typed responses.
    Contains the paginated items and metadata for client-side pagination controls.

    Attributes:
        items: 현재 페이지 항목 목록 (Items for the current page)
        total_count: 전체 항목 수 (Total count across all pages)
        page: 현재 페이지 번호 (Current page number, 1-based)
        page_size: 페이지당 항목 수 (Items per page)
        total_pages: 전체 페이지 수 (Total number of pages)
    """

    items: list[T]
    total_count: int
    page: int
    page_size: int
    total_pages: int  # ceil(total_count / page_size), 항목이 없으면 0

    @classmethod
    def build(cls, items: list[T], total_count: int, page: int, page_size: int) -> "Page[T]":
        return cls(
            items=items,
            total_count=total_count,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(total_count / page_size) if page_size > 0 else 0,
        )


def normalize_page(page: int, page_size: int, max_page_size: int) -> tuple[int, int]:
    """페이지 번호와 크기를 허용 범위로 보정합니다.

    Clamp the page number to >= 1 and the page size to [1, max_page_size].

    Returns:
        tuple[int, int]: (page, page_size)
    """
    return max(1, page), min(max(page_size, 1), max_page_size)


async def paginate(
    db: AsyncSession,
    query: Select[Any],
    page: int = 1,
    per_page: int = 20,
) -> tuple[Sequence[Any], int]:
    """SQLAlchemy 쿼리에 대한 페이지네이션을 수행합니다.

    Execute a paginated SQLAlchemy query, returning items and total count.
    Runs two queries: one for the total count (via subquery) and one for
    the actual page of results with OFFSET/LIMIT.

    Args:
        db: 비동기 DB 세션 (Async database session)
        query: SQLAlchemy Select 쿼리 (Base query to paginate, ordering excluded from the count)
        page: 요청 페이지 번호, 1부터 시작 (Page number, 1-indexed, default: 1)
        per_page: 페이지당 항목 수 (Items per page, default: 20)

    Returns:
        tuple[Sequence[Any], int]: (항목 목록, 전체 개수) 튜플
            (Tuple of paginated items and total count)
    """
    # 전체 개수 조회 — 서브쿼리로 감싸서 COUNT 실행 (Count total via subquery)
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total: int = (await db.execute(count_query)).scalar() or 0

    # 페이지 항목 조회 — OFFSET/LIMIT 적용 (Fetch page items with offset/limit)
    offset: int = (page - 1) * per_page
    result = await db.execute(query.offset(offset).limit(per_page))
    items: Sequence[Any] = result.scalars().all()

    return items, total
