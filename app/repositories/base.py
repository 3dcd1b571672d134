"""기본 레포지토리 — 사용자/서비스 요청 레포지토리의 공통 조회·저장.

Base repository shared by the user and service request repositories.
Every method takes the request-scoped AsyncSession as its first argument;
nothing here commits. Routers own the unit of work and commit after writes.

Usage:
    class UserRepository(BaseRepository[User]):
        def __init__(self) -> None:
            super().__init__(User)
"""

from typing import Any, Generic, Sequence, TypeVar
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """모델 하나에 대한 공통 레포지토리.

    Attributes:
        model: SQLAlchemy 모델 클래스 (Mapped model class)
    """

    def __init__(self, model: type[ModelType]) -> None:
        self.model: type[ModelType] = model

    async def get_by_id(self, db: AsyncSession, record_id: UUID) -> ModelType | None:
        """기본키로 조회, 없으면 None."""
        query: Select = select(self.model).where(self.model.id == record_id)
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_all(self, db: AsyncSession) -> Sequence[ModelType]:
        """전체 레코드 — 페이지네이션 없음 (통계 집계용).

        Unpaginated full read; callers must only use it where the whole
        collection is genuinely needed, such as dashboard aggregation.
        """
        result = await db.execute(select(self.model))
        return result.scalars().all()

    async def create(self, db: AsyncSession, obj_data: dict[str, Any]) -> ModelType:
        """레코드를 추가하고 flush — DB 기본값을 반영하도록 refresh.

        Args:
            db: 요청 단위 세션 (Request-scoped session)
            obj_data: 컬럼명 → 값 (Column values for the new row)

        Returns:
            ModelType: flush된 레코드 (Flushed, refreshed instance)
        """
        db_obj: ModelType = self.model(**obj_data)
        db.add(db_obj)
        await db.flush()
        await db.refresh(db_obj)
        return db_obj

    async def save(self, db: AsyncSession, db_obj: ModelType) -> ModelType:
        """변경된 레코드를 flush하고 최신 상태로 refresh."""
        await db.flush()
        await db.refresh(db_obj)
        return db_obj
