"""DB 엔진/세션 — asyncpg 기반 PostgreSQL 연결.

Engine, session factory and declarative base for the civic service database.
One AsyncSession per HTTP request; repositories flush, routers commit.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.config import settings

engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,  # DEBUG면 SQL 출력
    pool_pre_ping=True,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
)

# 커밋 후에도 응답 직렬화에서 속성 접근이 가능해야 함
async_session: async_sessionmaker[AsyncSession] = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """users / service_requests / upvotes 모델 공통 베이스."""


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """요청 단위 세션 의존성 (Request-scoped session dependency).

    Rolls back when the handler raises so a failed status update or upvote
    never leaves a half-applied transaction on the connection.
    """
    async with async_session() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
