"""초기 데이터 시드 스크립트 — 최초 관리자 계정 생성.

Seed script — Creates the bootstrap Admin account.
Staff accounts can only be created by an Admin (POST /api/auth/staff),
so a fresh database needs one Admin before anyone can triage requests.
Run after `alembic upgrade head`.

Usage:
    python -m app.seed

Creates:
    - 1개 관리자 계정: SEED_ADMIN_EMAIL / SEED_ADMIN_PASSWORD (1 Admin user)
"""

import asyncio
import logging

from app.config import settings
from app.database import async_session, engine
from app.models.user import User, UserRole
from app.repositories.user_repository import user_repository
from app.utils.logging import setup_logging
from app.utils.password import hash_password

logger = logging.getLogger("app.seed")


async def seed() -> User | None:
    """관리자 계정을 생성합니다. 이미 있으면 건너뜁니다.

    Idempotent: returns None when the admin email is already registered.
    """
    async with async_session() as db:
        email: str = settings.SEED_ADMIN_EMAIL.strip().lower()
        if await user_repository.get_by_email(db, email) is not None:
            logger.info("Admin %s already exists. Skipping.", email)
            return None

        admin: User = await user_repository.create(
            db,
            {
                "email": email,
                "first_name": "System",
                "last_name": "Admin",
                "password_hash": hash_password(settings.SEED_ADMIN_PASSWORD),
                "role": UserRole.ADMIN.value,
            },
        )
        await db.commit()
        logger.info("Seeded admin user %s", admin.email)
        return admin


async def main() -> None:
    setup_logging()
    try:
        await seed()
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
