"""테스트 인프라 — 인메모리 저장소, 알림 기록기, httpx 클라이언트 픽스처.

Test infrastructure — In-memory store, recording notifier, and an httpx
client driving the FastAPI app with the DB session and service swapped out.
Real JWTs are issued; the user lookup behind them is served from memory.
"""

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock
from uuid import UUID

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.api.deps import get_captcha_verifier, get_service_request_service
from app.database import get_db
from app.main import app
from app.models.user import User, UserRole
from app.repositories.user_repository import user_repository
from app.services.captcha_service import CaptchaVerifier
from app.services.notification_service import NotificationDispatcher
from app.services.service_request_service import ServiceRequestService
from app.utils.jwt import create_access_token
from tests.fakes import InMemoryServiceRequestStore, RecordingNotifier, make_user


def auth_header(token: str) -> dict[str, str]:
    """Authorization 헤더를 생성합니다."""
    return {"Authorization": f"Bearer {token}"}


def make_token(user: User) -> str:
    token, _ = create_access_token({"sub": str(user.id), "email": user.email, "role": user.role})
    return token


# ---------------------------------------------------------------------------
# 사용자
# ---------------------------------------------------------------------------
@pytest.fixture
def citizen() -> User:
    return make_user(UserRole.CITIZEN, email="citizen@example.com", first_name="Jane", last_name="Doe")


@pytest.fixture
def other_citizen() -> User:
    return make_user(UserRole.CITIZEN, email="neighbor@example.com", first_name="Sam", last_name="Lee")


@pytest.fixture
def staff_user() -> User:
    return make_user(UserRole.STAFF, email="staff@city.gov", first_name="Pat", last_name="Kim")


@pytest.fixture
def admin_user() -> User:
    return make_user(UserRole.ADMIN, email="admin@city.gov", first_name="System", last_name="Admin")


# ---------------------------------------------------------------------------
# 서비스 계층
# ---------------------------------------------------------------------------
@pytest.fixture
def store(citizen, other_citizen, staff_user, admin_user) -> InMemoryServiceRequestStore:
    return InMemoryServiceRequestStore(users=[citizen, other_citizen, staff_user, admin_user])


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def dispatcher(notifier) -> NotificationDispatcher:
    return NotificationDispatcher(notifier, timeout=1.0)


@pytest.fixture
def service(store, dispatcher) -> ServiceRequestService:
    return ServiceRequestService(store=store, notifications=dispatcher)


@pytest.fixture
def db() -> AsyncMock:
    """DB 세션 대역 — 라우터/서비스의 commit 호출만 받아줌."""
    return AsyncMock()


# ---------------------------------------------------------------------------
# HTTP 클라이언트
# ---------------------------------------------------------------------------
@pytest.fixture
def captcha() -> CaptchaVerifier:
    """기본은 비활성 캡차 (비밀키 없음 → 항상 통과)."""
    return CaptchaVerifier(secret_key="")


@pytest_asyncio.fixture
async def client(
    monkeypatch, db, service, captcha, store,
) -> AsyncGenerator[AsyncClient, None]:
    async def _override_get_db():
        yield db

    async def _get_user_by_id(session, record_id: UUID) -> User | None:
        return store.users.get(record_id)

    monkeypatch.setattr(user_repository, "get_by_id", _get_user_by_id)
    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_service_request_service] = lambda: service
    app.dependency_overrides[get_captcha_verifier] = lambda: captcha

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def citizen_token(citizen) -> str:
    return make_token(citizen)


@pytest.fixture
def staff_token(staff_user) -> str:
    return make_token(staff_user)


@pytest.fixture
def admin_token(admin_user) -> str:
    return make_token(admin_user)
