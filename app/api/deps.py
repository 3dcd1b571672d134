"""FastAPI 의존성 주입 모듈 — 인증, 권한, 조회자 식별.

FastAPI dependency injection module — Authentication, authorization and
viewer identity.

Authentication Flow:
    1. 클라이언트가 Authorization: Bearer <token> 헤더를 전송 (선택)
       (Client optionally sends Authorization: Bearer <token>)
    2. decode_token()이 JWT를 검증하고 페이로드를 반환
       (decode_token verifies JWT and returns payload)
    3. 페이로드의 "sub" 필드로 DB에서 사용자를 조회
       (User is fetched from DB using payload "sub" field)
    4. 필수 인증 라우트는 실패 시 401, 선택 인증 라우트는 익명으로 처리
       (Required routes answer 401; optional routes fall back to anonymous)

Viewer Identity:
    로그인 사용자 ID + 클라이언트 IP (X-Forwarded-For 첫 항목 또는 소켓 주소)
    (Authenticated user id plus client IP: first X-Forwarded-For entry or peer address)
"""

from typing import Annotated, Callable, Awaitable
from uuid import UUID

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.user import User, UserRole
from app.repositories.user_repository import user_repository
from app.schemas.service_request import Viewer
from app.services.captcha_service import CaptchaVerifier, captcha_verifier
from app.services.service_request_service import ServiceRequestService, service_request_service
from app.utils.exceptions import ForbiddenError, UnauthorizedError
from app.utils.jwt import decode_token

# HTTP Bearer 토큰 추출기 — 헤더가 없어도 오류를 내지 않음 (게스트 허용 라우트용)
# (Does not fail on a missing header so guest-friendly routes can share it)
security: HTTPBearer = HTTPBearer(auto_error=False)


async def _resolve_user(
    credentials: HTTPAuthorizationCredentials | None,
    db: AsyncSession,
) -> User:
    """Bearer 토큰에서 사용자를 찾습니다. 실패 시 UnauthorizedError."""
    if credentials is None:
        raise UnauthorizedError()
    try:
        payload: dict = decode_token(credentials.credentials)
        # 토큰 타입 검증 — Reject tokens that are not access tokens
        if payload.get("type") != "access":
            raise UnauthorizedError("Invalid token type")
        user_id: str | None = payload.get("sub")
        if user_id is None:
            raise UnauthorizedError("Invalid token")
        parsed_id = UUID(user_id)
    except UnauthorizedError:
        raise
    except (jwt.ExpiredSignatureError, jwt.InvalidTokenError, KeyError, ValueError):
        raise UnauthorizedError("Invalid or expired token")

    user: User | None = await user_repository.get_by_id(db, parsed_id)
    if user is None or not user.is_active:
        raise UnauthorizedError("User not found or inactive")
    return user


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """현재 인증된 사용자 — 인증 필수 라우트용.

    Raises:
        UnauthorizedError(401): 토큰 없음/무효/만료, 사용자 없음/비활성
    """
    return await _resolve_user(credentials, db)


async def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User | None:
    """현재 사용자 또는 None — 게스트 허용 라우트용.

    An invalid or expired token is treated as anonymous rather than rejected.
    """
    if credentials is None:
        return None
    try:
        return await _resolve_user(credentials, db)
    except UnauthorizedError:
        return None


def require_roles(*roles: UserRole) -> Callable[..., Awaitable[User]]:
    """역할 기반 권한 검사 의존성 팩토리.

    Dependency factory that only lets users with one of the given roles through.

    Args:
        roles: 허용 역할 목록 (Allowed roles)

    Returns:
        FastAPI 의존성 함수 — 인증된 사용자 반환 또는 403 발생
        (FastAPI dependency function that returns User or raises 403)
    """
    allowed: set[str] = {role.value for role in roles}

    async def _check(
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        if current_user.role not in allowed:
            raise ForbiddenError()
        return current_user
    return _check


# 편의 의존성 — Pre-configured role dependencies
require_staff = require_roles(UserRole.ADMIN, UserRole.STAFF)  # 직원 이상 (Staff or Admin)
require_admin = require_roles(UserRole.ADMIN)                  # 관리자 전용 (Admin only)


def get_client_ip(request: Request) -> str | None:
    """클라이언트 IP — 프록시 뒤라면 X-Forwarded-For 첫 항목."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client is not None:
        return request.client.host
    return None


async def get_viewer(
    request: Request,
    user: Annotated[User | None, Depends(get_optional_user)],
) -> Viewer:
    """조회자 식별 정보 — 로그인 사용자 ID와 클라이언트 IP."""
    return Viewer(
        user_id=user.id if user is not None else None,
        ip_address=get_client_ip(request),
    )


def get_service_request_service() -> ServiceRequestService:
    return service_request_service


def get_captcha_verifier() -> CaptchaVerifier:
    return captcha_verifier
