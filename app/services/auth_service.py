"""인증 서비스 — 회원가입, 로그인, 직원 계정 생성 비즈니스 로직.

Auth Service — Business logic for citizen registration, login,
and admin-created staff accounts.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User, UserRole
from app.repositories.user_repository import user_repository
from app.schemas.auth import (
    CreateStaffRequest,
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from app.utils.exceptions import DuplicateError, UnauthorizedError
from app.utils.jwt import create_access_token
from app.utils.password import hash_password, verify_password

logger = logging.getLogger(__name__)


class AuthService:
    """인증 관련 비즈니스 로직을 처리하는 서비스."""

    def build_user_response(self, user: User) -> UserResponse:
        return UserResponse(
            id=str(user.id),
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            roles=[user.role],
        )

    def _issue_token(self, user: User) -> TokenResponse:
        """JWT 액세스 토큰을 발급합니다.

        Build the JWT payload from the user and issue an access token.
        """
        token, expires_at = create_access_token({
            "sub": str(user.id),
            "email": user.email,
            "role": user.role,
        })
        return TokenResponse(
            access_token=token,
            expires_at=expires_at,
            user=self.build_user_response(user),
        )

    async def _create_user(
        self,
        db: AsyncSession,
        data: RegisterRequest,
        role: UserRole,
    ) -> User:
        email = data.email.strip().lower()
        if await user_repository.get_by_email(db, email) is not None:
            raise DuplicateError("An account with this email already exists.")
        return await user_repository.create(
            db,
            {
                "email": email,
                "first_name": data.first_name,
                "last_name": data.last_name,
                "password_hash": hash_password(data.password),
                "role": role.value,
            },
        )

    async def register(self, db: AsyncSession, data: RegisterRequest) -> TokenResponse:
        """시민 회원가입 — Citizen 역할로 생성 후 토큰 발급.

        Raises:
            DuplicateError: 이미 가입된 이메일 (Email already registered)
        """
        user = await self._create_user(db, data, UserRole.CITIZEN)
        logger.info("New citizen registered: %s", user.email)
        return self._issue_token(user)

    async def login(self, db: AsyncSession, data: LoginRequest) -> TokenResponse:
        """로그인 — 이메일/비밀번호 검증 후 토큰 발급.

        Raises:
            UnauthorizedError: 잘못된 인증 정보 또는 비활성 계정
                               (Invalid credentials or deactivated account)
        """
        user = await user_repository.get_by_email(db, data.email)
        if user is None or not verify_password(data.password, user.password_hash):
            raise UnauthorizedError("Invalid email or password.")
        if not user.is_active:
            raise UnauthorizedError("Account is deactivated.")
        return self._issue_token(user)

    async def create_staff(self, db: AsyncSession, data: CreateStaffRequest) -> UserResponse:
        """관리자가 직원(Staff/Admin) 계정을 생성합니다."""
        user = await self._create_user(db, data, UserRole(data.role))
        logger.info("Created %s account: %s", user.role, user.email)
        return self.build_user_response(user)


auth_service: AuthService = AuthService()
