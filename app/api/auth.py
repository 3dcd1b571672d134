"""인증 라우터 — 시민 회원가입, 로그인, 내 정보, 직원 계정 생성.

Auth Router — Citizen registration, login, current user profile,
and admin-only staff account creation.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, require_admin
from app.database import get_db
from app.models.user import User
from app.schemas.auth import (
    CreateStaffRequest,
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from app.services.auth_service import auth_service

router: APIRouter = APIRouter()


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(
    data: RegisterRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TokenResponse:
    """시민 회원가입 — Citizen 계정 생성 후 토큰 발급."""
    result: TokenResponse = await auth_service.register(db, data)
    await db.commit()
    return result


@router.post("/login", response_model=TokenResponse)
async def login(
    data: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TokenResponse:
    """로그인 — 이메일/비밀번호."""
    return await auth_service.login(db, data)


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
) -> UserResponse:
    """내 정보 조회."""
    return auth_service.build_user_response(current_user)


@router.post("/staff", response_model=UserResponse, status_code=201)
async def create_staff(
    data: CreateStaffRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
) -> UserResponse:
    """직원 계정 생성. Admin 전용."""
    result: UserResponse = await auth_service.create_staff(db, data)
    await db.commit()
    return result
