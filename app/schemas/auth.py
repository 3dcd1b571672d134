"""인증 관련 Pydantic 요청/응답 스키마 정의.

Authentication-related Pydantic request/response schema definitions.
Covers citizen registration, login, staff account creation and current user info.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, Field


class RegisterRequest(BaseModel):
    """시민 회원가입 요청 스키마 — 항상 Citizen 역할로 생성.

    Attributes:
        email: 로그인 이메일 (Login email, unique)
        password: 비밀번호 (6–100 chars, bcrypt-hashed on server)
        first_name: 이름 (First name)
        last_name: 성 (Last name)
    """

    email: EmailStr = Field(max_length=256)
    password: str = Field(min_length=6, max_length=100)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)


class LoginRequest(BaseModel):
    email: EmailStr = Field(max_length=256)
    password: str = Field(max_length=100)


class CreateStaffRequest(RegisterRequest):
    """직원 계정 생성 요청 (Admin 전용) — Staff 또는 Admin."""

    role: Literal["Staff", "Admin"] = "Staff"


class UserResponse(BaseModel):
    """사용자 정보 응답 스키마 (GET /me 등)."""

    id: str
    email: str
    first_name: str
    last_name: str
    roles: list[str]


class TokenResponse(BaseModel):
    """JWT 토큰 발급 응답 스키마.

    Attributes:
        access_token: JWT 액세스 토큰 (Bearer access token)
        token_type: 토큰 유형 (Always "bearer")
        expires_at: 만료 시각 UTC (Token expiry)
        user: 로그인한 사용자 정보 (Authenticated user)
    """

    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserResponse
