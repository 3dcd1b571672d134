"""커스텀 HTTP 예외 클래스 모듈.

Custom HTTP exception classes raised at the API boundary.
The service layer reports not-found and duplicate-vote outcomes as
None / False; routers translate those into these exceptions.

Usage:
    from app.utils.exceptions import NotFoundError, DuplicateError
    raise NotFoundError("Service request not found")
    raise DuplicateError("Already upvoted")
"""

from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """404 Not Found — 요청한 서비스 요청/추천이 없을 때."""

    def __init__(self, detail: str = "Resource not found") -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class DuplicateError(HTTPException):
    """409 Conflict — 중복 추천, 이미 존재하는 이메일 등.

    Raised for uniqueness violations such as a second upvote by the same
    actor or registering an email that already has an account.
    """

    def __init__(self, detail: str = "Resource already exists") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class ForbiddenError(HTTPException):
    """403 Forbidden — 역할 권한 부족 (e.g. 시민이 상태 변경 시도)."""

    def __init__(self, detail: str = "Insufficient permissions") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class UnauthorizedError(HTTPException):
    """401 Unauthorized — 토큰 없음/만료/무효, 잘못된 로그인 정보."""

    def __init__(self, detail: str = "Authentication required") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class BadRequestError(HTTPException):
    """400 Bad Request — Pydantic 검증 이후의 비즈니스 검증 실패 (e.g. 캡차 실패)."""

    def __init__(self, detail: str = "Bad request") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
