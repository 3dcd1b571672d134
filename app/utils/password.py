"""비밀번호 해싱 및 검증 유틸리티 모듈.

Password hashing for citizen and staff accounts (bcrypt).
"""

import bcrypt

# bcrypt는 72바이트 이후를 무시 — 긴 입력은 명시적으로 잘라서 일관성 유지
_BCRYPT_MAX_BYTES: int = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """평문 비밀번호를 bcrypt 해시로 변환합니다 (salt 포함, ~60자)."""
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """평문 비밀번호와 저장된 bcrypt 해시를 비교합니다. 해시 형식이 잘못되면 False."""
    try:
        return bcrypt.checkpw(_encode(plain_password), hashed_password.encode("utf-8"))
    except ValueError:
        return False
