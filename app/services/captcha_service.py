"""캡차 검증 서비스 — Google reCAPTCHA v3.

Captcha verification service — Verifies reCAPTCHA v3 tokens against the
siteverify endpoint. When no secret key is configured (development), every
token is accepted.
"""

import logging

import httpx

from app.config import settings

logger = logging.getLogger(__name__)


class CaptchaVerifier:
    """reCAPTCHA v3 토큰 검증기.

    Attributes:
        secret_key: reCAPTCHA 비밀키 (Server-side secret, empty = disabled)
        min_score: 최소 허용 점수 (0.0–1.0, higher is more likely human)
        verify_url: 검증 엔드포인트 (siteverify URL)
    """

    def __init__(
        self,
        secret_key: str | None = None,
        min_score: float | None = None,
        verify_url: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.secret_key: str = settings.RECAPTCHA_SECRET_KEY if secret_key is None else secret_key
        self.min_score: float = settings.RECAPTCHA_MIN_SCORE if min_score is None else min_score
        self.verify_url: str = verify_url or settings.RECAPTCHA_VERIFY_URL
        self.timeout: float = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.secret_key)

    async def verify(self, token: str | None, expected_action: str | None) -> bool:
        """토큰을 검증합니다.

        Args:
            token: 클라이언트가 받은 reCAPTCHA 토큰 (Client token)
            expected_action: 기대하는 action 이름, 비어 있으면 검사 생략
                             (Expected action; skipped when empty)

        Returns:
            bool: 사람으로 판정되면 True (True when the token passes every check)
        """
        if not self.is_configured:
            logger.warning("reCAPTCHA not configured. Skipping verification.")
            return True

        if not token:
            logger.warning("Empty CAPTCHA token received")
            return False

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.verify_url,
                    data={"secret": self.secret_key, "response": token},
                )
            result = response.json()
        except (httpx.HTTPError, ValueError):
            logger.exception("Error verifying reCAPTCHA")
            return False

        if not isinstance(result, dict):
            logger.error("Failed to parse reCAPTCHA response")
            return False

        if not result.get("success"):
            logger.warning(
                "reCAPTCHA verification failed. Errors: %s",
                ", ".join(result.get("error-codes") or []),
            )
            return False

        score = float(result.get("score") or 0.0)
        if score < self.min_score:
            logger.warning("reCAPTCHA score too low: %s (min: %s)", score, self.min_score)
            return False

        action = result.get("action")
        if expected_action and action != expected_action:
            logger.warning(
                "reCAPTCHA action mismatch. Expected: %s, Got: %s", expected_action, action
            )
            return False

        logger.info("reCAPTCHA verified successfully. Score: %s, Action: %s", score, action)
        return True


captcha_verifier: CaptchaVerifier = CaptchaVerifier()
