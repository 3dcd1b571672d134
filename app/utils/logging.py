"""구조화 로깅 설정 — JSON 포맷 + 요청 ID 컨텍스트.

Structured JSON logging with a per-request id carried in a context var,
so log lines from the service layer and the notification tasks can be
correlated with the request that caused them.
"""

import logging
import sys
import uuid
from contextvars import ContextVar

from pythonjsonlogger import jsonlogger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.config import settings

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")


class RequestIdFilter(logging.Filter):
    """모든 로그 레코드에 request_id 주입."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx.get("-")
        return True


class RequestIdMiddleware(BaseHTTPMiddleware):
    """요청 ID 컨텍스트 설정 — X-Request-ID 헤더 재사용 또는 신규 발급."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id: str = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_ctx.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(token)
        response.headers["X-Request-ID"] = request_id
        return response


def _build_formatter() -> jsonlogger.JsonFormatter:
    return jsonlogger.JsonFormatter(
        "%(asctime)s %(name)s %(levelname)s %(message)s %(request_id)s"
    )


def setup_logging(level: str | None = None) -> None:
    """루트 로거를 JSON 포맷으로 설정합니다.

    Args:
        level: 로그 레벨 (기본값: settings.LOG_LEVEL)
    """
    log_level: int = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_build_formatter())
    handler.addFilter(RequestIdFilter())
    root_logger.addHandler(handler)

    # uvicorn 로거도 루트로 전파 — Same format for server logs
    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uv_logger = logging.getLogger(logger_name)
        uv_logger.handlers.clear()
        uv_logger.propagate = True
        uv_logger.setLevel(log_level)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("aiosmtplib").setLevel(logging.WARNING)


__all__ = ["RequestIdFilter", "RequestIdMiddleware", "request_id_ctx", "setup_logging"]
