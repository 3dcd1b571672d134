"""Axiom API 로깅 미들웨어.

Axiom API logging middleware.
Sends one structured event per API call: method, route, status, duration,
request id, client IP, whether the caller was authenticated, and the masked
request body. Credentials and CAPTCHA tokens never leave the process.
Citizen contact details (email) are masked as well.
"""

import json
import logging
import re
import time
from typing import Any

from axiom_py import Client as AxiomClient
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.config import settings
from app.utils.logging import request_id_ctx

logger = logging.getLogger(__name__)

# 마스킹 대상 필드 — Keys whose values are replaced before ingest
_SENSITIVE_KEYS = re.compile(
    r"(password|secret|token|captcha|authorization|api_key|credential|email)",
    re.IGNORECASE,
)

_SKIP_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}

_MAX_ERROR_LEN = 500


def mask_sensitive(data: Any, depth: int = 0) -> Any:
    """민감 필드 재귀 마스킹 — dict/list 안의 민감 키 값을 '***'로 치환."""
    if depth > 5:
        return "..."
    if isinstance(data, dict):
        return {
            k: "***" if _SENSITIVE_KEYS.search(str(k)) else mask_sensitive(v, depth + 1)
            for k, v in data.items()
        }
    if isinstance(data, list):
        return [mask_sensitive(item, depth + 1) for item in data[:20]]
    if isinstance(data, str) and len(data) > 2000:
        return data[:2000] + "...(truncated)"
    return data


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


def _error_detail(body: bytes) -> str:
    try:
        payload = json.loads(body)
        detail = payload.get("detail", payload) if isinstance(payload, dict) else payload
        text = detail if isinstance(detail, str) else json.dumps(detail)
    except (json.JSONDecodeError, UnicodeDecodeError):
        text = body.decode("utf-8", errors="replace")
    return text[:_MAX_ERROR_LEN]


def build_event(
    request: Request,
    status_code: int,
    duration_ms: float,
    request_body: Any = None,
    error: str | None = None,
) -> dict[str, Any]:
    """Axiom 이벤트 구성 — Build the event dict sent to Axiom."""
    route = request.scope.get("route")
    event: dict[str, Any] = {
        "method": request.method,
        "path": request.url.path,
        "route": getattr(route, "path", None),
        "status_code": status_code,
        "duration_ms": duration_ms,
        "request_id": request_id_ctx.get("-"),
        "client_ip": _client_ip(request),
        "authenticated": "authorization" in request.headers,
    }
    if request.query_params:
        event["query_params"] = mask_sensitive(dict(request.query_params))
    if request.path_params:
        event["path_params"] = dict(request.path_params)
    if request_body is not None:
        event["request_body"] = request_body
    if error:
        event["error"] = error
    return event


class AxiomLoggingMiddleware(BaseHTTPMiddleware):
    """모든 API 요청/응답을 Axiom에 로깅하는 미들웨어.

    Pass-through when AXIOM_API_TOKEN / AXIOM_DATASET are not configured.
    """

    def __init__(self, app: Any) -> None:
        super().__init__(app)
        self._client: AxiomClient | None = None
        self._dataset: str = settings.AXIOM_DATASET

        if settings.AXIOM_API_TOKEN and settings.AXIOM_DATASET:
            self._client = AxiomClient(token=settings.AXIOM_API_TOKEN)

    async def _read_body(self, request: Request) -> Any:
        if request.method not in ("POST", "PUT", "PATCH"):
            return None
        body_bytes = await request.body()
        if not body_bytes:
            return None
        try:
            return mask_sensitive(json.loads(body_bytes))
        except (json.JSONDecodeError, UnicodeDecodeError):
            return "(non-json body)"

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if self._client is None or request.url.path in _SKIP_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        request_body = await self._read_body(request)

        error: str | None = None
        status_code: int = 500
        try:
            response = await call_next(request)
            status_code = response.status_code

            # 에러 응답 body 소비 후 재구성 — Re-wrap the consumed error body
            if status_code >= 400:
                resp_body = b""
                async for chunk in response.body_iterator:
                    resp_body += chunk if isinstance(chunk, bytes) else chunk.encode("utf-8")
                error = _error_detail(resp_body)
                response = Response(
                    content=resp_body,
                    status_code=status_code,
                    headers=dict(response.headers),
                    media_type=response.media_type,
                )
        except Exception as exc:
            error = f"{type(exc).__name__}: {str(exc)[:300]}"
            raise
        finally:
            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
            event = build_event(request, status_code, duration_ms, request_body, error)
            try:
                self._client.ingest_events(self._dataset, [event])
            except Exception:
                logger.warning("Axiom ingest failed for %s %s", request.method, request.url.path, exc_info=True)

        return response
