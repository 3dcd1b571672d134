"""FastAPI 애플리케이션 엔트리포인트 — 미들웨어 및 라우터 등록.

FastAPI application entry point — Middleware and router registration.
Configures logging, CORS, health check, and the auth / service request routers.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.auth import router as auth_router
from app.api.service_requests import router as service_requests_router
from app.config import settings
from app.middleware.axiom_logging import AxiomLoggingMiddleware
from app.services.notification_service import notification_dispatcher
from app.utils.logging import RequestIdMiddleware, setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """앱 수명주기 — 시작 시 로깅 설정, 종료 시 대기 중인 알림 정리."""
    setup_logging()
    logger.info("%s starting", settings.APP_NAME)
    yield
    await notification_dispatcher.drain()
    logger.info("%s stopped", settings.APP_NAME)


app: FastAPI = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Axiom API 로깅 미들웨어 — Axiom API request/response logging
# CORS보다 먼저 등록하여 모든 요청을 캡처 (Registered before CORS to capture all requests)
app.add_middleware(AxiomLoggingMiddleware)
app.add_middleware(RequestIdMiddleware)

# CORS 미들웨어 — Cross-Origin Resource Sharing middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """서버 상태 확인 엔드포인트.

    Health check endpoint for load balancers and monitoring.
    """
    return {"status": "ok"}


app.include_router(auth_router, prefix="/api/auth", tags=["Auth"])
app.include_router(service_requests_router, prefix="/api/requests", tags=["Service Requests"])
