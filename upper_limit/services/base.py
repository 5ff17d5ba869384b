"""FastAPI 앱 팩토리 — 공통 에러 응답 형식 + /health.

모든 에러 응답 본문은 {"message": ...} 형태를 따른다.

Usage:
    app = create_app("upper-limit-tracker", version=__version__, lifespan=lifespan, dependencies=["db", "redis"])
"""

import logging
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import httpx
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from upper_limit.domain.health import DependencyHealth, HealthStatus, ServiceState

logger = logging.getLogger(__name__)

SLOW_PROBE_MS = 1000.0


def _probe_db(app: FastAPI) -> None:
    with app.state.engine.connect() as conn:
        conn.execute(text("SELECT 1"))


def _probe_redis(app: FastAPI) -> None:
    app.state.redis.ping()


# 의존성 이름 → lifespan이 app.state에 올린 리소스 점검
PROBES: dict[str, Callable[[FastAPI], None]] = {
    "db": _probe_db,
    "redis": _probe_redis,
}


def create_app(
    service_name: str,
    *,
    version: str = "1.0.0",
    lifespan: Callable | None = None,
    dependencies: list[str] | None = None,
) -> FastAPI:
    """서비스 앱 생성.

    Args:
        service_name: 로그·헬스 응답에 쓰는 서비스 식별자
        version: 서비스 버전
        lifespan: 리소스를 조립해 app.state에 올리는 lifespan
        dependencies: /health에서 점검할 의존성 ("db", "redis")

    Raises:
        ValueError: PROBES에 없는 의존성 이름
    """
    deps = list(dependencies or [])
    unknown = [d for d in deps if d not in PROBES]
    if unknown:
        raise ValueError(f"No health probe for: {', '.join(unknown)}")

    @asynccontextmanager
    async def wrapped_lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.started_at = time.monotonic()
        logger.info("[%s] Starting v%s", service_name, version)
        if lifespan:
            async with lifespan(app):
                yield
        else:
            yield
        logger.info("[%s] Shutting down", service_name)

    app = FastAPI(title=f"upper-limit {service_name}", version=version, lifespan=wrapped_lifespan)
    install_error_handlers(app)

    @app.get("/health")
    async def health(request: Request) -> HealthStatus:
        checks = {name: check_dependency(request.app, name) for name in deps}
        scheduler = getattr(request.app.state, "scheduler", None)
        started_at = getattr(request.app.state, "started_at", None)
        return HealthStatus(
            service=service_name,
            status=overall_status(checks.values()),
            uptime_seconds=time.monotonic() - started_at if started_at is not None else 0.0,
            version=version,
            dependencies=checks,
            next_ingestion_at=scheduler.next_run_time() if scheduler else None,
            timestamp=datetime.now(UTC),
        )

    return app


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"message": exc.detail}, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"message": "Invalid request", "detail": jsonable_encoder(exc.errors())},
        )

    # 라우트 내부에서 도메인 모델 검증이 실패한 경우
    @app.exception_handler(ValidationError)
    async def model_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"message": "Validation error", "detail": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(httpx.HTTPStatusError)
    async def upstream_error_handler(request: Request, exc: httpx.HTTPStatusError) -> JSONResponse:
        logger.warning("Upstream %d on %s: %s", exc.response.status_code, request.url.path, exc.request.url)
        return JSONResponse(status_code=502, content={"message": f"Upstream error: {exc.response.status_code}"})

    @app.exception_handler(SQLAlchemyError)
    async def db_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={"message": "Database error"})


def check_dependency(app: FastAPI, name: str) -> DependencyHealth:
    start = time.monotonic()
    try:
        PROBES[name](app)
    except Exception as e:
        return DependencyHealth(status="down", latency_ms=_elapsed_ms(start), message=str(e)[:200])

    latency = _elapsed_ms(start)
    return DependencyHealth(status="healthy" if latency < SLOW_PROBE_MS else "degraded", latency_ms=latency)


def overall_status(checks) -> ServiceState:
    """하나라도 down이면 unhealthy, 느린 의존성이 있으면 degraded."""
    states = {c.status for c in checks}
    if "down" in states:
        return "unhealthy"
    if "degraded" in states:
        return "degraded"
    return "healthy"


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 1)
