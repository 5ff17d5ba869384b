"""Upper-limit Tracker 서비스 — 상한가 종목 수집 + 급등 사유 AI 요약.

Data Flow:
  Scheduler(평일 15:40 KST) / POST /api/stocks/crawl
    → Naver 상승률 상위 → 종목별 {Naver 뉴스 → LLM 요약} → DB
  GET /api/stocks, GET /api/stocks/{id}, POST /api/stocks/{id}/analyze

실행:
  uvicorn upper_limit.services.tracker.app:app --port 8000
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi.middleware.cors import CORSMiddleware

from upper_limit import __version__
from upper_limit.domain.config import get_config
from upper_limit.infra.database.engine import build_engine, init_db, make_session_factory
from upper_limit.infra.llm.factory import LLMFactory
from upper_limit.infra.observability.logging import setup_logging
from upper_limit.infra.redis.client import build_redis
from upper_limit.services.base import create_app

from . import router as stocks
from .pipeline import UpperLimitPipeline
from .scheduler import IngestionScheduler
from .summarizer import Summarizer

logger = logging.getLogger(__name__)

SERVICE_NAME = "upper-limit-tracker"


# ─── Lifespan ────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app) -> AsyncIterator[None]:
    config = get_config()
    setup_logging(SERVICE_NAME, log_level=config.log_level, json_output=config.json_logs)

    engine = build_engine(config.db)
    if config.db.create_all:
        init_db(engine)
    redis_client = build_redis(config.redis)

    try:
        llm = LLMFactory.create(config.llm.provider, config=config)
    except Exception as e:
        # 키 미설정 시 조회 API만 유지, 분석 요청은 실패 처리
        logger.warning("LLM provider unavailable, analysis disabled: %s", e)
        llm = None

    summarizer = Summarizer(
        llm,
        timeout_sec=config.llm.timeout_sec,
        temperature=config.llm.temperature,
        max_tokens=config.llm.max_tokens,
    )
    session_factory = make_session_factory(engine)
    pipeline = UpperLimitPipeline(
        session_factory,
        summarizer,
        redis_client,
        timezone=config.scheduler.timezone,
        max_concurrency=config.pipeline.max_concurrency,
        lock_ttl=config.scheduler.lock_ttl_sec,
    )

    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.redis = redis_client
    app.state.pipeline = pipeline

    scheduler: IngestionScheduler | None = None
    if config.scheduler.enabled:
        scheduler = IngestionScheduler(pipeline, config.scheduler)
        scheduler.start()
    else:
        logger.info("Ingestion scheduler disabled (SCHEDULER_ENABLED=false)")
    app.state.scheduler = scheduler

    yield

    # 종료
    if scheduler:
        scheduler.shutdown()
    if llm is not None:
        await llm.aclose()
    redis_client.close()
    engine.dispose()


# ─── App ─────────────────────────────────────────────────────────

app = create_app(SERVICE_NAME, version=__version__, lifespan=lifespan, dependencies=["db", "redis"])

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(stocks.router, prefix="/api")
