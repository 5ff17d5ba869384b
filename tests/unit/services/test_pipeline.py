"""UpperLimitPipeline 단위 테스트 — SQLite + fakeredis + fake fetcher."""

import asyncio
from datetime import datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import pytest
import redis

from upper_limit.domain.news import NewsCandidate
from upper_limit.domain.stock import MoverRow
from upper_limit.infra.database.repositories import StockRepository
from upper_limit.services.tracker.pipeline import (
    INGESTION_JOB_NAME,
    StockNotFoundError,
    UpperLimitPipeline,
)
from upper_limit.services.tracker.summarizer import AnalysisError

SDI_NEWS = [
    NewsCandidate(title="삼성SDI, 전고체 배터리 양산 착수", url="https://n/1", publisher="한국경제"),
    NewsCandidate(title="배터리주 일제히 급등", url="https://n/2", publisher="연합뉴스"),
]

MOVERS = [
    MoverRow(symbol="006400", name="삼성SDI", price=385000, change_rate=Decimal("29.85")),
    MoverRow(symbol="068270", name="셀트리온", price=185000, change_rate=Decimal("30.00")),
]


def _summarizer(result: str = "전고체 배터리 양산 기대감") -> MagicMock:
    summarizer = MagicMock()
    summarizer.summarize = AsyncMock(return_value=result)
    return summarizer


def _news_by_name(mapping: dict[str, list[NewsCandidate]]):
    def _fetch(name: str) -> list[NewsCandidate]:
        return mapping.get(name, [])

    return _fetch


@pytest.fixture
def make_pipeline(session_factory, redis_client):
    def _make(summarizer=None, movers=None, news=None, **kwargs):
        return UpperLimitPipeline(
            session_factory,
            summarizer or _summarizer(),
            redis_client,
            fetch_movers=lambda: list(movers or []),
            fetch_news=news or (lambda name: []),
            **kwargs,
        )

    return _make


# ─── analyze ─────────────────────────────────────────────────


class TestAnalyze:
    async def test_not_found(self, make_pipeline):
        with pytest.raises(StockNotFoundError):
            await make_pipeline().analyze(999)

    async def test_enrich_and_summarize(self, make_pipeline, session, make_request):
        stock = StockRepository.create_stock(session, make_request())
        summarizer = _summarizer()
        pipeline = make_pipeline(summarizer=summarizer, news=_news_by_name({"삼성SDI": SDI_NEWS}))

        updated = await pipeline.analyze(stock.id)

        assert updated.reason_summary == "전고체 배터리 양산 기대감"
        assert [n.title for n in updated.news] == [n.title for n in SDI_NEWS]
        summarizer.summarize.assert_awaited_once_with("삼성SDI", [n.title for n in SDI_NEWS])

    async def test_reanalyze_does_not_duplicate_news(self, make_pipeline, session, make_request):
        stock = StockRepository.create_stock(session, make_request())
        pipeline = make_pipeline(news=_news_by_name({"삼성SDI": SDI_NEWS}))

        await pipeline.analyze(stock.id)
        updated = await pipeline.analyze(stock.id)

        assert len(updated.news) == 2

    async def test_empty_news_still_summarizes(self, make_pipeline, session, make_request):
        stock = StockRepository.create_stock(session, make_request(name="셀트리온", symbol="068270"))
        summarizer = _summarizer("섹터 순환매 영향으로 보입니다.")
        pipeline = make_pipeline(summarizer=summarizer)

        updated = await pipeline.analyze(stock.id)

        summarizer.summarize.assert_awaited_once_with("셀트리온", [])
        assert updated.reason_summary == "섹터 순환매 영향으로 보입니다."

    async def test_news_fetch_error_treated_as_empty(self, make_pipeline, session, make_request):
        stock = StockRepository.create_stock(session, make_request())

        def _broken(name):
            raise RuntimeError("search page changed")

        summarizer = _summarizer()
        updated = await make_pipeline(summarizer=summarizer, news=_broken).analyze(stock.id)

        summarizer.summarize.assert_awaited_once_with("삼성SDI", [])
        assert updated.reason_summary == "전고체 배터리 양산 기대감"

    async def test_summary_failure_leaves_reason_unchanged(self, make_pipeline, session_factory, make_request):
        with session_factory() as s:
            stock_id = StockRepository.create_stock(s, make_request(reason_summary="이전 요약")).id

        summarizer = MagicMock()
        summarizer.summarize = AsyncMock(side_effect=AnalysisError("connection reset"))
        pipeline = make_pipeline(summarizer=summarizer, news=_news_by_name({"삼성SDI": SDI_NEWS}))

        with pytest.raises(AnalysisError):
            await pipeline.analyze(stock_id)

        with session_factory() as s:
            stock = StockRepository.get_stock(s, stock_id)
            assert stock.reason_summary == "이전 요약"
            # 요약 전 단계에서 저장된 뉴스는 유지
            assert len(stock.news) == 2


# ─── run_ingestion ───────────────────────────────────────────


class TestRunIngestion:
    async def test_no_movers(self, make_pipeline, session):
        result = await make_pipeline().run_ingestion()

        assert result.count == 0
        assert result.skipped is False
        assert StockRepository.count_stocks(session) == 0

    async def test_creates_snapshots_for_today_kst(self, make_pipeline, session):
        pipeline = make_pipeline(movers=MOVERS, news=_news_by_name({"삼성SDI": SDI_NEWS}))

        result = await pipeline.run_ingestion()

        assert result.count == 2
        today = datetime.now(ZoneInfo("Asia/Seoul")).date()
        rows = StockRepository.list_stocks(session, today)
        assert [r.name for r in rows] == ["삼성SDI", "셀트리온"]

    async def test_summarizes_only_with_headlines(self, make_pipeline, session):
        summarizer = _summarizer()
        pipeline = make_pipeline(summarizer=summarizer, movers=MOVERS, news=_news_by_name({"삼성SDI": SDI_NEWS}))

        result = await pipeline.run_ingestion()

        assert result.summarized == 1
        summarizer.summarize.assert_awaited_once_with("삼성SDI", [n.title for n in SDI_NEWS])
        by_name = {r.name: r for r in StockRepository.list_stocks(session)}
        assert by_name["삼성SDI"].reason_summary == "전고체 배터리 양산 기대감"
        assert by_name["셀트리온"].reason_summary is None

    async def test_row_failure_isolated(self, make_pipeline, session):
        async def _summarize(name, headlines):
            if name == "삼성SDI":
                raise AnalysisError("timeout")
            return f"{name} 급등 사유"

        summarizer = MagicMock()
        summarizer.summarize = AsyncMock(side_effect=_summarize)
        news = _news_by_name({"삼성SDI": SDI_NEWS, "셀트리온": [NewsCandidate(title="FDA 승인", url="https://n/3")]})
        pipeline = make_pipeline(summarizer=summarizer, movers=MOVERS, news=news)

        result = await pipeline.run_ingestion()

        assert result.count == 2
        assert result.failed == 1
        assert result.summarized == 1
        by_name = {r.name: r for r in StockRepository.list_stocks(session)}
        assert by_name["삼성SDI"].reason_summary is None
        assert by_name["셀트리온"].reason_summary == "셀트리온 급등 사유"

    async def test_concurrent_rows(self, make_pipeline, session):
        pipeline = make_pipeline(movers=MOVERS, news=_news_by_name({"삼성SDI": SDI_NEWS}), max_concurrency=4)

        result = await pipeline.run_ingestion()

        assert result.count == 2
        assert StockRepository.count_stocks(session) == 2

    async def test_rerun_appends(self, make_pipeline, session):
        pipeline = make_pipeline(movers=MOVERS)

        await pipeline.run_ingestion()
        await pipeline.run_ingestion()

        assert StockRepository.count_stocks(session) == 4

    async def test_skipped_when_locked(self, make_pipeline, redis_client, session):
        redis_client.set(f"lock:job:{INGESTION_JOB_NAME}", "other-worker", ex=60)

        result = await make_pipeline(movers=MOVERS).run_ingestion()

        assert result.skipped is True
        assert result.count == 0
        assert StockRepository.count_stocks(session) == 0

    async def test_lock_released(self, make_pipeline, redis_client):
        await make_pipeline(movers=MOVERS).run_ingestion()
        assert not redis_client.exists(f"lock:job:{INGESTION_JOB_NAME}")

    async def test_lock_released_on_error(self, session_factory, redis_client):
        def _boom():
            raise RuntimeError("db down")

        pipeline = UpperLimitPipeline(session_factory, _summarizer(), redis_client, fetch_movers=_boom)

        with pytest.raises(RuntimeError):
            await pipeline.run_ingestion()
        assert not redis_client.exists(f"lock:job:{INGESTION_JOB_NAME}")


def _unreachable_redis() -> MagicMock:
    client = MagicMock()
    client.set.side_effect = redis.ConnectionError("Connection refused")
    client.get.side_effect = redis.ConnectionError("Connection refused")
    return client


class TestIngestionWithoutRedis:
    async def test_runs_when_redis_unreachable(self, session_factory, session):
        pipeline = UpperLimitPipeline(
            session_factory, _summarizer(), _unreachable_redis(), fetch_movers=lambda: MOVERS[:1]
        )

        result = await pipeline.run_ingestion()

        assert result.skipped is False
        assert result.count == 1
        assert StockRepository.count_stocks(session) == 1

    async def test_overlap_in_process_skipped(self, session_factory):
        gate = asyncio.Event()
        entered = asyncio.Event()

        async def _slow(name, headlines):
            entered.set()
            await gate.wait()
            return "배터리 업황 기대"

        summarizer = MagicMock()
        summarizer.summarize = AsyncMock(side_effect=_slow)
        pipeline = UpperLimitPipeline(
            session_factory,
            summarizer,
            _unreachable_redis(),
            fetch_movers=lambda: MOVERS[:1],
            fetch_news=_news_by_name({"삼성SDI": SDI_NEWS}),
        )

        first = asyncio.create_task(pipeline.run_ingestion())
        await asyncio.wait_for(entered.wait(), timeout=5)
        second = await pipeline.run_ingestion()
        gate.set()

        assert second.skipped is True
        assert (await first).count == 1

    async def test_guard_released_after_run(self, session_factory):
        pipeline = UpperLimitPipeline(session_factory, _summarizer(), _unreachable_redis(), fetch_movers=lambda: [])

        await pipeline.run_ingestion()
        second = await pipeline.run_ingestion()

        assert second.skipped is False


class TestAnalyzeLocks:
    async def test_slot_dropped_after_use(self, make_pipeline, session, make_request):
        stock = StockRepository.create_stock(session, make_request())
        pipeline = make_pipeline()

        await pipeline.analyze(stock.id)

        assert pipeline._analyze_locks == {}

    async def test_slot_dropped_after_failure(self, make_pipeline):
        pipeline = make_pipeline()

        with pytest.raises(StockNotFoundError):
            await pipeline.analyze(999)

        assert pipeline._analyze_locks == {}

    async def test_same_id_serialized(self, make_pipeline, session, make_request):
        stock = StockRepository.create_stock(session, make_request())
        active = 0
        peak = 0

        async def _summarize(name, headlines):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return "요약"

        summarizer = MagicMock()
        summarizer.summarize = AsyncMock(side_effect=_summarize)
        pipeline = make_pipeline(summarizer=summarizer)

        await asyncio.gather(pipeline.analyze(stock.id), pipeline.analyze(stock.id))

        assert peak == 1
        assert summarizer.summarize.await_count == 2
        assert pipeline._analyze_locks == {}
