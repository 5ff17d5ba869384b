"""상한가 파이프라인 오케스트레이터.

두 개의 진입점:
  analyze(stock_id)   — 온디맨드 단일 종목 (재)분석
      FETCHING → ENRICHING → SUMMARIZING → PERSISTED | FAILED
  run_ingestion()     — 배치 수집 (수동 트리거 / 스케줄러)
      fetch_top_movers → 종목별 {스냅샷 생성 → 뉴스 → (헤드라인 있으면) 요약}

외부 경계별 실패 정책:
  - 시세/뉴스 크롤링 실패: 0건으로 간주하고 계속 진행
  - 요약 실패: 온디맨드는 AnalysisError, 배치는 로그 후 다음 종목
  - DB 오류: 그대로 전파

블로킹 I/O(크롤러, DB, Redis)는 모두 asyncio.to_thread로 이벤트 루프 밖에서 실행한다.
DB 단계마다 짧은 세션을 따로 연다.
"""

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from zoneinfo import ZoneInfo

import redis

from upper_limit.domain.enums import AnalyzeState
from upper_limit.domain.news import NewsCandidate
from upper_limit.domain.stock import CreateStockRequest, MoverRow
from upper_limit.infra.crawlers.naver_market import fetch_top_movers
from upper_limit.infra.crawlers.naver_news import fetch_news
from upper_limit.infra.database.engine import SessionFactory
from upper_limit.infra.database.models import StockSnapshotDB
from upper_limit.infra.database.repositories import StockRepository
from upper_limit.infra.observability.logging import ingestion_context
from upper_limit.infra.redis.lock import SingleFlightLock

from .summarizer import AnalysisError, Summarizer

logger = logging.getLogger(__name__)

INGESTION_JOB_NAME = "upper-limit-crawl"

MoversFetcher = Callable[[], Sequence[MoverRow]]
NewsFetcher = Callable[[str], Sequence[NewsCandidate]]


class StockNotFoundError(Exception):
    """존재하지 않는 스냅샷 id."""

    def __init__(self, stock_id: int):
        super().__init__(f"Stock not found: {stock_id}")
        self.stock_id = stock_id


@dataclass
class IngestionResult:
    count: int = 0  # 생성된 스냅샷 수
    summarized: int = 0
    failed: int = 0
    skipped: bool = False  # 다른 실행이 진행 중이라 건너뜀


@dataclass
class _LockSlot:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0  # 보유 + 대기 중인 analyze 호출 수


class UpperLimitPipeline:
    """스냅샷 수집 + 뉴스 보강 + AI 요약 파이프라인.

    Args:
        session_factory: DB 세션 팩토리 (앱 기동 시 생성한 engine에 묶임)
        summarizer: 급등 사유 요약기
        redis_client: 배치 단일 실행 락용 Redis
        fetch_movers: 급등 종목 조회 함수 (기본: 네이버 시세 크롤러)
        fetch_news: 종목명 → 뉴스 후보 함수 (기본: 네이버 뉴스 검색)
        timezone: 스냅샷 일자 기준 시간대
        max_concurrency: 배치 종목 동시 처리 수 (1 = 순차)
        lock_ttl: 배치 락 TTL (초)
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        summarizer: Summarizer,
        redis_client: redis.Redis,
        *,
        fetch_movers: MoversFetcher = fetch_top_movers,
        fetch_news: NewsFetcher = fetch_news,
        timezone: str = "Asia/Seoul",
        max_concurrency: int = 1,
        lock_ttl: int = 1800,
    ):
        self._session_factory = session_factory
        self._summarizer = summarizer
        self._redis = redis_client
        self._fetch_movers = fetch_movers
        self._fetch_news = fetch_news
        self._tz = ZoneInfo(timezone)
        self._max_concurrency = max(1, max_concurrency)
        self._lock_ttl = lock_ttl
        self._analyze_locks: dict[int, _LockSlot] = {}
        # 프로세스 내 배치 중복 방지 (Redis 장애 시에도 유지)
        self._ingestion_guard = asyncio.Lock()

    # ─── On-demand analyze ──────────────────────────────────────

    async def analyze(self, stock_id: int) -> StockSnapshotDB:
        """단일 스냅샷 (재)분석 → reason_summary 갱신된 스냅샷.

        같은 id에 대한 동시 요청은 순서대로 처리된다.

        Raises:
            StockNotFoundError: 스냅샷 없음
            AnalysisError: 요약 실패 (reason_summary는 변경되지 않음)
        """
        slot = self._analyze_locks.setdefault(stock_id, _LockSlot())
        slot.users += 1
        try:
            async with slot.lock:
                return await self._analyze(stock_id)
        finally:
            slot.users -= 1
            if slot.users == 0:
                del self._analyze_locks[stock_id]

    async def _analyze(self, stock_id: int) -> StockSnapshotDB:
        state = AnalyzeState.FETCHING
        stock = await asyncio.to_thread(self._load_stock, stock_id)
        if stock is None:
            logger.info("[analyze:%d] %s → %s (not found)", stock_id, state, AnalyzeState.FAILED)
            raise StockNotFoundError(stock_id)

        state = AnalyzeState.ENRICHING
        headlines = [n.title for n in stock.news]
        candidates = await self._safe_fetch_news(stock.name)
        if candidates:
            headlines = await asyncio.to_thread(self._store_news, stock_id, candidates)

        state = AnalyzeState.SUMMARIZING
        try:
            summary = await self._summarizer.summarize(stock.name, headlines)
        except AnalysisError:
            logger.warning("[analyze:%d] %s → %s", stock_id, state, AnalyzeState.FAILED)
            raise

        updated = await asyncio.to_thread(self._store_reason, stock_id, summary)
        logger.info(
            "[analyze:%d] %s → %s (%d headlines)",
            stock_id,
            state,
            AnalyzeState.PERSISTED,
            len(headlines),
        )
        return updated

    # ─── Batch ingestion ────────────────────────────────────────

    async def run_ingestion(self) -> IngestionResult:
        """급등 종목 일괄 수집. 다른 배치가 실행 중이면 skipped=True로 즉시 반환.

        상호 배제는 두 겹: 프로세스 내 asyncio.Lock + 워커 간 Redis 락.
        Redis에 닿지 못하면 프로세스 내 락만으로 진행한다.
        """
        if self._ingestion_guard.locked():
            logger.warning("Ingestion already running in this process, skipping")
            return IngestionResult(skipped=True)

        async with self._ingestion_guard:
            lock: SingleFlightLock | None = SingleFlightLock(self._redis, INGESTION_JOB_NAME, ttl=self._lock_ttl)
            try:
                acquired = await asyncio.to_thread(lock.acquire)
            except redis.RedisError as e:
                logger.warning("Redis lock unavailable, continuing with in-process guard only: %s", e)
                lock = None
            else:
                if not acquired:
                    logger.warning("Ingestion already running (%s), skipping", lock.key)
                    return IngestionResult(skipped=True)

            try:
                started = datetime.now(self._tz)
                with ingestion_context(started.date()):
                    return await self._run_ingestion(started)
            finally:
                if lock is not None:
                    await asyncio.to_thread(lock.release)

    async def _run_ingestion(self, started: datetime) -> IngestionResult:
        snapshot_date = started.date()

        rows = await asyncio.to_thread(self._fetch_movers)
        result = IngestionResult()
        if not rows:
            logger.info("Ingestion: no stocks above threshold on %s", snapshot_date)
            return result

        logger.info("Ingestion started: %d stocks (%s)", len(rows), snapshot_date)
        sem = asyncio.Semaphore(self._max_concurrency)

        async def _one(row: MoverRow) -> None:
            async with sem:
                await self._ingest_row(row, snapshot_date, result)

        await asyncio.gather(*[_one(row) for row in rows])

        elapsed = (datetime.now(self._tz) - started).total_seconds()
        logger.info(
            "Ingestion finished: created=%d, summarized=%d, failed=%d (%.1fs)",
            result.count,
            result.summarized,
            result.failed,
            elapsed,
        )
        return result

    async def _ingest_row(self, row: MoverRow, snapshot_date: date, result: IngestionResult) -> None:
        """한 종목 처리. 실패는 여기서 로그로 끝내고 배치는 계속."""
        label = row.symbol or row.name
        try:
            stock_id = await asyncio.to_thread(self._create_snapshot, row, snapshot_date)
            result.count += 1

            candidates = await self._safe_fetch_news(row.name)
            headlines = await asyncio.to_thread(self._store_news, stock_id, candidates) if candidates else []
            if not headlines:
                logger.info("[%s] No headlines, summary skipped", label)
                return

            summary = await self._summarizer.summarize(row.name, headlines)
            await asyncio.to_thread(self._store_reason, stock_id, summary)
            result.summarized += 1
        except AnalysisError as e:
            result.failed += 1
            logger.warning("[%s] Summary failed, left unsummarized: %s", label, e)
        except Exception:
            result.failed += 1
            logger.exception("[%s] Ingestion row failed", label)

    # ─── Helpers ────────────────────────────────────────────────

    async def _safe_fetch_news(self, company_name: str) -> list[NewsCandidate]:
        """뉴스 조회 (워커 스레드). 크롤러는 자체적으로 실패를 삼키지만 주입 함수까지 방어."""
        try:
            return list(await asyncio.to_thread(self._fetch_news, company_name))
        except Exception as e:
            logger.warning("[%s] News enrichment failed: %s", company_name, e)
            return []

    # 아래 DB 헬퍼는 워커 스레드에서 실행된다

    def _load_stock(self, stock_id: int) -> StockSnapshotDB | None:
        with self._session_factory() as session:
            return StockRepository.get_stock(session, stock_id)

    def _create_snapshot(self, row: MoverRow, snapshot_date: date) -> int:
        with self._session_factory() as session:
            return StockRepository.create_stock(session, CreateStockRequest.from_row(row, snapshot_date)).id

    def _store_news(self, stock_id: int, candidates: Sequence[NewsCandidate]) -> list[str]:
        """뉴스 저장 후 스냅샷의 전체 헤드라인 (기존 + 신규)."""
        with self._session_factory() as session:
            for candidate in candidates:
                StockRepository.create_news(session, stock_id, candidate)
            stock = StockRepository.get_stock(session, stock_id)
            return [n.title for n in stock.news] if stock else []

    def _store_reason(self, stock_id: int, summary: str) -> StockSnapshotDB | None:
        with self._session_factory() as session:
            return StockRepository.update_reason(session, stock_id, summary)
