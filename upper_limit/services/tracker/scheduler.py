"""배치 수집 스케줄러 — 평일 장 마감 후 KST 기준 cron 트리거.

트리거만 담당하고 상태는 갖지 않는다. 중복 실행 방지는 두 겹:
  - APScheduler max_instances=1 / coalesce (같은 프로세스 내)
  - run_ingestion()의 Redis 단일 실행 락 (수동 트리거·멀티 워커 포함)
"""

import logging
import re
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from upper_limit.domain.config import SchedulerConfig

from .pipeline import INGESTION_JOB_NAME, UpperLimitPipeline

logger = logging.getLogger(__name__)


# 표준 crontab 요일 번호 (0,7=일요일)
_CRONTAB_WEEKDAYS = ("sun", "mon", "tue", "wed", "thu", "fri", "sat", "sun")

_NUMERIC_TERM_RE = re.compile(r"(\*|\d+)(?:-(\d+))?(?:/(\d+))?")


def _crontab_day_of_week(field: str) -> str:
    """crontab 요일 필드 → APScheduler 요일 이름 목록.

    APScheduler 3.x는 0=월요일, 일요일이 범위 끝이라 "0-4" 같은 일요일 시작 범위를
    그대로 넘길 수 없다. 숫자 항목은 요일 집합으로 풀어 이름 목록으로 바꾸고,
    이름 항목("mon-fri")과 "*"는 그대로 둔다.
    """
    terms: list[str] = []
    for term in field.split(","):
        m = _NUMERIC_TERM_RE.fullmatch(term)
        if m is None or term == "*":
            terms.append(term)
            continue
        start_s, end_s, step_s = m.groups()
        if start_s == "*":
            start, end = 0, 6
        else:
            start = int(start_s)
            end = int(end_s) if end_s else (7 if step_s else start)
        step = int(step_s) if step_s else 1
        if not 0 <= start <= end <= 7 or step < 1:
            raise ValueError(f"Invalid day-of-week term in crontab expression: {term!r}")
        days = sorted({n % 7 for n in range(start, end + 1, step)})
        terms.extend(_CRONTAB_WEEKDAYS[n] for n in days)
    return ",".join(dict.fromkeys(terms))


def build_trigger(cron: str, timezone: str) -> CronTrigger:
    """crontab 문자열 → 시간대 고정 CronTrigger (호스트 TZ 무관).

    "40 15 * * 1-5" → 평일 15:40. 요일은 표준 crontab 번호(0=일요일) 기준.
    """
    fields = cron.split()
    if len(fields) != 5:
        raise ValueError(f"Wrong number of fields in crontab expression: {cron!r}")
    minute, hour, day, month, day_of_week = fields
    return CronTrigger(
        minute=minute,
        hour=hour,
        day=day,
        month=month,
        day_of_week=_crontab_day_of_week(day_of_week),
        timezone=ZoneInfo(timezone),
    )


class IngestionScheduler:
    """AsyncIOScheduler 래퍼.

    Usage:
        scheduler = IngestionScheduler(pipeline, config.scheduler)
        scheduler.start()
        ...
        scheduler.shutdown()
    """

    def __init__(self, pipeline: UpperLimitPipeline, config: SchedulerConfig):
        self._pipeline = pipeline
        self._config = config
        self._scheduler = AsyncIOScheduler(timezone=ZoneInfo(config.timezone))
        self._scheduler.add_job(
            self._run,
            trigger=build_trigger(config.cron, config.timezone),
            id=INGESTION_JOB_NAME,
            name="Upper-limit batch ingestion",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=config.misfire_grace_sec,
            replace_existing=True,
        )

    async def _run(self) -> None:
        logger.info("Scheduled ingestion triggered")
        try:
            result = await self._pipeline.run_ingestion()
        except Exception:
            logger.exception("Scheduled ingestion failed")
            return
        if result.skipped:
            logger.info("Scheduled ingestion skipped (previous run still in progress)")
        else:
            logger.info("Scheduled ingestion done: %d stocks", result.count)

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def next_run_time(self):
        job = self._scheduler.get_job(INGESTION_JOB_NAME)
        # 시작 전(pending) job에는 next_run_time이 아직 없음
        return getattr(job, "next_run_time", None) if job else None

    def start(self) -> None:
        self._scheduler.start()
        logger.info(
            "Ingestion scheduler started: cron='%s' tz=%s next=%s",
            self._config.cron,
            self._config.timezone,
            self.next_run_time(),
        )

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Ingestion scheduler stopped")
