"""구조화 로깅 — structlog ProcessorFormatter를 stdlib 루트 핸들러에 연결.

모듈 코드는 logging.getLogger(__name__)만 쓴다. 서비스 이름, 배치 실행 정보 같은
공통 필드는 contextvars로 붙는다.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date

import structlog

# 요청마다 INFO를 남기는 외부 로거
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "apscheduler.executors.default")

_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
]


def _renderer(json_output: bool) -> structlog.types.Processor:
    if json_output:
        # 종목명/헤드라인을 그대로 읽을 수 있도록
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer()


def setup_logging(service_name: str, *, log_level: str = "INFO", json_output: bool = True) -> None:
    """루트 로거를 stdout + structlog 포맷으로 설정.

    Args:
        service_name: 모든 로그에 붙는 service 필드
        log_level: DEBUG / INFO / WARNING / ERROR
        json_output: False면 개발용 컬러 콘솔 출력
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    structlog.configure(
        processors=[*_SHARED_PROCESSORS, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=_renderer(json_output),
            foreign_pre_chain=[*_SHARED_PROCESSORS, structlog.stdlib.ExtraAdder()],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    if level > logging.DEBUG:
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    structlog.contextvars.bind_contextvars(service=service_name)


@contextmanager
def ingestion_context(snapshot_date: date) -> Iterator[None]:
    """배치 실행 동안 찍히는 로그에 snapshot_date 필드를 붙인다."""
    with structlog.contextvars.bound_contextvars(snapshot_date=snapshot_date.isoformat()):
        yield
