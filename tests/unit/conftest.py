"""Unit test 공통 fixture — 테스트별 SQLite 파일 + fakeredis.

파이프라인 DB 작업이 워커 스레드에서 돌므로 단일 커넥션(StaticPool) in-memory는 쓰지 않는다.
"""

from datetime import date
from decimal import Decimal

import fakeredis
import pytest

from upper_limit.domain.config import DatabaseConfig
from upper_limit.domain.enums import MarketType
from upper_limit.domain.stock import CreateStockRequest
from upper_limit.infra.database.engine import build_engine, init_db, make_session_factory

SNAPSHOT_DATE = date(2026, 3, 9)


@pytest.fixture
def engine(tmp_path):
    eng = build_engine(DatabaseConfig(url=f"sqlite:///{tmp_path / 'upper_limit.db'}"))
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def session(session_factory):
    with session_factory() as s:
        yield s


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


def _make_request(
    name: str = "삼성SDI",
    symbol: str = "006400",
    price: int = 385000,
    rate: str = "29.85",
    snapshot_date: date = SNAPSHOT_DATE,
    **kwargs,
) -> CreateStockRequest:
    return CreateStockRequest(
        date=snapshot_date,
        symbol=symbol,
        name=name,
        price=price,
        change_rate=Decimal(rate),
        market_type=kwargs.pop("market_type", MarketType.KOSPI),
        **kwargs,
    )


@pytest.fixture
def make_request():
    """CreateStockRequest 빌더 (기본: 삼성SDI 2026-03-09)."""
    return _make_request
