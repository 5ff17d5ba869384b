"""상한가 종목 관련 모델."""

import datetime as dt

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .enums import MarketType
from .news import NewsItem
from .types import ChangeRate, PositivePrice, StockCode

# 시세 페이지에 업종 정보가 없을 때 쓰는 명시적 표기 (None과 구분)
UNKNOWN_SECTOR = "미분류"


class MoverRow(BaseModel):
    """상승률 상위 페이지에서 파싱한 한 행."""

    symbol: StockCode = ""
    name: str
    price: PositivePrice
    change_rate: ChangeRate
    sector: str = UNKNOWN_SECTOR
    market_type: MarketType = MarketType.UNRESOLVED


class CreateStockRequest(BaseModel):
    """스냅샷 생성 요청 — 배치 수집/시딩에서 사용."""

    date: dt.date
    symbol: StockCode = ""
    name: str
    price: PositivePrice
    change_rate: ChangeRate
    sector: str | None = None
    market_type: MarketType = MarketType.UNRESOLVED
    reason_summary: str | None = None

    @classmethod
    def from_row(cls, row: MoverRow, snapshot_date: dt.date) -> "CreateStockRequest":
        return cls(
            date=snapshot_date,
            symbol=row.symbol,
            name=row.name,
            price=row.price,
            change_rate=row.change_rate,
            sector=row.sector,
            market_type=row.market_type,
        )


class StockSnapshot(BaseModel):
    """상한가 스냅샷 + 뉴스 — API 응답 계약 (camelCase)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    date: dt.date
    symbol: str
    name: str
    price: int
    change_rate: ChangeRate
    sector: str | None = None
    market_type: MarketType
    reason_summary: str | None = None
    created_at: dt.datetime
    news: list[NewsItem] = []
