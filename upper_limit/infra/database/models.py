"""SQLModel 테이블 정의 — DB 스키마의 Single Source of Truth.

도메인 모델(upper_limit.domain)과 1:1 대응. API 응답 변환은
StockSnapshot.model_validate(db_row)로 수행 (from_attributes).
"""

import datetime as dt
from decimal import Decimal

from sqlalchemy import Column, DateTime, Index, Numeric, String, Text, UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from upper_limit.domain.enums import MarketType


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


class StockSnapshotDB(SQLModel, table=True):
    __tablename__ = "upper_limit_stocks"

    id: int | None = Field(default=None, primary_key=True)
    date: dt.date = Field(index=True)
    symbol: str = Field(default="", max_length=10)
    name: str = Field(max_length=100)
    price: int
    change_rate: Decimal = Field(
        default=Decimal("30.00"),
        sa_column=Column(Numeric(5, 2), nullable=False),
    )
    sector: str | None = Field(default=None, max_length=50)
    market_type: MarketType = Field(
        default=MarketType.UNRESOLVED,
        sa_column=Column(String(12), nullable=False),
    )
    reason_summary: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    created_at: dt.datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )

    news: list["NewsItemDB"] = Relationship(back_populates="stock")

    __table_args__ = (Index("ix_upper_limit_stocks_symbol_date", "symbol", "date"),)


class NewsItemDB(SQLModel, table=True):
    __tablename__ = "news_articles"

    id: int | None = Field(default=None, primary_key=True)
    stock_id: int = Field(foreign_key="upper_limit_stocks.id", index=True)
    title: str = Field(max_length=500)
    url: str = Field(max_length=1000)
    publisher: str | None = Field(default=None, max_length=100)
    published_at: dt.datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    created_at: dt.datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )

    stock: StockSnapshotDB | None = Relationship(back_populates="news")

    __table_args__ = (UniqueConstraint("stock_id", "url", name="uq_news_stock_url"),)
