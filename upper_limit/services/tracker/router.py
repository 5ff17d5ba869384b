"""Stocks API — 상한가 스냅샷 조회 / 분석 / 수집 트리거."""

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlmodel import Session

from upper_limit.domain.stock import StockSnapshot
from upper_limit.infra.database.repositories import StockRepository
from upper_limit.services.deps import get_db_session, get_pipeline

from .pipeline import StockNotFoundError, UpperLimitPipeline
from .summarizer import AnalysisError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stocks", tags=["stocks"])


class CrawlResponse(BaseModel):
    message: str
    count: int


@router.get("", response_model=list[StockSnapshot])
def list_stocks(
    snapshot_date: date | None = Query(default=None, alias="date"),
    session: Session = Depends(get_db_session),
) -> list[StockSnapshot]:
    """스냅샷 목록 (date 지정 시 해당 일자만, 가격 내림차순)."""
    stocks = StockRepository.list_stocks(session, snapshot_date)
    return [StockSnapshot.model_validate(s) for s in stocks]


@router.post("/crawl", response_model=CrawlResponse)
async def crawl(pipeline: UpperLimitPipeline = Depends(get_pipeline)) -> CrawlResponse:
    """배치 수집 수동 트리거."""
    try:
        result = await pipeline.run_ingestion()
    except Exception as e:
        logger.exception("Manual ingestion failed")
        raise HTTPException(500, "Crawling failed") from e

    if result.skipped:
        return CrawlResponse(message="Ingestion already running", count=0)
    return CrawlResponse(message="Crawling completed", count=result.count)


@router.get("/{stock_id}", response_model=StockSnapshot)
def get_stock(stock_id: int, session: Session = Depends(get_db_session)) -> StockSnapshot:
    stock = StockRepository.get_stock(session, stock_id)
    if stock is None:
        raise HTTPException(404, "Stock not found")
    return StockSnapshot.model_validate(stock)


@router.post("/{stock_id}/analyze", response_model=StockSnapshot)
async def analyze_stock(
    stock_id: int,
    pipeline: UpperLimitPipeline = Depends(get_pipeline),
) -> StockSnapshot:
    """뉴스 재수집 + AI 요약 → 갱신된 스냅샷 (뉴스 포함)."""
    try:
        stock = await pipeline.analyze(stock_id)
    except StockNotFoundError as e:
        raise HTTPException(404, "Stock not found") from e
    except AnalysisError as e:
        raise HTTPException(500, "AI Analysis failed") from e
    return StockSnapshot.model_validate(stock)
