"""상한가 스냅샷/뉴스 저장소 — Repository 패턴.

모든 쿼리는 SQLModel Session을 받아 순수 함수로 동작.
조회 결과는 항상 뉴스를 eager-load 해서 반환 (세션 종료 후에도 직렬화 가능).
도메인 모델 변환은 호출자 책임 (Repository는 DB 모델만 반환).
"""

import logging
from datetime import date

from sqlalchemy import desc, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload
from sqlmodel import Session, select

from upper_limit.domain.news import NewsCandidate
from upper_limit.domain.stock import CreateStockRequest

from .models import NewsItemDB, StockSnapshotDB

logger = logging.getLogger(__name__)


class StockRepository:
    """상한가 스냅샷 + 관련 뉴스.

    스냅샷은 생성 후 reason_summary 외에는 변경하지 않는다.
    재수집 시에도 기존 행을 덮어쓰지 않고 항상 새 행을 만든다.
    """

    @staticmethod
    def list_stocks(session: Session, snapshot_date: date | None = None) -> list[StockSnapshotDB]:
        """스냅샷 목록 (가격 내림차순). snapshot_date가 있으면 해당 일자만."""
        stmt = select(StockSnapshotDB).options(selectinload(StockSnapshotDB.news))
        if snapshot_date is not None:
            stmt = stmt.where(StockSnapshotDB.date == snapshot_date)
        stmt = stmt.order_by(desc(StockSnapshotDB.price), StockSnapshotDB.id)
        # 세션에 이미 올라온 스냅샷도 news를 다시 채움
        stmt = stmt.execution_options(populate_existing=True)
        return list(session.exec(stmt).all())

    @staticmethod
    def get_stock(session: Session, stock_id: int) -> StockSnapshotDB | None:
        stmt = (
            select(StockSnapshotDB)
            .options(selectinload(StockSnapshotDB.news))
            .where(StockSnapshotDB.id == stock_id)
            .execution_options(populate_existing=True)
        )
        return session.exec(stmt).first()

    @staticmethod
    def count_stocks(session: Session) -> int:
        return session.exec(select(func.count()).select_from(StockSnapshotDB)).one()

    @staticmethod
    def create_stock(session: Session, req: CreateStockRequest) -> StockSnapshotDB:
        """스냅샷 INSERT (upsert 아님)."""
        stock = StockSnapshotDB(
            date=req.date,
            symbol=req.symbol,
            name=req.name,
            price=req.price,
            change_rate=req.change_rate,
            sector=req.sector,
            market_type=req.market_type,
            reason_summary=req.reason_summary,
        )
        session.add(stock)
        session.commit()
        logger.debug("[%s] Snapshot created: id=%s", stock.symbol or stock.name, stock.id)
        return StockRepository.get_stock(session, stock.id)

    @staticmethod
    def create_news(session: Session, stock_id: int, candidate: NewsCandidate) -> NewsItemDB:
        """뉴스 INSERT. (stock_id, url)이 이미 있으면 기존 행을 그대로 반환."""
        existing = StockRepository._find_news(session, stock_id, candidate.url)
        if existing:
            return existing

        item = NewsItemDB(
            stock_id=stock_id,
            title=candidate.title,
            url=candidate.url,
            publisher=candidate.publisher,
            published_at=candidate.published_at,
        )
        session.add(item)
        try:
            session.commit()
        except IntegrityError:
            # 동시 분석 요청이 같은 url을 먼저 넣은 경우
            session.rollback()
            existing = StockRepository._find_news(session, stock_id, candidate.url)
            if existing is None:
                raise
            return existing
        session.refresh(item)
        return item

    @staticmethod
    def update_reason(session: Session, stock_id: int, reason: str) -> StockSnapshotDB | None:
        """reason_summary 갱신 — 스냅샷에 허용된 유일한 변경."""
        stock = StockRepository.get_stock(session, stock_id)
        if stock is None:
            return None
        stock.reason_summary = reason
        session.add(stock)
        session.commit()
        return stock

    @staticmethod
    def _find_news(session: Session, stock_id: int, url: str) -> NewsItemDB | None:
        stmt = select(NewsItemDB).where(NewsItemDB.stock_id == stock_id, NewsItemDB.url == url)
        return session.exec(stmt).first()
