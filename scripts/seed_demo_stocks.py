"""데모 상한가 스냅샷 시딩 스크립트.

빈 DB에 오늘 일자의 데모 스냅샷 3종목(삼성SDI, 셀트리온, 한미반도체)과
관련 헤드라인을 넣는다. 요약(reason_summary)은 비워두고 대시보드에서
"분석" 버튼(POST /api/stocks/{id}/analyze)으로 채우는 흐름을 확인하는 용도.

이미 스냅샷이 있으면 아무것도 하지 않는다 (--force로 강제).

Usage:
    # Dry-run (DB 저장 없이 결과 확인)
    python scripts/seed_demo_stocks.py --dry-run

    # 실행
    python scripts/seed_demo_stocks.py

    # 기존 데이터가 있어도 추가
    python scripts/seed_demo_stocks.py --force
"""

import argparse
import logging
import sys
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from urllib.parse import quote
from zoneinfo import ZoneInfo

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)

# (종목코드, 종목명, 현재가, 등락률, 업종, 시장, [(헤드라인, 언론사), ...])
DEMO_STOCKS = [
    (
        "006400",
        "삼성SDI",
        385000,
        "29.85",
        "2차전지",
        "KOSPI",
        [
            ("삼성SDI, 차세대 전고체 배터리 양산 착수 발표", "한국경제"),
            ("전기차 업황 반등 기대감에 배터리주 일제히 급등", "연합뉴스"),
        ],
    ),
    (
        "068270",
        "셀트리온",
        185000,
        "30.00",
        "바이오",
        "KOSPI",
        [
            ("셀트리온 신규 바이오시밀러 美 FDA 승인", "매일경제"),
            ("셀트리온 4분기 어닝 서프라이즈", "한경"),
        ],
    ),
    (
        "042700",
        "한미반도체",
        62000,
        "29.90",
        "반도체",
        "KOSDAQ",
        [
            ("한미반도체, 엔비디아向 HBM 장비 공급 계약 임박설", "전자신문"),
        ],
    ),
]


def _headline_url(title: str) -> str:
    """헤드라인 검색 링크 — 종목 내 뉴스 URL 유일성 보장용."""
    return f"https://search.naver.com/search.naver?where=news&query={quote(title)}"


def seed_demo_stocks(snapshot_date: date | None = None, force: bool = False, dry_run: bool = False) -> dict:
    """upper_limit_stocks / news_articles 데모 시딩.

    Args:
        snapshot_date: 스냅샷 일자 (기본: 오늘, KST)
        force: True면 기존 스냅샷이 있어도 시딩
        dry_run: True면 DB 저장 없이 결과만 반환

    Returns:
        {"stocks": int, "news": int, "skipped": bool}
    """
    from upper_limit.domain.config import get_config
    from upper_limit.domain.enums import MarketType
    from upper_limit.domain.news import NewsCandidate
    from upper_limit.domain.stock import CreateStockRequest

    config = get_config()
    snapshot_date = snapshot_date or datetime.now(ZoneInfo(config.timezone)).date()

    requests = [
        (
            CreateStockRequest(
                date=snapshot_date,
                symbol=symbol,
                name=name,
                price=price,
                change_rate=Decimal(rate),
                sector=sector,
                market_type=MarketType(market),
            ),
            [NewsCandidate(title=title, url=_headline_url(title), publisher=publisher) for title, publisher in news],
        )
        for symbol, name, price, rate, sector, market, news in DEMO_STOCKS
    ]

    if dry_run:
        for req, news in requests:
            logger.info(
                "  %s %-10s %8s원 +%s%% [%s/%s] news=%d",
                req.symbol,
                req.name,
                f"{req.price:,}",
                req.change_rate,
                req.sector,
                req.market_type,
                len(news),
            )
        total_news = sum(len(news) for _, news in requests)
        logger.info("DRY-RUN: %d stocks, %d news would be seeded", len(requests), total_news)
        return {"stocks": len(requests), "news": total_news, "skipped": False}

    # 실제 DB 저장
    from upper_limit.infra.database.engine import build_engine, init_db, make_session_factory
    from upper_limit.infra.database.repositories import StockRepository

    engine = build_engine(config.db)
    init_db(engine)
    session_factory = make_session_factory(engine)

    stocks = 0
    news_count = 0
    with session_factory() as session:
        existing = StockRepository.count_stocks(session)
        if existing and not force:
            logger.info("DB already has %d snapshots, skipping (use --force)", existing)
            return {"stocks": 0, "news": 0, "skipped": True}

        for req, news in requests:
            stock = StockRepository.create_stock(session, req)
            stocks += 1
            for candidate in news:
                StockRepository.create_news(session, stock.id, candidate)
                news_count += 1

    engine.dispose()
    logger.info("Seed complete: stocks=%d, news=%d (%s)", stocks, news_count, snapshot_date)
    return {"stocks": stocks, "news": news_count, "skipped": False}


def main():
    parser = argparse.ArgumentParser(description="Seed demo upper-limit snapshots")
    parser.add_argument("--date", type=date.fromisoformat, default=None, help="Snapshot date (YYYY-MM-DD)")
    parser.add_argument("--force", action="store_true", help="Seed even if snapshots already exist")
    parser.add_argument("--dry-run", action="store_true", help="Print results without DB write")
    args = parser.parse_args()

    result = seed_demo_stocks(snapshot_date=args.date, force=args.force, dry_run=args.dry_run)
    logger.info("Result: %s", result)


if __name__ == "__main__":
    main()
