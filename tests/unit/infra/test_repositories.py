"""StockRepository 단위 테스트 — SQLite."""

from datetime import date, datetime
from decimal import Decimal

from sqlmodel import select

from upper_limit.domain.news import NewsCandidate
from upper_limit.infra.database.models import NewsItemDB, StockSnapshotDB
from upper_limit.infra.database.repositories import StockRepository


class TestCreateAndGet:
    def test_roundtrip(self, session, make_request):
        created = StockRepository.create_stock(session, make_request(sector="2차전지"))

        fetched = StockRepository.get_stock(session, created.id)
        assert fetched is not None
        assert fetched.name == "삼성SDI"
        assert fetched.symbol == "006400"
        assert fetched.change_rate == Decimal("29.85")
        assert fetched.sector == "2차전지"
        assert fetched.reason_summary is None
        assert fetched.news == []

    def test_date_field_is_calendar_date(self, session, make_request):
        assert StockSnapshotDB.model_fields["date"].annotation is date

        created = StockRepository.create_stock(session, make_request())
        assert created.date == date(2026, 3, 9)
        assert created.created_at is not None

    def test_get_missing(self, session):
        assert StockRepository.get_stock(session, 999) is None

    def test_no_upsert(self, session, make_request):
        """같은 종목·일자를 두 번 넣으면 두 행이 생긴다."""
        a = StockRepository.create_stock(session, make_request())
        b = StockRepository.create_stock(session, make_request())
        assert a.id != b.id
        assert StockRepository.count_stocks(session) == 2

    def test_stored_across_sessions(self, session_factory, make_request):
        with session_factory() as s1:
            stock_id = StockRepository.create_stock(s1, make_request()).id
        with session_factory() as s2:
            assert StockRepository.get_stock(s2, stock_id).name == "삼성SDI"


class TestList:
    def test_ordered_by_price_desc(self, session, make_request):
        StockRepository.create_stock(session, make_request(name="한미반도체", symbol="042700", price=62000))
        StockRepository.create_stock(session, make_request(name="삼성SDI", price=385000))
        StockRepository.create_stock(session, make_request(name="셀트리온", symbol="068270", price=185000))

        names = [s.name for s in StockRepository.list_stocks(session)]
        assert names == ["삼성SDI", "셀트리온", "한미반도체"]

    def test_date_filter_exact(self, session, make_request):
        StockRepository.create_stock(session, make_request(snapshot_date=date(2026, 3, 6)))
        StockRepository.create_stock(session, make_request(name="셀트리온", symbol="068270"))

        rows = StockRepository.list_stocks(session, date(2026, 3, 9))
        assert [s.name for s in rows] == ["셀트리온"]
        assert StockRepository.list_stocks(session, date(2026, 3, 10)) == []
        assert len(StockRepository.list_stocks(session)) == 2

    def test_includes_news(self, session, make_request):
        stock = StockRepository.create_stock(session, make_request())
        StockRepository.create_news(session, stock.id, NewsCandidate(title="헤드라인", url="https://a/1"))

        rows = StockRepository.list_stocks(session)
        assert [n.title for n in rows[0].news] == ["헤드라인"]

    def test_news_added_after_first_list(self, session, make_request):
        stock = StockRepository.create_stock(session, make_request())
        assert StockRepository.list_stocks(session)[0].news == []

        StockRepository.create_news(session, stock.id, NewsCandidate(title="뒤늦은 헤드라인", url="https://a/2"))

        rows = StockRepository.list_stocks(session)
        assert [n.title for n in rows[0].news] == ["뒤늦은 헤드라인"]


class TestNews:
    def test_naive_published_at_stored(self, session, make_request):
        stock = StockRepository.create_stock(session, make_request())
        candidate = NewsCandidate(title="장중 속보", url="https://a/9", published_at=datetime(2026, 3, 9, 14, 5))
        assert candidate.published_at.tzinfo is not None

        item = StockRepository.create_news(session, stock.id, candidate)

        assert item.id is not None
        assert item.published_at is not None
        assert item.created_at is not None

    def test_create_news(self, session, make_request):
        stock = StockRepository.create_stock(session, make_request())
        item = StockRepository.create_news(
            session, stock.id, NewsCandidate(title="전고체 배터리 양산", url="https://a/1", publisher="한국경제")
        )
        assert item.id is not None
        assert item.stock_id == stock.id
        assert item.publisher == "한국경제"

        fetched = StockRepository.get_stock(session, stock.id)
        assert [n.title for n in fetched.news] == ["전고체 배터리 양산"]

    def test_duplicate_url_skipped(self, session, make_request):
        stock = StockRepository.create_stock(session, make_request())
        first = StockRepository.create_news(session, stock.id, NewsCandidate(title="A", url="https://a/1"))
        second = StockRepository.create_news(session, stock.id, NewsCandidate(title="A (수정)", url="https://a/1"))

        assert second.id == first.id
        assert second.title == "A"
        rows = session.exec(select(NewsItemDB).where(NewsItemDB.stock_id == stock.id)).all()
        assert len(rows) == 1

    def test_same_url_different_stock(self, session, make_request):
        a = StockRepository.create_stock(session, make_request())
        b = StockRepository.create_stock(session, make_request(name="셀트리온", symbol="068270"))
        StockRepository.create_news(session, a.id, NewsCandidate(title="공통", url="https://a/1"))
        StockRepository.create_news(session, b.id, NewsCandidate(title="공통", url="https://a/1"))

        assert len(StockRepository.get_stock(session, a.id).news) == 1
        assert len(StockRepository.get_stock(session, b.id).news) == 1


class TestUpdateReason:
    def test_update(self, session, make_request):
        stock = StockRepository.create_stock(session, make_request())
        updated = StockRepository.update_reason(session, stock.id, "전고체 배터리 양산 기대감")
        assert updated.reason_summary == "전고체 배터리 양산 기대감"
        assert StockRepository.get_stock(session, stock.id).reason_summary == "전고체 배터리 양산 기대감"

    def test_other_fields_unchanged(self, session, make_request):
        stock = StockRepository.create_stock(session, make_request())
        updated = StockRepository.update_reason(session, stock.id, "요약")
        assert updated.price == stock.price
        assert updated.change_rate == stock.change_rate
        assert updated.date == stock.date

    def test_missing(self, session):
        assert StockRepository.update_reason(session, 999, "요약") is None
