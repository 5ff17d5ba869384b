"""네이버 금융 상한가/상승률 상위 크롤러.

시세 페이지는 CP949(EUC-KR 상위 집합)로 내려오므로 바이트를 먼저 디코딩한 뒤
마크업을 파싱한다. 태그 경계는 ASCII라 깨지지 않지만 셀 텍스트(종목명)는
디코딩 전에 다루면 깨진다.

Usage:
    rows = fetch_top_movers()
    rows = parse_movers_html(decode_legacy_html(raw_bytes))
"""

import logging
import re
from decimal import Decimal, InvalidOperation

import httpx
from bs4 import BeautifulSoup, Tag
from pydantic import ValidationError

from upper_limit.domain.config import get_config
from upper_limit.domain.enums import MarketType
from upper_limit.domain.stock import UNKNOWN_SECTOR, MoverRow

logger = logging.getLogger(__name__)

NAVER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
}

LEGACY_ENCODING = "cp949"

_CODE_RE = re.compile(r"code=([0-9A-Z]{6})")
_RATE_RE = re.compile(r"([+-]?\d+(?:\.\d+)?)\s*%")
_TWO_PLACES = Decimal("0.01")


def decode_legacy_html(content: bytes, encoding: str = LEGACY_ENCODING) -> str:
    """레거시 한글 인코딩 바이트 → str. 깨진 바이트는 대체 문자로 치환."""
    return content.decode(encoding, errors="replace")


def _parse_price(text: str) -> int | None:
    raw = text.replace(",", "").strip()
    if not raw.isdigit():
        return None
    return int(raw)


def _parse_rate(text: str) -> Decimal | None:
    m = _RATE_RE.search(text.replace(",", ""))
    if not m:
        return None
    try:
        return Decimal(m.group(1)).quantize(_TWO_PLACES)
    except InvalidOperation:
        return None


def _parse_row(tr: Tag) -> MoverRow | None:
    """한 행 파싱. 종목 링크가 없는 행(헤더/구분선)은 None."""
    link = tr.select_one("a[href*='code=']")
    if not link:
        return None

    name = link.get_text(strip=True)
    if not name:
        return None

    m = _CODE_RE.search(link.get("href", ""))
    symbol = m.group(1) if m else ""

    # 종목명 셀 이후의 셀만 본다 (sise_upper는 이름 앞에 연속/누적 횟수 컬럼이 있음)
    cells = tr.select("td")
    name_td = link.find_parent("td")
    if name_td in cells:
        cells = cells[cells.index(name_td) + 1 :]

    price: int | None = None
    rate: Decimal | None = None
    for td in cells:
        text = td.get_text(strip=True)
        if rate is None and "%" in text:
            rate = _parse_rate(text)
        elif price is None and rate is None:
            price = _parse_price(text)

    if not price or rate is None:
        logger.debug("Movers row skipped (%s): price=%s rate=%s", name, price, rate)
        return None

    return MoverRow(
        symbol=symbol,
        name=name,
        price=price,
        change_rate=rate,
        sector=UNKNOWN_SECTOR,
        market_type=MarketType.UNRESOLVED,
    )


def parse_movers_html(html: str, threshold: float = 20.0) -> list[MoverRow]:
    """디코딩된 시세 HTML에서 등락률 threshold(%) 이상 종목만 추출.

    같은 종목이 여러 테이블에 중복 노출되면 첫 행만 사용.
    """
    soup = BeautifulSoup(html, "html.parser")
    tables = soup.select("table.type_2, table.type_5") or soup.select("table")
    min_rate = Decimal(str(threshold))

    rows: list[MoverRow] = []
    seen: set[str] = set()
    for table in tables:
        # 네이버 금융 HTML에는 tbody가 없음
        for tr in table.select("tr"):
            try:
                row = _parse_row(tr)
            except ValidationError as e:
                logger.debug("Movers row validation failed: %s", e)
                continue
            if row is None or row.change_rate < min_rate:
                continue

            key = row.symbol or row.name
            if key in seen:
                continue
            seen.add(key)
            rows.append(row)

    return rows


def fetch_top_movers(
    url: str | None = None,
    *,
    threshold: float | None = None,
    timeout: float | None = None,
) -> list[MoverRow]:
    """네이버 금융 상승 종목 페이지에서 threshold 이상 급등 종목 조회.

    Args:
        url: 시세 페이지 URL (기본: CRAWLER_MOVERS_URL)
        threshold: 최소 등락률 % (기본: CRAWLER_MIN_CHANGE_RATE)
        timeout: 요청 타임아웃 초 (기본: CRAWLER_TIMEOUT_SEC)

    Returns:
        MoverRow 리스트. 네트워크/파싱 실패 시 빈 리스트 (예외 없음).
    """
    config = get_config().crawler
    url = url or config.movers_url
    threshold = config.min_change_rate if threshold is None else threshold
    timeout = timeout or config.timeout_sec

    try:
        resp = httpx.get(url, headers=NAVER_HEADERS, timeout=timeout, follow_redirects=True)
        resp.raise_for_status()
        html = decode_legacy_html(resp.content)
        rows = parse_movers_html(html, threshold=threshold)
    except Exception as e:
        logger.warning("Top movers fetch failed (%s): %s", url, e)
        return []

    logger.info("Top movers: %d stocks >= %.1f%%", len(rows), threshold)
    return rows
