"""네이버 뉴스 검색 크롤러 — 종목명 + 키워드로 최신 헤드라인 수집.

Usage:
    candidates = fetch_news("삼성SDI")            # 최대 3건
    candidates = parse_news_html(html, limit=3)    # 오프라인 파싱
"""

import logging

import httpx
from bs4 import BeautifulSoup, Tag

from upper_limit.domain.config import get_config
from upper_limit.domain.news import NewsCandidate

from .naver_market import NAVER_HEADERS

logger = logging.getLogger(__name__)

# 검색 결과 언론사 라벨에 붙는 배지 문구
PUBLISHER_SUFFIXES = ("언론사 선정", "언론사선정")

# 결과 블록 셀렉터 (개편 전후 마크업 순서대로 시도)
_BLOCK_SELECTORS = ("div.news_wrap", "div.news_area", "ul.list_news > li.bx")
_TITLE_SELECTORS = ("a.news_tit", "a[class*='news_tit']", "a.title_link")
_PRESS_SELECTORS = ("a.info.press", "span.info.press", "a.press", ".info_group .press")

MISSING_URL = "#"


def _clean_publisher(text: str) -> str | None:
    text = text.strip()
    for suffix in PUBLISHER_SUFFIXES:
        if text.endswith(suffix):
            text = text[: -len(suffix)].strip()
    return text or None


def _select_first(block: Tag, selectors: tuple[str, ...]) -> Tag | None:
    for sel in selectors:
        found = block.select_one(sel)
        if found:
            return found
    return None


def _parse_block(block: Tag) -> NewsCandidate | None:
    link = _select_first(block, _TITLE_SELECTORS)
    title = ""
    href = ""
    if link:
        title = (link.get("title") or link.get_text(strip=True) or "").strip()
        href = (link.get("href") or "").strip()

    # 제목·링크 모두 없으면 광고/묶음 블록
    if not title and not href:
        return None

    press = _select_first(block, _PRESS_SELECTORS)
    publisher = _clean_publisher(press.get_text(" ", strip=True)) if press else None

    return NewsCandidate(
        title=title or href,
        url=href or MISSING_URL,
        publisher=publisher,
    )


def parse_news_html(html: str, limit: int = 3) -> list[NewsCandidate]:
    """검색 결과 HTML에서 앞쪽 limit건의 뉴스 후보 추출."""
    soup = BeautifulSoup(html, "html.parser")

    blocks: list[Tag] = []
    for sel in _BLOCK_SELECTORS:
        blocks = soup.select(sel)
        if blocks:
            break

    candidates: list[NewsCandidate] = []
    for block in blocks:
        if len(candidates) >= limit:
            break
        candidate = _parse_block(block)
        if candidate is not None:
            candidates.append(candidate)

    return candidates


def fetch_news(
    company_name: str,
    *,
    limit: int | None = None,
    keyword: str | None = None,
    timeout: float | None = None,
) -> list[NewsCandidate]:
    """네이버 뉴스 검색으로 '{종목명} {키워드}' 최신 뉴스 조회.

    Args:
        company_name: 종목명 (원문 그대로)
        limit: 최대 건수 (기본: CRAWLER_NEWS_LIMIT)
        keyword: 검색 키워드 (기본: CRAWLER_NEWS_KEYWORD, "상한가")
        timeout: 요청 타임아웃 초

    Returns:
        NewsCandidate 리스트. 실패 시 빈 리스트 (예외 없음).
    """
    config = get_config().crawler
    limit = limit or config.news_limit
    keyword = config.news_keyword if keyword is None else keyword
    query = f"{company_name} {keyword}".strip()

    params = {"where": "news", "sort": "1", "query": query}
    try:
        resp = httpx.get(
            config.news_search_url,
            params=params,
            headers=NAVER_HEADERS,
            timeout=timeout or config.timeout_sec,
            follow_redirects=True,
        )
        resp.raise_for_status()
        candidates = parse_news_html(resp.text, limit=limit)
    except Exception as e:
        logger.warning("[%s] News search failed: %s", company_name, e)
        return []

    logger.debug("[%s] News search: %d candidates", company_name, len(candidates))
    return candidates
