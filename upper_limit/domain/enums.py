"""열거형 정의 — 시스템 전체에서 사용하는 상수값."""

from enum import StrEnum


class MarketType(StrEnum):
    """거래소 구분"""

    KOSPI = "KOSPI"
    KOSDAQ = "KOSDAQ"
    UNRESOLVED = "UNRESOLVED"  # 단일 목록 페이지에서 거래소 판별 불가


class AnalyzeState(StrEnum):
    """온디맨드 분석 진행 단계"""

    FETCHING = "FETCHING"
    ENRICHING = "ENRICHING"
    SUMMARIZING = "SUMMARIZING"
    PERSISTED = "PERSISTED"
    FAILED = "FAILED"
