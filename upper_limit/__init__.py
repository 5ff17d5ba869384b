"""upper-limit — 상한가 종목 추적 + 뉴스 기반 AI 급등 사유 요약."""

__version__ = "1.0.0"
