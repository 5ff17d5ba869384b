"""upper-limit 도메인 모델 — 서비스 간 데이터 계약의 Single Source of Truth.

Usage:
    from upper_limit.domain import MoverRow, StockSnapshot, MarketType
    from upper_limit.domain.config import AppConfig
"""

# --- Types ---
from .types import ChangeRate, PositivePrice, StockCode

# --- Enums ---
from .enums import AnalyzeState, MarketType

# --- News ---
from .news import NewsCandidate, NewsItem

# --- Stock ---
from .stock import UNKNOWN_SECTOR, CreateStockRequest, MoverRow, StockSnapshot

# --- Health ---
from .health import DependencyHealth, HealthStatus

__all__ = [
    # Types
    "StockCode",
    "ChangeRate",
    "PositivePrice",
    # Enums
    "MarketType",
    "AnalyzeState",
    # News
    "NewsCandidate",
    "NewsItem",
    # Stock
    "UNKNOWN_SECTOR",
    "MoverRow",
    "CreateStockRequest",
    "StockSnapshot",
    # Health
    "DependencyHealth",
    "HealthStatus",
]
