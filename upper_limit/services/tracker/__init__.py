"""Upper-limit Tracker 서비스."""

from .pipeline import IngestionResult, StockNotFoundError, UpperLimitPipeline
from .summarizer import AnalysisError, Summarizer

__all__ = ["UpperLimitPipeline", "IngestionResult", "StockNotFoundError", "Summarizer", "AnalysisError"]
