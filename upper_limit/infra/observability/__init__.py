"""structlog 기반 로깅 설정."""

from .logging import ingestion_context, setup_logging

__all__ = ["ingestion_context", "setup_logging"]
