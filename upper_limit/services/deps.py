"""FastAPI Depends 기반 DI — lifespan이 app.state에 올린 리소스를 꺼내 쓴다.

Usage:
    from upper_limit.services.deps import get_db_session, get_pipeline

    @router.get("/stocks")
    def list_stocks(session: Session = Depends(get_db_session)):
        ...
"""

from collections.abc import Generator

from fastapi import Request
from sqlmodel import Session

from upper_limit.services.tracker.pipeline import UpperLimitPipeline


def get_db_session(request: Request) -> Generator[Session, None, None]:
    """요청 스코프 DB 세션 (FastAPI Depends)."""
    with request.app.state.session_factory() as session:
        yield session


def get_pipeline(request: Request) -> UpperLimitPipeline:
    """앱 기동 시 조립한 파이프라인."""
    return request.app.state.pipeline
