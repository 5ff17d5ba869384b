"""SQLModel engine & session factory.

엔진은 프로세스 기동 시 명시적으로 생성해 파이프라인/라우트에 주입하고
종료 시 dispose() 한다 (모듈 전역 싱글턴 없음).
"""

from collections.abc import Callable

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from upper_limit.domain.config import DatabaseConfig

from . import models  # noqa: F401  (테이블 메타데이터 등록)

SessionFactory = Callable[[], Session]


def build_engine(config: DatabaseConfig) -> Engine:
    """DB URL에 맞춰 SQLAlchemy Engine 생성.

    - SQLite: 워커 스레드(asyncio.to_thread)에서도 쓰도록 check_same_thread 해제,
      in-memory면 StaticPool로 단일 커넥션 공유
    - MySQL/MariaDB: utf8mb4 강제 + pre-ping 풀
    """
    if config.is_sqlite:
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if config.url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(config.url, echo=config.echo, **kwargs)

    engine = create_engine(
        config.url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        echo=config.echo,
    )

    if config.url.startswith("mysql"):

        @event.listens_for(engine, "connect")
        def _set_charset(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("SET NAMES utf8mb4")
            cursor.close()

    return engine


def init_db(engine: Engine) -> None:
    """테이블 생성 (개발/SQLite용). 운영 스키마는 alembic 마이그레이션으로 관리."""
    SQLModel.metadata.create_all(engine)


def make_session_factory(engine: Engine) -> SessionFactory:
    """Engine에 묶인 세션 팩토리.

    expire_on_commit=False — 커밋 후에도 반환 객체를 응답 직렬화에 그대로 사용.
    """

    def _factory() -> Session:
        return Session(engine, expire_on_commit=False)

    return _factory
