"""Alembic 환경 — DB_URL 대상 upper_limit 테이블 마이그레이션."""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool
from sqlmodel import SQLModel

from upper_limit.domain.config import get_config
from upper_limit.infra.database import models  # noqa: F401  (metadata 등록)

if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name)

DB_URL = get_config().db.url
target_metadata = SQLModel.metadata


def run_offline() -> None:
    """SQL 스크립트만 출력 (upgrade --sql)."""
    context.configure(
        url=DB_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=DB_URL.startswith("sqlite"),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    engine = create_engine(DB_URL, poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            # SQLite는 ALTER 제약이 커서 batch 모드로 테이블 재생성
            context.configure(
                connection=connection,
                target_metadata=target_metadata,
                render_as_batch=connection.dialect.name == "sqlite",
                compare_type=True,
            )
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
