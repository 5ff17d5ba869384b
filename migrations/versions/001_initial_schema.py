"""Initial schema — upper_limit_stocks + news_articles.

일자별 상한가 스냅샷과 종목별 관련 뉴스. 뉴스는 (stock_id, url) 유일.

Revision ID: 001
Revises: None
Create Date: 2026-10-17
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "upper_limit_stocks",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("symbol", sa.String(10), nullable=False, server_default=""),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("price", sa.Integer, nullable=False),
        sa.Column("change_rate", sa.Numeric(5, 2), nullable=False),
        sa.Column("sector", sa.String(50), nullable=True),
        sa.Column("market_type", sa.String(12), nullable=False, server_default="UNRESOLVED"),
        sa.Column("reason_summary", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_upper_limit_stocks_date", "upper_limit_stocks", ["date"])
    op.create_index("ix_upper_limit_stocks_symbol_date", "upper_limit_stocks", ["symbol", "date"])

    op.create_table(
        "news_articles",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("stock_id", sa.Integer, sa.ForeignKey("upper_limit_stocks.id"), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("url", sa.String(1000), nullable=False),
        sa.Column("publisher", sa.String(100), nullable=True),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("stock_id", "url", name="uq_news_stock_url"),
    )
    op.create_index("ix_news_articles_stock_id", "news_articles", ["stock_id"])


def downgrade() -> None:
    op.drop_index("ix_news_articles_stock_id", table_name="news_articles")
    op.drop_table("news_articles")
    op.drop_index("ix_upper_limit_stocks_symbol_date", table_name="upper_limit_stocks")
    op.drop_index("ix_upper_limit_stocks_date", table_name="upper_limit_stocks")
    op.drop_table("upper_limit_stocks")
