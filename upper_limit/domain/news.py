"""뉴스 모델."""

from datetime import datetime
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

KST = ZoneInfo("Asia/Seoul")


class NewsCandidate(BaseModel):
    """검색 결과에서 파싱한 뉴스 후보 (저장 전)."""

    title: str
    url: str
    publisher: str | None = None
    published_at: datetime | None = None

    @field_validator("published_at")
    @classmethod
    def _assume_kst(cls, v: datetime | None) -> datetime | None:
        # 네이버 검색 결과 시각은 KST 기준
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=KST)
        return v


class NewsItem(BaseModel):
    """저장된 뉴스 — API 응답 계약 (camelCase)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    stock_id: int
    title: str
    url: str
    publisher: str | None = None
    published_at: datetime | None = None
    created_at: datetime
