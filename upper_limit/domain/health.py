"""헬스 체크 모델."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

DependencyState = Literal["healthy", "degraded", "down"]
ServiceState = Literal["healthy", "degraded", "unhealthy"]


class DependencyHealth(BaseModel):
    """의존 리소스(DB, Redis) 상태."""

    status: DependencyState
    latency_ms: float | None = None
    message: str | None = None


class HealthStatus(BaseModel):
    """서비스 헬스 상태 + 다음 배치 수집 예정 시각."""

    service: str
    status: ServiceState
    uptime_seconds: float
    version: str = "1.0.0"
    dependencies: dict[str, DependencyHealth] = {}
    next_ingestion_at: datetime | None = None  # 스케줄러 비활성/미기동이면 None
    timestamp: datetime
