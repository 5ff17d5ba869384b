"""통합 설정 모델 — Pydantic Settings 기반.

모든 설정값은 환경 변수로 주입. 우선순위:
  1. 환경 변수 (docker-compose env, .env)
  2. Pydantic Settings 기본값
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class DatabaseConfig(BaseSettings):
    """데이터베이스 설정.

    기본값은 로컬 SQLite. 운영에서는 DB_URL로 MySQL/PostgreSQL 지정.
    """

    url: str = "sqlite:///./upper_limit.db"
    echo: bool = False
    create_all: bool = True  # 기동 시 SQLModel.metadata.create_all (개발용)

    model_config = {"env_prefix": "DB_"}

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")


class RedisConfig(BaseSettings):
    """Redis 설정 (배치 단일 실행 락)."""

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: str = ""

    model_config = {"env_prefix": "REDIS_"}

    @property
    def url(self) -> str:
        if self.password:
            return f"redis://:{self.password}@{self.host}:{self.port}/{self.db}"
        return f"redis://{self.host}:{self.port}/{self.db}"


class LLMConfig(BaseSettings):
    """LLM 설정 — OpenAI 호환 엔드포인트."""

    provider: str = "openai"
    model: str = "gpt-4o-mini"
    base_url: str | None = None  # LLM_BASE_URL (프록시/호환 API)
    timeout_sec: float = 60.0
    temperature: float = 0.7
    max_tokens: int = 512

    model_config = {"env_prefix": "LLM_"}


class CrawlerConfig(BaseSettings):
    """네이버 크롤러 설정."""

    movers_url: str = "https://finance.naver.com/sise/sise_upper.naver"
    news_search_url: str = "https://search.naver.com/search.naver"
    news_keyword: str = "상한가"
    news_limit: int = 3
    timeout_sec: float = 10.0
    min_change_rate: float = 20.0

    model_config = {"env_prefix": "CRAWLER_"}


class SchedulerConfig(BaseSettings):
    """배치 스케줄러 설정.

    cron은 timezone 기준으로 해석 (호스트 TZ와 무관).
    """

    enabled: bool = True
    cron: str = "40 15 * * 1-5"  # 평일 15:40 (장 마감 15:30 이후)
    timezone: str = "Asia/Seoul"
    lock_ttl_sec: int = 30 * 60
    misfire_grace_sec: int = 10 * 60

    model_config = {"env_prefix": "SCHEDULER_"}


class PipelineConfig(BaseSettings):
    """파이프라인 설정."""

    max_concurrency: int = Field(default=1, ge=1)  # 1 = 종목 순차 처리

    model_config = {"env_prefix": "PIPELINE_"}


class SecretsConfig(BaseSettings):
    """외부 서비스 API 키 — 환경변수 직접 매핑 (prefix 없음).

    env_prefix 없이 필드명이 곧 환경변수명:
        openai_api_key → OPENAI_API_KEY
    """

    openai_api_key: str = ""


class AppConfig(BaseSettings):
    """최상위 설정 — 서브 설정 객체를 조합.

    Usage:
        from upper_limit.domain.config import get_config
        config = get_config()
        print(config.db.url)
        print(config.crawler.min_change_rate)
    """

    env: str = Field(default="production", description="development | staging | production")
    debug: bool = False
    log_level: str = "INFO"
    json_logs: bool = True
    timezone: str = "Asia/Seoul"

    db: DatabaseConfig = Field(default_factory=DatabaseConfig)
    redis: RedisConfig = Field(default_factory=RedisConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    crawler: CrawlerConfig = Field(default_factory=CrawlerConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    secrets: SecretsConfig = Field(default_factory=SecretsConfig)

    model_config = {"env_prefix": "APP_"}


@lru_cache
def get_config() -> AppConfig:
    """싱글턴 설정 인스턴스.

    프로세스 내에서 한 번만 환경 변수를 읽고 캐싱.
    테스트에서는 get_config.cache_clear()로 초기화.
    """
    return AppConfig()
