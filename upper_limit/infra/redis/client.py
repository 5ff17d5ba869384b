"""Redis 클라이언트 — 배치 단일 실행 락 용도."""

import redis

from upper_limit.domain.config import RedisConfig


def build_redis(config: RedisConfig) -> redis.Redis:
    """lifespan에서 한 번 만들고 종료 시 close()."""
    return redis.Redis.from_url(
        config.url,
        decode_responses=True,
        socket_connect_timeout=3,
        socket_timeout=5,
        health_check_interval=30,
    )
