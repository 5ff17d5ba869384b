"""SingleFlightLock — Redis SET NX EX 기반 작업 단위 상호 배제.

같은 job 이름으로 동시에 한 번만 실행되도록 보장 (스케줄러 + 수동 트리거,
멀티 워커 모두 포함). TTL이 지나면 자동 해제되어 비정상 종료 시에도 잠기지 않음.

Usage:
    lock = SingleFlightLock(redis_client, "upper-limit-crawl", ttl=1800)
    if not lock.acquire():  # Redis 장애는 RedisError
        return  # 이미 실행 중
    try:
        ...
    finally:
        lock.release()
"""

import logging
import uuid

import redis

logger = logging.getLogger(__name__)

LOCK_PREFIX = "lock:job:"


class SingleFlightLock:
    """토큰 소유권을 확인하는 Redis 락."""

    def __init__(self, client: redis.Redis, name: str, ttl: int = 1800):
        self._client = client
        self._key = f"{LOCK_PREFIX}{name}"
        self._ttl = ttl
        self._token = uuid.uuid4().hex

    @property
    def key(self) -> str:
        return self._key

    def acquire(self) -> bool:
        """락 획득. 이미 잡혀 있으면 False.

        Raises:
            redis.RedisError: Redis에 닿지 못함
        """
        return bool(self._client.set(self._key, self._token, nx=True, ex=self._ttl))

    def release(self) -> None:
        """자신이 잡은 락만 해제 (TTL 만료 후 다른 실행이 잡은 락은 건드리지 않음)."""
        try:
            if self._client.get(self._key) == self._token:
                self._client.delete(self._key)
        except redis.RedisError as e:
            logger.warning("Lock release failed (%s): %s", self._key, e)

    def is_locked(self) -> bool:
        try:
            return bool(self._client.exists(self._key))
        except redis.RedisError:
            return False
