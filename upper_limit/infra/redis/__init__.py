"""Redis infrastructure — client factory, single-flight job lock."""

from .client import build_redis
from .lock import SingleFlightLock

__all__ = ["build_redis", "SingleFlightLock"]
