import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict

from fastapi import HTTPException, Request, status


@dataclass(frozen=True)
class RateRule:
    scope: str
    limit: int
    window_seconds: int


class SlidingWindowLimiter:
    """Per-client request timestamps for each rule, held in process memory.

    Good enough for a single worker guarding the auth endpoints; counts are
    lost on restart and not shared between processes.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._buckets: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    def check(self, rule: RateRule, client: str) -> float:
        """Record a hit; returns 0 when allowed, otherwise the seconds until a slot frees up."""
        now = self._clock()
        with self._lock:
            bucket = self._buckets.setdefault(f"{rule.scope}:{client}", deque())
            while bucket and now - bucket[0] >= rule.window_seconds:
                bucket.popleft()
            if len(bucket) >= rule.limit:
                return rule.window_seconds - (now - bucket[0])
            bucket.append(now)
            return 0.0

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()


limiter = SlidingWindowLimiter()


def client_address(request: Request, trust_forwarded_for: bool = False) -> str:
    forwarded = request.headers.get("X-Forwarded-For") if trust_forwarded_for else None
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "anonymous"


def rate_limit_dependency(scope: str, limit: int, window_seconds: int) -> Callable[[Request], None]:
    rule = RateRule(scope=scope, limit=limit, window_seconds=window_seconds)

    def dependency(request: Request) -> None:
        settings = request.app.state.settings
        wait = limiter.check(rule, client_address(request, settings.trust_forwarded_for))
        if wait > 0:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests.",
                headers={"Retry-After": str(max(1, round(wait)))},
            )

    return dependency
