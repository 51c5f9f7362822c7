from collections import defaultdict
from collections import deque
from collections.abc import Awaitable
from collections.abc import Callable
from threading import RLock
from time import monotonic

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

RATE_LIMITED_PREFIX = "/contributions"


class ContributionsRateLimitMiddleware(BaseHTTPMiddleware):
    """In-memory per-client rate limiter for GET /contributions requests.

    These are the requests that can end in a GitHub fetch.
    """

    def __init__(
        self, app, requests_per_window: int = 30, window_seconds: int = 60
    ) -> None:
        super().__init__(app)
        self.max_requests = max(1, requests_per_window)
        self.window_seconds = max(1, window_seconds)
        # One queue of request timestamps per client key.
        self._client_buckets: dict[str, deque[float]] = defaultdict(deque)
        self._lock = RLock()
        self._last_sweep = monotonic()

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if request.method != "GET" or not self._is_limited_path(request.url.path):
            return await call_next(request)

        client = self._client_ip(request)
        now = monotonic()

        with self._lock:
            cutoff = now - self.window_seconds
            if now - self._last_sweep >= self.window_seconds:
                self._drop_idle_clients(cutoff)
                self._last_sweep = now

            bucket = self._client_buckets[client]
            while bucket and bucket[0] <= cutoff:
                bucket.popleft()

            if len(bucket) >= self.max_requests:
                retry_after = max(1, int(self.window_seconds - (now - bucket[0])))
                return JSONResponse(
                    status_code=429,
                    content={"detail": "Too Many Requests"},
                    headers={"Retry-After": str(retry_after)},
                )

            bucket.append(now)

        return await call_next(request)

    def _drop_idle_clients(self, cutoff: float) -> None:
        idle = [
            client
            for client, bucket in self._client_buckets.items()
            if not bucket or bucket[-1] <= cutoff
        ]
        for client in idle:
            del self._client_buckets[client]

    @staticmethod
    def _is_limited_path(path: str) -> bool:
        return path == RATE_LIMITED_PREFIX or path.startswith(f"{RATE_LIMITED_PREFIX}/")

    @staticmethod
    def _client_ip(request: Request) -> str:
        # Reverse proxies usually set X-Forwarded-For.
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip() or "unknown"

        if request.client and request.client.host:
            return request.client.host

        return "unknown"
