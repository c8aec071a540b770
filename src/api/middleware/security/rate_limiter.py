from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from src.core.exceptions.handler import ErrorResponseBuilder, ServiceErrorCode
from src.core.logger.logger import get_logger
from src.infra.config.settings import Settings, get_settings

logger = get_logger(__name__)

WINDOW = timedelta(minutes=1)
# Every path without its own limit shares this bucket
DEFAULT_BUCKET = "*"


class SlidingWindowRateLimiter:
    """Per IP request counter over a one minute sliding window, bucketed by limited endpoint."""

    def __init__(self, endpoint_limits: Dict[str, int], default_limit: int):
        self.endpoint_limits = endpoint_limits
        self.default_limit = default_limit
        # bucket -> IP -> timestamps
        self.endpoint_requests: Dict[str, Dict[str, List[datetime]]] = {}
        self._last_sweep = datetime.now(timezone.utc)

    def bucket_for(self, endpoint: str) -> str:
        return endpoint if endpoint in self.endpoint_limits else DEFAULT_BUCKET

    def limit_for(self, endpoint: str) -> int:
        return self.endpoint_limits.get(endpoint, self.default_limit)

    def is_rate_limited(self, ip: str, endpoint: str) -> Tuple[bool, int, int, datetime]:
        """
        Check if IP is rate limited for specific endpoint.
        Returns: (is_limited, current_count, limit, reset_time)
        """
        now = datetime.now(timezone.utc)
        limit = self.limit_for(endpoint)

        by_ip = self.endpoint_requests.get(self.bucket_for(endpoint), {})
        timestamps = [ts for ts in by_ip.get(ip, []) if now - ts < WINDOW]
        if timestamps:
            by_ip[ip] = timestamps
        else:
            by_ip.pop(ip, None)

        reset_time = (timestamps[0] + WINDOW) if timestamps else now + WINDOW
        return len(timestamps) >= limit, len(timestamps), limit, reset_time

    def add_request(self, ip: str, endpoint: str) -> None:
        now = datetime.now(timezone.utc)
        bucket = self.bucket_for(endpoint)
        self.endpoint_requests.setdefault(bucket, {}).setdefault(ip, []).append(now)

        if now - self._last_sweep >= WINDOW:
            self.sweep(now)

    def sweep(self, now: Optional[datetime] = None) -> None:
        """Drop IPs with no request inside the window, and buckets left empty."""
        now = now or datetime.now(timezone.utc)
        for bucket in list(self.endpoint_requests):
            by_ip = self.endpoint_requests[bucket]
            for ip in list(by_ip):
                recent = [ts for ts in by_ip[ip] if now - ts < WINDOW]
                if recent:
                    by_ip[ip] = recent
                else:
                    del by_ip[ip]
            if not by_ip:
                del self.endpoint_requests[bucket]
        self._last_sweep = now


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rate limiting middleware; registration endpoints get a stricter limit."""

    SKIP_PATHS = {"/api/v1/health", "/docs", "/redoc", "/openapi.json"}

    def __init__(self, app, settings: Optional[Settings] = None):
        super().__init__(app)
        settings = settings or get_settings()
        self.rate_limiter = SlidingWindowRateLimiter(
            endpoint_limits={
                "/api/v1/auth/signup": settings.RATE_LIMIT_SIGNUP,
                "/api/v1/auth/signup/complete": settings.RATE_LIMIT_SIGNUP,
            },
            default_limit=settings.RATE_LIMIT_DEFAULT
        )

    def _get_client_ip(self, request: Request) -> str:
        """Get client IP, handling proxies."""
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip.strip()

        return request.client.host if request.client else "unknown"

    def _create_rate_limit_response(self, request: Request, limit: int, reset_time: datetime) -> Response:
        retry_after = max(1, int((reset_time - datetime.now(timezone.utc)).total_seconds()))
        content = ErrorResponseBuilder.build_error_response(
            error_code=ServiceErrorCode.RATE_LIMIT_EXCEEDED,
            message=f"Rate limit exceeded. Maximum {limit} requests per minute.",
            details={"retry_after": retry_after, "limit": limit},
            request_id=request.headers.get("X-Request-ID")
        )
        response = JSONResponse(status_code=429, content=content)
        response.headers["Retry-After"] = str(retry_after)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = "0"
        response.headers["X-RateLimit-Reset"] = str(int(reset_time.timestamp()))
        return response

    async def dispatch(self, request: Request, call_next) -> Response:
        # Skip rate limiting for CORS preflight requests and health checks
        if request.method == "OPTIONS" or request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        ip = self._get_client_ip(request)
        endpoint = request.url.path

        is_limited, current_count, limit, reset_time = self.rate_limiter.is_rate_limited(ip, endpoint)
        if is_limited:
            logger.warning(f"Rate limit exceeded for IP {ip} on {endpoint}: {current_count}/{limit}")
            return self._create_rate_limit_response(request, limit, reset_time)

        self.rate_limiter.add_request(ip, endpoint)
        response = await call_next(request)

        if response.status_code < 400:
            response.headers["X-RateLimit-Limit"] = str(limit)
            response.headers["X-RateLimit-Remaining"] = str(max(0, limit - current_count - 1))
            response.headers["X-RateLimit-Reset"] = str(int(reset_time.timestamp()))

        return response
