from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from queueup.config import logger
from queueup.db.redis import get_redis_client
from queueup.errors import DatabaseException


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rate limiting middleware to restrict requests per client."""

    def __init__(self, app, limit: int = 100, window: int = 60):
        super().__init__(app)
        self.limit = limit  # Max requests per window
        self.window = window  # Window in seconds

    async def dispatch(self, request: Request, call_next):
        # Per actor token when present, else per client address
        identity = request.headers.get("authorization") or (
            request.client.host if request.client else "unknown"
        )
        key = f"rate_limit:{identity}"

        try:
            redis = await get_redis_client()
            current_count = int(await redis.get(key) or 0)
            if current_count >= self.limit:
                return JSONResponse(
                    status_code=429,
                    content={"detail": "Rate limit exceeded"},
                )
            await redis.incr(key)
            await redis.expire(key, self.window)
        except DatabaseException as e:
            # Fail open when Redis is down
            logger.warning(f"Rate limiter unavailable, allowing request: {e.detail}")

        return await call_next(request)
