import os
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from queueup.config import Config, logger
from queueup.db.main import init_db
from queueup.db.redis import redis_client
from queueup.draft.route import router as draft_router
from queueup.errors import register_exception_handlers
from queueup.middleware.rate_limit import RateLimitMiddleware
from queueup.player.route import router as player_router
from queueup.queue.route import router as queue_router
from queueup.session.registry import SessionRegistry
from queueup.session.route import router as session_router
from queueup.session.route import ws_router
from queueup.tenant.route import router as tenant_router


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        client = request.client.host if request.client else "unknown"
        logger.info(
            f"Request started: {request.method} {request.url.path} - "
            f"ID: {request_id} - Client: {client}"
        )
        start_time = time.time()
        try:
            response = await call_next(request)
            process_time = time.time() - start_time
            logger.info(
                f"Request completed: {request.method} {request.url.path} - "
                f"ID: {request_id} - Status: {response.status_code} - "
                f"Time: {process_time:.4f}s"
            )
            return response
        except Exception as e:
            process_time = time.time() - start_time
            logger.error(
                f"Request failed: {request.method} {request.url.path} - "
                f"ID: {request_id} - Error: {e} - "
                f"Time: {process_time:.4f}s"
            )
            raise


@asynccontextmanager
async def life_span(app: FastAPI):
    logger.info("Server is starting...")
    if os.environ.get("TESTING") != "True":
        try:
            await init_db()
            logger.info("Database initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")
            raise
    else:
        logger.info("Skipping database initialization for tests")
    app.state.registry = SessionRegistry()
    yield
    await app.state.registry.shutdown()
    await redis_client.close()
    logger.info("Server has been stopped")


version = "v1"

app = FastAPI(
    title="QueueUp API",
    description="5v5 queue, captain draft, result vote and rating service for chat communities",
    version=version,
    lifespan=life_span,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(LoggingMiddleware)

app.add_middleware(
    RateLimitMiddleware, limit=Config.RATE_LIMIT_REQUESTS, window=Config.RATE_LIMIT_WINDOW
)
logger.info("Rate limiting middleware added")

register_exception_handlers(app)

app.include_router(queue_router,   prefix=f"/api/{version}", tags=["queue"])
app.include_router(draft_router,   prefix=f"/api/{version}", tags=["draft"])
app.include_router(session_router, prefix=f"/api/{version}", tags=["session"])
app.include_router(player_router,  prefix=f"/api/{version}", tags=["players"])
app.include_router(tenant_router,  prefix=f"/api/{version}", tags=["config"])
app.include_router(ws_router)

logger.info(f"Application startup complete - API version: {version}")
