# app/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from app.api.middleware import (
    AuditTriggerMiddleware,
    CorrelationIdMiddleware,
    TenantContextMiddleware,
)
from app.api.routers import health, history
from app.application.exceptions import ApplicationError, StorageError
from app.config.logging import configure_logging
from app.config.settings import get_settings
from app.domain.exceptions import (
    DomainError,
    DomainValidationError,
    IdempotencyKeyReuseError,
    InvalidCursorError,
)
from app.infrastructure.cache.idempotency_cache_redis import RedisIdempotencyCache
from app.infrastructure.cache.redis_client import RedisClient
from app.infrastructure.database.event_store_db import DbEventStore
from app.infrastructure.database.session import create_engine, create_session_factory
from app.observability.metrics import MetricsCollector
from app.security.cursor import CursorCodec
from app.security.encryption import EncryptionService
from app.security.exceptions import AuthorizationError, SecurityError

logger = logging.getLogger(__name__)

settings = get_settings()
configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Construct the store, cache and codec once; dispose on shutdown."""
    engine = create_engine(settings)
    app.state.event_store = DbEventStore(create_session_factory(engine))
    app.state.cursor_codec = CursorCodec(EncryptionService(settings.cursor_secret))
    app.state.metrics = MetricsCollector()
    redis_client = RedisClient(settings.redis_url) if settings.redis_url else None
    app.state.idempotency_cache = (
        RedisIdempotencyCache(redis_client, ttl=settings.idempotency_cache_ttl)
        if redis_client is not None
        else None
    )
    logger.info("history_service_started", extra={"environment": settings.environment})
    try:
        yield
    finally:
        if redis_client is not None:
            await redis_client.close()
        await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    debug=settings.debug,
    lifespan=lifespan,
)

# Middleware order: last added runs first (outermost). Request flow: CorrelationId -> TenantContext -> AuditTrigger.
app.add_middleware(AuditTriggerMiddleware)
app.add_middleware(TenantContextMiddleware)
app.add_middleware(CorrelationIdMiddleware)


@app.exception_handler(DomainValidationError)
async def domain_validation_error_handler(request, exc: DomainValidationError):
    return JSONResponse(status_code=422, content={"detail": exc.message})


@app.exception_handler(InvalidCursorError)
async def invalid_cursor_error_handler(request, exc: InvalidCursorError):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(IdempotencyKeyReuseError)
async def idempotency_key_reuse_error_handler(request, exc: IdempotencyKeyReuseError):
    return JSONResponse(status_code=409, content={"detail": exc.message})


@app.exception_handler(DomainError)
async def domain_error_handler(request, exc: DomainError):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(AuthorizationError)
async def authorization_error_handler(request, exc: AuthorizationError):
    return JSONResponse(status_code=403, content={"detail": exc.message})


@app.exception_handler(SecurityError)
async def security_error_handler(request, exc: SecurityError):
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.exception_handler(StorageError)
async def storage_error_handler(request, exc: StorageError):
    logger.error("history_storage_error", extra={"error": exc.message})
    return JSONResponse(status_code=503, content={"detail": "History store unavailable"})


@app.exception_handler(ApplicationError)
async def application_error_handler(request, exc: ApplicationError):
    return JSONResponse(status_code=500, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unexpected_error_handler(request, exc: Exception):
    logger.exception("unhandled_error")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# Routers: /health, /history
app.include_router(health.router)
app.include_router(history.router, prefix="/history")
