import traceback
from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from redis.exceptions import RedisError
from starlette.exceptions import HTTPException as StarletteHTTPException

from artledger.api.artworks import router as artworks_router
from artledger.api.auth import router as auth_router
from artledger.api.placeholder import router as placeholder_router
from artledger.config import settings
from artledger.errors import ArtLedgerError
from artledger.integrations.ledger import SimulatedLedger
from artledger.middleware.rate_limit import RateLimitMiddleware
from artledger.middleware.security import SecurityHeadersMiddleware
from artledger.services.cache import MemoryCache, RedisCache

# Configure structlog
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        (
            structlog.dev.ConsoleRenderer()
            if settings.APP_ENV == "development"
            else structlog.processors.JSONRenderer()
        ),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(0),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
    cache_logger_on_first_use=True,
)

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    log.info("starting_up", env=settings.APP_ENV, cache_backend=settings.CACHE_BACKEND)
    Path(settings.STORAGE_ROOT).mkdir(parents=True, exist_ok=True)

    # Bytes in, bytes out: RedisCache stores raw image data.
    redis = Redis.from_url(settings.REDIS_URL)
    try:
        await redis.ping()
        log.info("redis_connected", url=settings.REDIS_URL)
    except (RedisError, OSError) as e:
        log.warning("redis_connection_failed", error=str(e))
    app.state.redis = redis

    if settings.CACHE_BACKEND == "redis":
        app.state.cache = RedisCache(redis)
    else:
        app.state.cache = MemoryCache()

    app.state.ledger = SimulatedLedger(
        marketplace_account_id=settings.LEDGER_MARKETPLACE_ACCOUNT_ID,
        latency_scale=settings.LEDGER_LATENCY_SCALE,
    )

    yield

    # Shutdown
    log.info("shutting_down")
    await redis.aclose()


app = FastAPI(
    title="ArtLedger",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Security headers (outermost; runs last on request, first on response)
app.add_middleware(SecurityHeadersMiddleware)

# Rate limiting (runs after security headers are already queued)
app.add_middleware(RateLimitMiddleware)


# ---------------------------------------------------------------------------
# Error rendering: every failure body is {"message": ...}
# ---------------------------------------------------------------------------

@app.exception_handler(ArtLedgerError)
async def artledger_error_handler(request: Request, exc: ArtLedgerError):
    log.warning(
        "request_failed",
        path=request.url.path,
        error_type=type(exc).__name__,
        status_code=exc.status_code,
        message=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0]["msg"] if errors else "Invalid request"
    return JSONResponse(
        status_code=400,
        content={"message": message, "errors": [e["msg"] for e in errors]},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    log.error(
        "unhandled_exception",
        path=request.url.path,
        error_type=type(exc).__name__,
        error=str(exc),
        exc_info=exc,
    )
    if settings.APP_ENV == "development":
        content = {
            "message": str(exc),
            "type": type(exc).__name__,
            "details": traceback.format_exception(exc),
        }
    else:
        content = {"message": "An internal server error occurred."}
    return JSONResponse(status_code=500, content=content)


app.include_router(auth_router)
app.include_router(artworks_router)
app.include_router(placeholder_router)


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
