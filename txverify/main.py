"""txverify API - FastAPI application."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from . import __version__
from .config import get_settings
from .logging_config import configure_logging, get_logger
from .rate_limit import limiter
from .routes import payments_router

logger = get_logger("txverify.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings = get_settings()
    configure_logging("DEBUG" if settings.debug else settings.log_level)
    logger.info("Starting txverify API (debug=%s)", settings.debug)
    yield
    logger.info("Shutting down txverify API")


app = FastAPI(
    title="txverify API",
    description="Cross-chain USDC payment verification",
    version=__version__,
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(payments_router)


@app.get("/")
async def root():
    """Service banner."""
    return {
        "service": "txverify",
        "version": __version__,
        "status": "ok",
    }


@app.get("/health")
async def health():
    """Health check with replay store status."""
    from .dependencies import get_payment_service
    from .payments import SupabaseReplayGuard

    service = get_payment_service(get_settings())
    guard = service.replay_guard

    store_status = "memory"
    if isinstance(guard, SupabaseReplayGuard):
        try:
            await guard.is_used("health-check")
            store_status = "connected"
        except Exception as e:
            store_status = f"error: {str(e)[:50]}"

    overall_status = "degraded" if store_status.startswith("error") else "healthy"

    return {
        "status": overall_status,
        "replay_store": store_status,
        "chains": service.registry.list_supported(),
    }
