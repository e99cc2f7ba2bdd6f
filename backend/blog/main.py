from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
from blog.core.config import settings
from blog.core.database import database
from blog.core.errors import register_exception_handlers
from blog.core.gatekeeper import GatekeeperMiddleware
from blog.core.logging_config import (
    setup_security_logging,
    CorrelationIdMiddleware,
    log_security_event,
)
from blog.api.endpoints import auth, categories, posts
from blog.core.rate_limit import limiter
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
import logging

# Configure structured JSON logging
security_logger = setup_security_logging(
    logging.DEBUG if settings.DEBUG else logging.INFO
)
logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        if settings.ENABLE_HSTS and settings.is_production:
            response.headers["Strict-Transport-Security"] = (
                f"max-age={settings.HSTS_MAX_AGE}; includeSubDomains"
            )

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "img-src 'self' data: https:; "
            "style-src 'self' 'unsafe-inline'; "
            "frame-ancestors 'none';"
        )

        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting blog application...")

    if settings.is_production and settings.uses_default_secret:
        logger.critical(
            "JWT_SECRET is still the development default. "
            "Set a long random JWT_SECRET before running in production."
        )
        raise RuntimeError(
            "Refusing to start in production with the default JWT_SECRET"
        )

    if settings.uses_default_secret:
        logger.warning("Using the insecure development JWT_SECRET")

    # Create database tables
    database.create_all()
    logger.info("Database tables created")

    yield

    logger.info("Shutting down blog application...")
    database.dispose()


app = FastAPI(
    title="Blog",
    description="Blog backend: accounts, posts, categories and comments",
    version="1.0.0",
    lifespan=lifespan,
)

register_exception_handlers(app)

# Middleware added last runs outermost; the gatekeeper sits right before routing
app.add_middleware(GatekeeperMiddleware)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(CorrelationIdMiddleware)

log_security_event(
    event_type="app.startup",
    message=f"Blog application starting (production={settings.is_production})",
    event_category="system",
    production=settings.is_production,
    debug=settings.DEBUG,
)

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(categories.router, prefix="/api/categories", tags=["categories"])
app.include_router(posts.router, prefix="/api/posts", tags=["posts"])


@app.get("/")
def root():
    return {
        "name": "Blog",
        "version": "1.0.0",
        "description": "Blog backend API",
    }


@app.get("/health")
def health_check():
    return {"status": "healthy"}
