import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from psn_trophies.api import auth, trophies
from psn_trophies.api.errors import register_exception_handlers
from psn_trophies.core.config import settings
from psn_trophies.core.limiter import limiter
from psn_trophies.core.security import SecurityHeadersMiddleware
from psn_trophies.core.utils.logging_config import (
    CORRELATION_HEADER,
    CorrelationIdMiddleware,
    init_application_logging,
)
from psn_trophies.services.catalog import CatalogFetcher
from psn_trophies.services.dashboard import TrophyDashboard
from psn_trophies.services.identity_client import IdentityClient
from psn_trophies.services.session_store import SessionStore
from psn_trophies.services.translation import GoogleTranslateProvider, TranslationCache

# Initialize structured logging
init_application_logging()

logger = logging.getLogger("psn_trophies.main")


def build_services(app: FastAPI, http_client: httpx.AsyncClient) -> None:
    """Wire the per-process services onto ``app.state``"""
    session_store = SessionStore(
        IdentityClient(http_client),
        ttl_seconds=settings.SESSION_TTL_SECONDS,
        refresh_margin_seconds=settings.SESSION_REFRESH_MARGIN_SECONDS,
    )
    provider = (
        GoogleTranslateProvider(http_client, target_language=settings.TRANSLATION_TARGET_LANGUAGE)
        if settings.TRANSLATION_ENABLED
        else None
    )
    translations = TranslationCache(provider, min_length=settings.TRANSLATION_MIN_LENGTH)

    app.state.http_client = http_client
    app.state.session_store = session_store
    app.state.translations = translations
    app.state.dashboard = TrophyDashboard(
        session_store,
        CatalogFetcher(http_client),
        translations,
        titles_page_size=settings.TITLES_PAGE_SIZE,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as http_client:
        build_services(app, http_client)
        logger.info(
            f"{settings.APP_NAME} {settings.VERSION} started "
            f"(translation {'enabled' if settings.TRANSLATION_ENABLED else 'disabled'})"
        )
        yield
    logger.info("HTTP client closed; caches discarded")


def _check_storage_health() -> dict:
    """
    Check the health of the rate limiting storage backend.

    Returns dict with storage health status and details.
    """
    if not settings.redis_url:
        return {
            "type": "memory",
            "healthy": True,
            "message": "In-memory storage active",
        }

    try:
        import redis

        client = redis.from_url(settings.redis_url, socket_timeout=2)
        client.ping()
        return {
            "type": "redis",
            "healthy": True,
            "message": "Redis connection successful",
        }
    except ImportError:
        return {
            "type": "redis",
            "healthy": False,
            "message": "Redis client not installed",
        }
    except Exception as e:
        logger.warning(f"Redis health check failed: {e}")
        return {
            "type": "redis",
            "healthy": False,
            "message": "Redis connection failed",
        }


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description="PlayStation Network trophy dashboard backend",
        version=settings.VERSION,
        lifespan=lifespan,
    )

    # Attach limiter to app.state before any @limiter.limit() route is hit
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    register_exception_handlers(app)

    logger.info(
        f"Rate limiting initialized: auth={settings.rate_limit_auth_endpoints}, "
        f"read={settings.rate_limit_read_endpoints}"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[CORRELATION_HEADER],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    # The frontend calls /api/...; serverless rewrites strip the prefix
    for prefix in ("/api", ""):
        app.include_router(auth.router, prefix=prefix)
        app.include_router(trophies.router, prefix=prefix)

    @app.get("/health")
    def health_check():
        """Basic health check endpoint."""
        return {"status": "healthy"}

    @app.get("/api/health")
    def api_health_check(request: Request):
        """
        Detailed health: cache statistics, rate limiting backend and version.
        """
        storage_health = _check_storage_health()
        session_store = getattr(request.app.state, "session_store", None)
        translations = getattr(request.app.state, "translations", None)

        return {
            "status": "healthy" if storage_health["healthy"] else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "version": settings.VERSION,
            "environment": {
                "dev_mode": settings.DEV_MODE,
                "python_version": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
            },
            "services": {
                "sessions": session_store.stats() if session_store else None,
                "translation": {
                    "enabled": bool(translations and translations.enabled),
                    "cached_entries": len(translations) if translations else 0,
                },
                "rate_limiting": {
                    "auth": settings.rate_limit_auth_endpoints,
                    "read": settings.rate_limit_read_endpoints,
                    "storage": storage_health,
                },
            },
        }

    return app


app = create_app()
