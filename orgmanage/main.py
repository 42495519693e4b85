"""OrgManage — FastAPI Application Factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.ext.asyncio import async_sessionmaker

from orgmanage.access.router import router as access_router
from orgmanage.admin.router import router as admin_router
from orgmanage.analytics.router import router as analytics_router
from orgmanage.announcements.router import router as announcements_router
from orgmanage.auth.provider import AuthProvider
from orgmanage.auth.router import router as auth_router
from orgmanage.common.exceptions import register_exception_handlers
from orgmanage.common.rate_limit import limiter
from orgmanage.config import settings
from orgmanage.database import async_session_factory
from orgmanage.expenses.router import router as expenses_router
from orgmanage.goals.router import router as goals_router
from orgmanage.it.router import router as it_router
from orgmanage.leave.router import router as leave_router
from orgmanage.logging_config import configure_logging
from orgmanage.notifications.router import router as notifications_router
from orgmanage.profiles.router import router as profiles_router
from orgmanage.realtime.bridge import SyncBridge
from orgmanage.realtime.broker import change_broker
from orgmanage.realtime.router import router as realtime_router
from orgmanage.realtime.snapshot import SnapshotFetcher
from orgmanage.sales.router import router as sales_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    logger.info("OrgManage starting (%s)", settings.ENVIRONMENT)
    yield
    await app.state.sync_bridge.aclose()
    logger.info("OrgManage stopped")


def create_app(session_factory: async_sessionmaker = async_session_factory) -> FastAPI:
    """Create and configure the FastAPI application.

    *session_factory* backs the sessions opened outside a request scope
    (auth lookups for WebSockets, realtime snapshots).
    """
    configure_logging()

    app = FastAPI(
        title="OrgManage",
        description="Role-based organization dashboard: sales, HR, IT, finance, goals",
        version="1.0.0",
        docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    app.state.auth_provider = AuthProvider(session_factory)
    app.state.sync_bridge = SyncBridge(change_broker, SnapshotFetcher(session_factory))

    # Exception handlers (RFC 7807)
    register_exception_handlers(app)

    # Rate limiting (slowapi)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check (no auth)
    @app.get("/api/v1/health", tags=["system"])
    async def health_check():
        return {
            "status": "healthy",
            "version": "1.0.0",
            "environment": settings.ENVIRONMENT,
        }

    # Register routers
    app.include_router(auth_router, prefix="/api/v1/auth", tags=["auth"])
    app.include_router(access_router, prefix="/api/v1/access", tags=["access"])
    app.include_router(profiles_router, prefix="/api/v1/profiles", tags=["profiles"])
    app.include_router(sales_router, prefix="/api/v1/transactions", tags=["transactions"])
    app.include_router(goals_router, prefix="/api/v1/goals", tags=["goals"])
    app.include_router(leave_router, prefix="/api/v1/leave", tags=["leave"])
    app.include_router(expenses_router, prefix="/api/v1/expenses", tags=["expenses"])
    app.include_router(it_router, prefix="/api/v1/it", tags=["it"])
    app.include_router(announcements_router, prefix="/api/v1/announcements", tags=["announcements"])
    app.include_router(admin_router, prefix="/api/v1/admin", tags=["admin"])
    app.include_router(notifications_router, prefix="/api/v1/notifications", tags=["notifications"])
    app.include_router(analytics_router, prefix="/api/v1/analytics", tags=["analytics"])
    app.include_router(realtime_router, prefix="/api/v1/realtime", tags=["realtime"])

    return app


app = create_app()
