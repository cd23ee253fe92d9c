"""LeaveDesk application factory.

``create_app()`` wires logging, RFC 7807 error handlers, the slowapi
limiter, CORS and every feature router under ``/api/v1``. The module-level
``app`` is what an ASGI server imports.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from leavedesk import __version__
from leavedesk.analytics.router import router as analytics_router
from leavedesk.auth.router import router as auth_router
from leavedesk.common.exceptions import register_exception_handlers
from leavedesk.common.rate_limit import limiter
from leavedesk.config import settings
from leavedesk.database import engine
from leavedesk.employees.router import router as employees_router
from leavedesk.holidays.router import router as holidays_router
from leavedesk.leave.router import router as leave_router
from leavedesk.notifications.router import router as notifications_router
from leavedesk.paid_leave.router import router as paid_leave_router
from leavedesk.reports.router import router as reports_router

API_PREFIX = "/api/v1"
VERSION = __version__

# (router, path under API_PREFIX, OpenAPI tag)
ROUTERS: tuple[tuple[APIRouter, str, str], ...] = (
    (auth_router, "/auth", "auth"),
    (employees_router, "/employees", "employees"),
    (leave_router, "/leave-requests", "leave"),
    (holidays_router, "/public-holidays", "public-holidays"),
    (paid_leave_router, "/paid-leave", "paid-leave"),
    (notifications_router, "/notifications", "notifications"),
    (analytics_router, "/analytics", "analytics"),
    (reports_router, "/reports", "reports"),
)

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Root logging from LOG_LEVEL; SQL echo stays off unless LOG_LEVEL is debug."""
    level = settings.LOG_LEVEL.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    if level != "DEBUG":
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "LeaveDesk %s starting (environment=%s, holiday country=%s, refund on cancel=%s)",
        VERSION,
        settings.ENVIRONMENT,
        settings.DEFAULT_HOLIDAY_COUNTRY,
        settings.REFUND_ON_APPROVED_CANCEL,
    )
    yield
    await engine.dispose()
    logger.info("LeaveDesk stopped")


def create_app() -> FastAPI:
    configure_logging()

    is_production = settings.ENVIRONMENT == "production"
    app = FastAPI(
        title="LeaveDesk",
        description="Leave requests, approvals, balances, public holidays, paid leave, analytics and reports",
        version=VERSION,
        docs_url=None if is_production else "/api/docs",
        redoc_url=None if is_production else "/api/redoc",
        lifespan=lifespan,
    )

    register_exception_handlers(app)

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get(f"{API_PREFIX}/health", tags=["system"])
    async def health_check():
        return {
            "status": "healthy",
            "version": VERSION,
            "environment": settings.ENVIRONMENT,
        }

    for router, path, tag in ROUTERS:
        app.include_router(router, prefix=f"{API_PREFIX}{path}", tags=[tag])

    return app


app = create_app()
