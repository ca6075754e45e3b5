import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text
from starlette.exceptions import HTTPException

from resolveai.config import settings
from resolveai.database import async_session, engine
from resolveai.errors import AppError
from resolveai.middleware.logging_config import configure_logging

configure_logging(settings.log_level, settings.log_json)
logger = logging.getLogger("resolveai")

from resolveai.api.auth import router as auth_router  # noqa: E402
from resolveai.api.admin_auth import router as admin_auth_router  # noqa: E402
from resolveai.api.cases import router as cases_router  # noqa: E402
from resolveai.api.employees import router as employees_router  # noqa: E402
from resolveai.api.uploads import router as uploads_router  # noqa: E402
from resolveai.seed.admin import ensure_admin  # noqa: E402


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: verify DB connection, make sure the bootstrap admin exists
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
    if settings.bootstrap_admin_email and settings.bootstrap_admin_password:
        async with async_session() as session:
            await ensure_admin(session, settings.bootstrap_admin_email, settings.bootstrap_admin_password)
            await session.commit()
    yield
    # Shutdown
    await engine.dispose()


app = FastAPI(
    title="Resolve Aí",
    description="Municipal issue tracking: citizen reports, staff follow-up, admin oversight",
    version="0.1.0",
    lifespan=lifespan,
)

# ── CORS ─────────────────────────────────────────────────────────────────────
origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
)

# ── Security headers middleware ──────────────────────────────────────────────
from resolveai.middleware.security_headers import SecurityHeadersMiddleware  # noqa: E402

app.add_middleware(SecurityHeadersMiddleware, hsts=settings.is_production)

# ── Admin navigation gate (admin_session cookie) ─────────────────────────────
from resolveai.middleware.admin_session import AdminSessionMiddleware  # noqa: E402

app.add_middleware(AdminSessionMiddleware)

# ── Rate limiting on credential endpoints ────────────────────────────────────
from resolveai.middleware.rate_limit import RateLimitMiddleware  # noqa: E402

app.add_middleware(RateLimitMiddleware)

# ── Request context middleware (request ID + timing) ─────────────────────────
from resolveai.middleware.request_context import RequestContextMiddleware  # noqa: E402

app.add_middleware(RequestContextMiddleware)

# ── Prometheus metrics middleware ────────────────────────────────────────────
from resolveai.middleware.metrics import PrometheusMiddleware  # noqa: E402

app.add_middleware(PrometheusMiddleware)


# ── Error translation ────────────────────────────────────────────────────────

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=400,
        content={"error": f"{location}: {message}" if location else message},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled %s on %s %s", type(exc).__name__, request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


# Register API routers
app.include_router(auth_router)
app.include_router(admin_auth_router)
app.include_router(cases_router)
app.include_router(employees_router)
app.include_router(uploads_router)


# ── Operational endpoints ────────────────────────────────────────────────────

@app.get("/api/health")
async def health_check():
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        database = {"status": "connected"}
    except Exception as exc:
        logger.warning("Health check: database unreachable (%s)", exc)
        database = {"status": "disconnected"}

    healthy = database["status"] == "connected"
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "environment": settings.environment,
            "components": {"database": database},
        },
    )


@app.get("/metrics", include_in_schema=False)
async def prometheus_metrics():
    """Expose Prometheus metrics in text format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
