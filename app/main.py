"""
FastAPI Application Entry Point
HealthMate API

Bilingual (English / Roman Urdu) personal health record backend:
medical report upload with AI explanations, vitals tracking and a dashboard.
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Force UTF-8 on Windows console to avoid encoding crashes on Urdu/emoji log lines
if sys.platform == "win32":
    import io
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8', errors='replace')
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding='utf-8', errors='replace')

from app.core.config import settings
from app.core.logging_config import configure_logging
from app.database.session import init_db
from app.api.middleware.rate_limiter import RateLimitMiddleware
from app.api.middleware.logging_middleware import LoggingMiddleware
from app.api.routes import auth, files, health, insights, users, vitals
from app.services.ai_service import ai_service

# Configure logging before anything else
configure_logging()
logger = logging.getLogger(__name__)


# -- Lifespan (startup/shutdown) -----------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management."""
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"  Environment: {settings.app_env}")
    logger.info(f"  AI Model:    {settings.ai_model}")

    if settings.jwt_secret_generated:
        logger.warning("  JWT_SECRET_KEY not set: using a per-process secret, tokens die on restart")

    # Production never gets here without these (Settings fails closed)
    for name in settings.missing_secrets():
        logger.warning(f"  {name} not configured")

    try:
        await init_db()
        logger.info("  Database: initialized")
    except Exception as e:
        logger.warning(f"  Database WARNING: {e}")

    logger.info(f"  {settings.app_name} is ready at http://localhost:{settings.port}")
    yield

    # Cleanup
    logger.info("Shutting down...")
    await ai_service.close()
    logger.info("Shutdown complete.")


# -- FastAPI App ---------------------------------------------------------------
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=(
        "Personal health record API: upload medical reports for bilingual "
        "(English / Roman Urdu) AI explanations, track vitals, review insights.\n\n"
        f"**DISCLAIMER:** {settings.disclaimer}"
    ),
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# -- Middleware (outermost first) ----------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)
app.add_middleware(RateLimitMiddleware)

# -- Routes -------------------------------------------------------------------
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(files.router)
app.include_router(insights.router)
app.include_router(vitals.router)


# -- Exception Handlers -------------------------------------------------------
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    content = {"success": False, "message": str(exc.detail)}
    errors = getattr(exc, "errors", None)
    if errors:
        content["errors"] = errors
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "form")]
        message = err.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.append({"field": ".".join(loc) or "body", "message": message})
    logger.info(f"Validation failed on {request.url.path}: {errors}")
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "Validation failed", "errors": errors},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "message": str(exc) if settings.debug else "Internal server error",
        },
    )


# -- Root API Info ------------------------------------------------------------
@app.get("/api", include_in_schema=False)
async def api_info():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "disclaimer": settings.disclaimer,
        "docs": "/docs",
        "health": "/api/health",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=not settings.is_production(),
        log_level=settings.log_level.lower(),
    )
