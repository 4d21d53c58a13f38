"""
Health & Diagnostics Routes
HealthMate API

Endpoints:
  GET /api/health      Process and database liveness
  GET /api/health/ai   Quick Gemini connectivity test
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.database.session import check_database_connection
from app.schemas.common import HealthResponse
from app.services.ai_service import ai_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/health", tags=["Health"])


@router.get(
    "",
    response_model=HealthResponse,
    summary="System health check",
    description="Returns process status and database connectivity.",
)
async def health_check():
    db_ok = await check_database_connection()
    return HealthResponse(
        status="healthy" if db_ok else "degraded",
        version=settings.app_version,
        environment=settings.app_env,
        database="healthy" if db_ok else "unhealthy",
        timestamp=datetime.now(timezone.utc),
        disclaimer=settings.disclaimer,
    )


@router.get(
    "/ai",
    summary="Test Gemini connectivity",
    responses={
        200: {"description": "Gemini responded successfully"},
        503: {"description": "Gemini unavailable or misconfigured"},
    },
)
async def ai_health():
    """
    Sends a one-line prompt to Gemini.
    Returns 503 when the key is missing or the model cannot be reached.
    """
    logger.info("AI connectivity test requested")
    result = await ai_service.test_connection()

    if result.get("status") == "ok":
        return {
            "success": True,
            "status": "ok",
            "model": result.get("model"),
            "response": result.get("response"),
        }

    # 503 so load balancers / monitoring pick it up
    return JSONResponse(
        status_code=503,
        content={
            "success": False,
            "message": "AI service unavailable",
            "errors": [{"field": "ai", "message": result.get("error", "Unknown error")}],
        },
    )
