"""Health check endpoints.

- /health - service status, LLM provider readiness, model latency
- /health/db - connection pool health
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter

from draftwise.config import APP_VERSION
from draftwise.infrastructure.database import get_pool_stats
from draftwise.observability.telemetry import get_counters, get_latency_stats

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Service status. Checks credential presence only, never calls the model."""
    use_llm = os.getenv("DRAFTWISE_USE_LLM", "false").lower() == "true"
    has_credentials = bool(os.getenv("GOOGLE_API_KEY") or os.getenv("GOOGLE_CLOUD_PROJECT"))

    return {
        "status": "healthy",
        "service": "Draftwise API",
        "version": APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "llm": {
            "provider": "gemini" if use_llm else "heuristic",
            "ready": has_credentials or not use_llm,
        },
        "counters": get_counters(),
        "latency": {"analysis.model": get_latency_stats("analysis.model.latency")},
    }


@router.get("/health/db")
async def database_health() -> dict[str, Any]:
    """Connection pool metrics; degraded above 80% usage."""
    stats = get_pool_stats()
    degraded = stats["usage_percent"] > 80
    return {
        "status": "degraded" if degraded else "healthy",
        "pool": stats,
        "warning": "Pool usage high" if degraded else None,
    }
