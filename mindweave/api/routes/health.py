"""Health check and debug endpoints for the Mindweave API.

- /health - Service health including LLM credential presence
- /health/db - Database connection pool health
- /debug/stats - Aggregate statistics (no PII)
"""

from __future__ import annotations

import os
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter

from mindweave.config import APP_VERSION
from mindweave.infrastructure.database import get_db_connection, get_pool_stats
from mindweave.observability.telemetry import get_counters

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Service status, version and Gemini credential readiness (no API call)."""
    has_api_key = bool(os.getenv("GOOGLE_API_KEY") or os.getenv("GOOGLE_AI_API_KEY"))
    has_project = bool(os.getenv("GOOGLE_CLOUD_PROJECT"))

    return {
        "status": "healthy",
        "service": "Mindweave API",
        "version": APP_VERSION,
        "timestamp": datetime.now(UTC).isoformat(),
        "llm": {
            "ready": has_api_key or has_project,
            "google_api_key": has_api_key,
            "google_cloud_project": has_project,
        },
    }


@router.get("/health/db")
async def database_health() -> dict[str, Any]:
    """Connection pool metrics; degraded above 80% usage."""
    stats = get_pool_stats()
    usage_percent = stats["usage_percent"]

    return {
        "status": "degraded" if usage_percent > 80 else "healthy",
        "pool": stats,
        "warning": "Pool usage high" if usage_percent > 80 else None,
    }


@router.get("/debug/stats")
async def debug_stats() -> dict[str, Any]:
    """Aggregate system statistics for debugging. Contains no PII."""
    with get_db_connection() as conn:
        rows = conn.execute("SELECT type, COUNT(*) AS count FROM content GROUP BY type").fetchall()
        content_by_type = {row["type"]: row["count"] for row in rows}
        total_users = conn.execute("SELECT COUNT(*) FROM users").fetchone()[0]
        total_embeddings = conn.execute("SELECT COUNT(*) FROM embeddings").fetchone()[0]

    return {
        "content": {
            "total": sum(content_by_type.values()),
            "by_type": content_by_type,
        },
        "users": total_users,
        "embeddings": total_embeddings,
        "counters": get_counters(),
        "database": get_pool_stats(),
        "timestamp": datetime.now(UTC).isoformat(),
    }
