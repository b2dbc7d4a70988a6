"""FastAPI server for Mindweave"""

from __future__ import annotations

import os
import sqlite3
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mindweave.api.middleware.security_headers import SecurityHeadersMiddleware
from mindweave.api.routes.analytics import router as analytics_router
from mindweave.api.routes.api_keys import router as api_keys_router
from mindweave.api.routes.briefing import router as briefing_router
from mindweave.api.routes.collections import invitations_router
from mindweave.api.routes.collections import router as collections_router
from mindweave.api.routes.content import router as content_router
from mindweave.api.routes.content import share_router
from mindweave.api.routes.cron import router as cron_router
from mindweave.api.routes.digest import router as digest_router
from mindweave.api.routes.export import router as export_router
from mindweave.api.routes.extension import router as extension_router
from mindweave.api.routes.files import router as files_router
from mindweave.api.routes.graph import router as graph_router
from mindweave.api.routes.health import router as health_router
from mindweave.api.routes.highlights import router as highlights_router
from mindweave.api.routes.imports import router as imports_router
from mindweave.api.routes.posts import router as posts_router
from mindweave.api.routes.reminders import router as reminders_router
from mindweave.api.routes.search import router as search_router
from mindweave.api.routes.v1 import router as v1_router
from mindweave.api.routes.views import router as views_router
from mindweave.api.routes.webhooks import router as webhooks_router
from mindweave.api.routes.wrapped import router as wrapped_router
from mindweave.config import APP_URL, APP_VERSION, CHROME_EXTENSION_ID
from mindweave.infrastructure.database import init_database
from mindweave.infrastructure.rate_limit import (
    RateLimitExceeded,
    rate_limit_body,
    rate_limit_headers,
)
from mindweave.observability.logging import get_logger
from mindweave.observability.telemetry import counter, log_event
from mindweave.utils.redaction import redact

# Load environment variables from .env file
load_dotenv()

app = FastAPI(title="Mindweave API", version=APP_VERSION)

logger = get_logger(__name__)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Sanitized 422 that names the bad fields without echoing validation rules."""
    logger.warning("Validation error on %s: %s", redact(str(request.url)), exc.errors())
    counter("api.validation_errors")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Invalid request format. Please check your request and try again.",
            "error_count": len(exc.errors()),
            "invalid_fields": [str(err["loc"][-1]) for err in exc.errors()],
        },
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=rate_limit_body(exc.result),
        headers=rate_limit_headers(exc.result),
    )


# CORS - web app and browser extension only
ALLOWED_ORIGINS = [APP_URL.rstrip("/")]
if CHROME_EXTENSION_ID:
    ALLOWED_ORIGINS.append(f"chrome-extension://{CHROME_EXTENSION_ID}")

if os.getenv("MINDWEAVE_ENV", "development") == "development":
    ALLOWED_ORIGINS.extend(
        [
            "http://localhost:3000",
            "http://localhost:8000",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:8000",
        ]
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=sorted(set(ALLOWED_ORIGINS)),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
)

app.add_middleware(SecurityHeadersMiddleware)

# Initialize database schema
try:
    logger.info("Initializing database schema...")
    init_database()
    logger.info("Database initialization complete")
except sqlite3.OperationalError as e:
    logger.critical("Database schema error: %s", e)
    raise RuntimeError(f"Database initialization failed: {e}") from e
except Exception as e:
    logger.critical("Unexpected database initialization error: %s", e)
    raise RuntimeError(f"Database initialization failed: {e}") from e

# Include routers
app.include_router(health_router)
app.include_router(content_router)
app.include_router(share_router)
app.include_router(search_router)
app.include_router(collections_router)
app.include_router(invitations_router)
app.include_router(reminders_router)
app.include_router(views_router)
app.include_router(imports_router)
app.include_router(export_router)
app.include_router(files_router)
app.include_router(webhooks_router)
app.include_router(api_keys_router)
app.include_router(v1_router)
app.include_router(extension_router)
app.include_router(graph_router)
app.include_router(posts_router)
app.include_router(highlights_router)
app.include_router(analytics_router)
app.include_router(wrapped_router)
app.include_router(briefing_router)
app.include_router(digest_router)
app.include_router(cron_router)

log_event("api.startup", service="mindweave", version=APP_VERSION)


@app.get("/")
def root() -> dict[str, Any]:
    return {
        "service": "Mindweave API",
        "version": APP_VERSION,
        "status": "running",
        "endpoints": {
            "health": "/health",
            "content": "/api/content",
            "search": "/api/search",
            "collections": "/api/collections",
            "reminders": "/api/reminders",
            "import": "/api/import",
            "export": "/api/export",
            "v1": "/api/v1/content",
            "graph": "/api/graph",
            "analytics": "/api/analytics",
            "debug_stats": "/debug/stats",
        },
    }


def main() -> None:
    import uvicorn

    from mindweave.config import API_HOST, API_PORT, DEBUG

    uvicorn.run("mindweave.api.app:app", host=API_HOST, port=API_PORT, reload=DEBUG)


if __name__ == "__main__":
    main()
