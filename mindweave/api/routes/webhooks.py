"""
Webhook endpoints.

Inbound receivers (Slack Events API, Discord interactions, generic capture)
answer with plain JSON bodies instead of FastAPI's {"detail": ...} errors so
third-party senders get the same shape on every status. Config management
is owner scoped like every other signed-in endpoint.
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from mindweave.api.middleware.rate_limit import enforce_action_limit, rate_limited
from mindweave.api.middleware.user_auth import AuthenticatedUser, get_current_user
from mindweave.api_keys.service import validate_api_key
from mindweave.observability.logging import get_logger
from mindweave.webhooks import service
from mindweave.webhooks.models import CapturePayload

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])
logger = get_logger(__name__)


def _failure(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"success": False, "message": message, **extra}
    )


# ============================================================================
# Inbound receivers
# ============================================================================


@router.post("/slack", dependencies=[Depends(rate_limited("webhook-slack", "webhook"))])
async def slack_events(request: Request, background_tasks: BackgroundTasks) -> Any:
    raw_body = (await request.body()).decode("utf-8", errors="replace")
    try:
        payload = json.loads(raw_body)
    except json.JSONDecodeError:
        return _failure(400, "Invalid JSON body")
    if not isinstance(payload, dict):
        return _failure(400, "Invalid JSON body")

    try:
        return service.handle_slack_event(
            payload,
            raw_body,
            request.headers.get("X-Slack-Request-Timestamp", ""),
            request.headers.get("X-Slack-Signature", ""),
            background_tasks,
        )
    except service.WebhookAuthError as e:
        return _failure(401, str(e))
    except Exception as e:
        logger.error("Slack webhook error: %s", e)
        return _failure(500, "Internal server error")


@router.post("/discord", dependencies=[Depends(rate_limited("webhook-discord", "webhook"))])
async def discord_interactions(request: Request, background_tasks: BackgroundTasks) -> Any:
    raw_body = (await request.body()).decode("utf-8", errors="replace")
    try:
        payload = json.loads(raw_body)
    except json.JSONDecodeError:
        return _failure(400, "Invalid JSON body")
    if not isinstance(payload, dict):
        return _failure(400, "Invalid JSON body")

    try:
        return service.handle_discord_interaction(
            payload,
            raw_body,
            request.headers.get("X-Signature-Timestamp", ""),
            request.headers.get("X-Signature-Ed25519", ""),
            background_tasks,
        )
    except service.WebhookAuthError as e:
        return _failure(401, str(e))
    except Exception as e:
        logger.error("Discord webhook error: %s", e)
        return _failure(500, "Internal server error")


@router.post("/capture", dependencies=[Depends(rate_limited("webhook", "webhook"))])
async def generic_capture(request: Request, background_tasks: BackgroundTasks) -> Any:
    """Capture an item from any HTTP client holding a personal API key."""
    authorization = request.headers.get("Authorization") or ""
    raw_key = authorization[7:] if authorization.startswith("Bearer ") else None
    user_id = validate_api_key(raw_key)
    if user_id is None:
        return _failure(401, "Unauthorized. Provide a valid API key via Bearer token.")

    try:
        payload = CapturePayload.model_validate(await request.json())
    except (json.JSONDecodeError, UnicodeDecodeError, PydanticValidationError) as e:
        errors = e.errors() if isinstance(e, PydanticValidationError) else []
        fields = {str(err["loc"][-1]): err["msg"] for err in errors if err["loc"]}
        return _failure(400, "Validation failed", errors=fields)

    try:
        result = service.capture_generic(user_id, payload, background_tasks)
    except Exception as e:
        logger.error("Webhook capture error: %s", e)
        return _failure(500, "Internal server error")
    return JSONResponse(status_code=201, content=result)


# ============================================================================
# Config management
# ============================================================================


class CreateWebhookRequest(BaseModel):
    name: str
    type: str
    secret: str | None = None
    config: dict[str, Any] = Field(default_factory=dict)


class UpdateWebhookRequest(BaseModel):
    name: str | None = None
    secret: str | None = None
    is_active: bool | None = Field(default=None, alias="isActive")
    config: dict[str, Any] | None = None

    model_config = {"populate_by_name": True}


@router.get("/configs")
async def list_configs(user: AuthenticatedUser = Depends(get_current_user)) -> dict[str, Any]:
    return service.list_webhooks(user.id)


@router.post("/configs")
async def create_config(
    request: CreateWebhookRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "createWebhook")
    try:
        return service.create_webhook(
            user.id, request.name, request.type, request.secret, request.config
        )
    except Exception as e:
        logger.error("Failed to create webhook: %s", e)
        raise HTTPException(status_code=500, detail="Failed to create webhook") from None


@router.patch("/configs/{webhook_id}")
async def update_config(
    webhook_id: str,
    request: UpdateWebhookRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "updateWebhook")
    return service.update_webhook(user.id, webhook_id, request.model_dump(exclude_unset=True))


@router.post("/configs/{webhook_id}/toggle")
async def toggle_config(
    webhook_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "toggleWebhook")
    return service.toggle_webhook(user.id, webhook_id)


@router.delete("/configs/{webhook_id}")
async def delete_config(
    webhook_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "deleteWebhook")
    return service.delete_webhook(user.id, webhook_id)
