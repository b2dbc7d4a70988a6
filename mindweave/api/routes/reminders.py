"""Reminder API endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from mindweave.api.middleware.rate_limit import enforce_action_limit
from mindweave.api.middleware.user_auth import AuthenticatedUser, get_current_user
from mindweave.reminders import service

router = APIRouter(prefix="/api/reminders", tags=["reminders"])


class SetReminderRequest(BaseModel):
    content_id: str = Field(..., alias="contentId")
    interval: str

    model_config = {"populate_by_name": True}


class SnoozeReminderRequest(BaseModel):
    duration: str


@router.get("")
async def list_reminders(user: AuthenticatedUser = Depends(get_current_user)) -> dict[str, Any]:
    return service.get_active_reminders(user.id)


@router.post("")
async def set_reminder(
    request: SetReminderRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "setReminder")
    return service.set_reminder(user.id, request.content_id, request.interval)


@router.post("/{reminder_id}/dismiss")
async def dismiss_reminder(
    reminder_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "dismissReminder")
    return service.dismiss_reminder(user.id, reminder_id)


@router.post("/{reminder_id}/snooze")
async def snooze_reminder(
    reminder_id: str,
    request: SnoozeReminderRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "snoozeReminder")
    return service.snooze_reminder(user.id, reminder_id, request.duration)
