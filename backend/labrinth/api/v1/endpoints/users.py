"""
User API Endpoints.

Activity feed and moderation actions (ban/mute).
"""

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from labrinth.core.store import JsonStore, get_store
from labrinth.models.user import User
from labrinth.modules.accounts.service import AccountService
from labrinth.modules.moderation.service import ModerationService

router = APIRouter()


# ==================== Schemas ====================


class ActivityRequest(BaseModel):
    """Activity feed lookup."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str | None = Field(None, alias="userId")


class ModerationRequest(BaseModel):
    """Ban or mute action."""

    model_config = ConfigDict(populate_by_name=True)

    moderator_id: str | None = Field(None, alias="moderatorId")
    target_user_id: str | None = Field(None, alias="targetUserId")
    reason: str | None = None
    duration: float | None = Field(None, allow_inf_nan=False)


class BanRequest(ModerationRequest):
    """Ban (duration in days) or unban."""

    unban: bool = False


class MuteRequest(ModerationRequest):
    """Mute (duration in hours) or unmute."""

    unmute: bool = False


# ==================== Activity ====================


@router.post("/activity")
async def get_activity(
    request: ActivityRequest,
    store: JsonStore = Depends(get_store),
) -> list[dict[str, Any]]:
    """Get user's posts and replies, newest first."""
    accounts = AccountService(store)
    activity = await accounts.get_activity(request.user_id or "")

    return [item.model_dump(mode="json") for item in activity]


# ==================== Moderation ====================


@router.post("/ban")
async def ban_user(
    request: BanRequest,
    store: JsonStore = Depends(get_store),
) -> dict[str, Any]:
    """Ban or unban a user (moderators and admins only)."""
    moderation = ModerationService(store)
    user = await moderation.ban_user(
        moderator_id=request.moderator_id,
        target_user_id=request.target_user_id,
        reason=request.reason,
        duration=request.duration,
        unban=request.unban,
    )

    return {
        "message": "User unbanned successfully" if request.unban else "User banned successfully",
        "user": user.safe_dump(),
    }


@router.post("/mute")
async def mute_user(
    request: MuteRequest,
    store: JsonStore = Depends(get_store),
) -> dict[str, Any]:
    """Mute or unmute a user (moderators and admins only)."""
    moderation = ModerationService(store)
    user = await moderation.mute_user(
        moderator_id=request.moderator_id,
        target_user_id=request.target_user_id,
        reason=request.reason,
        duration=request.duration,
        unmute=request.unmute,
    )

    return {
        "message": "User unmuted successfully" if request.unmute else "User muted successfully",
        "user": user.safe_dump(),
    }


# ==================== Admin ====================

admin_router = APIRouter()


@admin_router.get("/users")
async def list_users(
    auth_user_id: str | None = Query(None, description="Acting moderator/admin ID"),
    store: JsonStore = Depends(get_store),
) -> list[dict[str, Any]]:
    """Get all users without passwords."""
    accounts = AccountService(store)
    return await accounts.list_users(auth_user_id)
