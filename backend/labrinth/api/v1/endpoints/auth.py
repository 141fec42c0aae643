"""
Auth API Endpoints.

Registration, login and account management.
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from labrinth.core.store import JsonStore, get_store
from labrinth.modules.accounts.service import AccountService
from labrinth.modules.moderation.state import ban_notice

router = APIRouter()


# ==================== Schemas ====================


class LoginRequest(BaseModel):
    """Login credentials."""

    username: str | None = None
    password: str | None = None


class RegisterRequest(BaseModel):
    """New account."""

    username: str | None = None
    email: str | None = None
    password: str | None = None


class UpdatePasswordRequest(BaseModel):
    """Password change."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str | None = Field(None, alias="userId")
    current_password: str | None = Field(None, alias="currentPassword")
    new_password: str | None = Field(None, alias="newPassword")


class DeleteAccountRequest(BaseModel):
    """Account removal."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str | None = Field(None, alias="userId")


# ==================== Endpoints ====================


@router.post("/register")
async def register(
    request: RegisterRequest,
    store: JsonStore = Depends(get_store),
) -> dict[str, Any]:
    """Register new user account."""
    accounts = AccountService(store)
    user = await accounts.register(
        request.username or "",
        request.email or "",
        request.password or "",
    )

    return {"user": user.safe_dump()}


@router.post("/login")
async def login(
    request: LoginRequest,
    store: JsonStore = Depends(get_store),
) -> dict[str, Any]:
    """
    Log in with username and password.

    A ban does not block login; the response carries a notice while one is
    in force.
    """
    accounts = AccountService(store)
    user = await accounts.authenticate(request.username or "", request.password or "")

    return {
        "user": user.safe_dump(),
        "notice": ban_notice(user, accounts.clock()),
    }


@router.post("/update-password")
async def update_password(
    request: UpdatePasswordRequest,
    store: JsonStore = Depends(get_store),
) -> dict[str, str]:
    """Change password."""
    accounts = AccountService(store)
    await accounts.update_password(
        request.user_id or "",
        request.current_password or "",
        request.new_password or "",
    )

    return {"message": "Password updated successfully"}


@router.post("/delete-account")
async def delete_account(
    request: DeleteAccountRequest,
    store: JsonStore = Depends(get_store),
) -> dict[str, str]:
    """Delete own account."""
    accounts = AccountService(store)
    await accounts.delete_account(request.user_id or "")

    return {"message": "Account deleted successfully"}
