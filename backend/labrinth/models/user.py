"""
User record schema.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    """User role. Admin implies moderator capability."""

    ADMIN = "admin"
    MODERATOR = "moderator"
    USER = "user"


class User(BaseModel):
    """User account record as stored in users.json."""

    model_config = ConfigDict(extra="allow")

    id: str
    username: str
    email: str
    display_name: str
    # Stored in cleartext, as in the existing data files
    password: str = ""
    avatar_url: str | None = None
    created_at: datetime | None = None
    role: Role = Role.USER

    # Ban status; ban_end_date None means permanent
    is_banned: bool = False
    ban_reason: str | None = None
    ban_date: datetime | None = None
    ban_end_date: datetime | None = None
    banned_by: str | None = None

    # Mute status; mutes are always time-bounded
    is_muted: bool = False
    mute_reason: str | None = None
    mute_date: datetime | None = None
    mute_end_date: datetime | None = None
    muted_by: str | None = None

    def to_record(self) -> dict[str, Any]:
        """Serialize for storage."""
        return self.model_dump(mode="json")

    def safe_dump(self) -> dict[str, Any]:
        """Serialize without the password field."""
        return self.model_dump(mode="json", exclude={"password"})

    def __repr__(self) -> str:
        return f"<User {self.username}>"


def find_user_index(records: list[dict[str, Any]], user_id: str) -> int:
    """Get position of a user record in a loaded users document, or -1."""
    for index, record in enumerate(records):
        if record.get("id") == user_id:
            return index
    return -1


def find_user(records: list[dict[str, Any]], user_id: str) -> User | None:
    """Get a user by id from a loaded users document."""
    index = find_user_index(records, user_id)
    if index == -1:
        return None
    return User.model_validate(records[index])
