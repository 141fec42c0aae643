"""
Ban and mute state transitions.

Ban and mute are independent flags on a user record. A ban without an end
date is permanent; a mute always has one. A restriction counts as expired
only once the current time is strictly past its end date.
"""

import math
from datetime import datetime, timedelta
from enum import Enum

from labrinth.core.errors import InvalidInputError
from labrinth.models.user import User

_BAN_FIELDS = {
    "is_banned": False,
    "ban_reason": None,
    "ban_date": None,
    "ban_end_date": None,
    "banned_by": None,
}

_MUTE_FIELDS = {
    "is_muted": False,
    "mute_reason": None,
    "mute_date": None,
    "mute_end_date": None,
    "muted_by": None,
}


def _end_date(now: datetime, message: str, **delta: float) -> datetime:
    try:
        return now + timedelta(**delta)
    except (OverflowError, ValueError):
        raise InvalidInputError(message) from None


class ModerationState(str, Enum):
    """Effective moderation status of a user."""

    ACTIVE = "active"
    MUTED = "muted"
    BANNED = "banned"


def ban_expired(user: User, now: datetime) -> bool:
    if not user.is_banned or user.ban_end_date is None:
        return False
    return now > user.ban_end_date


def mute_expired(user: User, now: datetime) -> bool:
    if not user.is_muted or user.mute_end_date is None:
        return False
    return now > user.mute_end_date


def is_banned(user: User, now: datetime) -> bool:
    return user.is_banned and not ban_expired(user, now)


def is_muted(user: User, now: datetime) -> bool:
    return user.is_muted and not mute_expired(user, now)


def status_of(user: User, now: datetime) -> ModerationState:
    """Effective status; a ban takes precedence over a mute."""
    if is_banned(user, now):
        return ModerationState.BANNED
    if is_muted(user, now):
        return ModerationState.MUTED
    return ModerationState.ACTIVE


def is_restricted(user: User, now: datetime) -> bool:
    """True while the user may not create content."""
    return status_of(user, now) is not ModerationState.ACTIVE


def resolve_expiry(user: User, now: datetime) -> User:
    """Return a copy with any expired ban or mute cleared."""
    update: dict = {}
    if ban_expired(user, now):
        update.update(_BAN_FIELDS)
    if mute_expired(user, now):
        update.update(_MUTE_FIELDS)
    if not update:
        return user
    return user.model_copy(update=update)


def apply_ban(
    user: User,
    actor: User,
    reason: str,
    duration_days: float | None,
    now: datetime,
) -> User:
    """
    Ban a user.

    Args:
        user: Target user
        actor: Moderator issuing the ban
        reason: Ban reason
        duration_days: Length in days; None or 0 for a permanent ban
        now: Current time

    Returns:
        Updated copy of the target
    """
    if duration_days is not None:
        if not math.isfinite(duration_days):
            raise InvalidInputError("Ban duration must be a finite number")
        if duration_days < 0:
            raise InvalidInputError("Ban duration cannot be negative")

    end_date = None
    if duration_days:
        end_date = _end_date(now, "Ban duration is too large", days=duration_days)

    return user.model_copy(
        update={
            "is_banned": True,
            "ban_reason": reason,
            "ban_date": now,
            "ban_end_date": end_date,
            "banned_by": actor.display_name,
        }
    )


def apply_mute(
    user: User,
    actor: User,
    reason: str,
    duration_hours: float | None,
    now: datetime,
) -> User:
    """
    Mute a user for a positive number of hours.

    Raises:
        InvalidInputError: duration missing or not positive
    """
    if not duration_hours or not math.isfinite(duration_hours) or duration_hours <= 0:
        raise InvalidInputError("A positive mute duration is required")

    end_date = _end_date(now, "Mute duration is too large", hours=duration_hours)

    return user.model_copy(
        update={
            "is_muted": True,
            "mute_reason": reason,
            "mute_date": now,
            "mute_end_date": end_date,
            "muted_by": actor.display_name,
        }
    )


def lift_ban(user: User) -> User:
    return user.model_copy(update=_BAN_FIELDS)


def lift_mute(user: User) -> User:
    return user.model_copy(update=_MUTE_FIELDS)


def ban_notice(user: User, now: datetime) -> str | None:
    """Message shown at login while a ban is in force."""
    if not is_banned(user, now):
        return None

    message = "Your account has been banned."
    if user.ban_end_date is not None:
        lifted = user.ban_end_date.strftime("%B %d, %Y %H:%M UTC")
        message += f" Your ban will be lifted on {lifted}."
    else:
        message += " This is a permanent ban."

    if user.ban_reason:
        message += f" Reason: {user.ban_reason}"
    return message
