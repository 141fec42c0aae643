"""
Moderation Module - Bans and mutes.

Features:
- Time-bounded or permanent bans
- Time-bounded mutes
- Expiry evaluated whenever a user's status is consulted
"""

from labrinth.modules.moderation.service import ModerationService
from labrinth.modules.moderation.state import ModerationState

__all__ = [
    "ModerationService",
    "ModerationState",
]
