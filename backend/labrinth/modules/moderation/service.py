"""
Moderation Service - Ban and mute management.
"""

from collections.abc import Callable
from datetime import datetime

from loguru import logger

from labrinth.core.clock import Clock, utcnow
from labrinth.core.config import settings
from labrinth.core.errors import InvalidInputError, NotFoundError, PermissionDeniedError
from labrinth.core.permissions import can_ban_user, can_mute_user, is_admin
from labrinth.core.store import Document, JsonStore
from labrinth.models.user import User, find_user, find_user_index
from labrinth.modules.moderation import state


class ModerationService:
    """
    Service for banning and muting users.

    Every action rewrites the users document with the updated target
    record and records the acting moderator's display name.

    Usage:
        moderation = ModerationService(store)
        user = await moderation.ban_user("mod-1", "user-7", duration=5)
    """

    def __init__(self, store: JsonStore, clock: Clock | None = None) -> None:
        """Initialize moderation service with the document store."""
        self.store = store
        self.clock = clock or utcnow

    async def _apply(
        self,
        moderator_id: str | None,
        target_user_id: str | None,
        action: str,
        allowed: Callable[[User | None], bool],
        transition: Callable[[User, User, datetime], User],
    ) -> User:
        """
        Run one moderation transition on the target user.

        Args:
            moderator_id: Acting user ID
            target_user_id: Target user ID
            action: Verb used in messages ("ban", "mute", ...)
            allowed: Permission predicate for the actor
            transition: Callable(target, actor, now) -> updated target

        Returns:
            Updated target user
        """
        if not moderator_id or not target_user_id:
            raise InvalidInputError("Moderator ID and target user ID are required")

        now = self.clock()

        async with self.store.transaction(Document.USERS) as tx:
            users = tx.records(Document.USERS)

            moderator = find_user(users, moderator_id)
            if moderator is None:
                raise NotFoundError("Moderator not found")

            if not allowed(moderator):
                logger.warning(f"User {moderator_id} tried to {action} without permission")
                raise PermissionDeniedError(f"You do not have permission to {action} users")

            if state.is_banned(moderator, now):
                logger.warning(f"Banned moderator {moderator_id} tried to {action} {target_user_id}")
                raise PermissionDeniedError("You cannot moderate users while banned")

            index = find_user_index(users, target_user_id)
            if index == -1:
                raise NotFoundError("Target user not found")

            target = User.model_validate(users[index])
            updated = transition(target, moderator, now)

            users[index] = updated.to_record()
            tx.mark(Document.USERS)

        logger.info(f"{moderator.display_name} applied {action} to {target.username}")
        return updated

    @staticmethod
    def _shield_admin(target: User, message: str) -> None:
        if is_admin(target):
            raise PermissionDeniedError(message)

    async def ban_user(
        self,
        moderator_id: str | None,
        target_user_id: str | None,
        reason: str | None = None,
        duration: float | None = None,
        unban: bool = False,
    ) -> User:
        """
        Ban or unban a user.

        Args:
            moderator_id: Acting moderator/admin ID
            target_user_id: User to ban
            reason: Ban reason (defaults to the configured reason)
            duration: Ban length in days; None or 0 for permanent
            unban: Lift the ban instead

        Returns:
            Updated target user
        """
        if unban:
            return await self._apply(
                moderator_id,
                target_user_id,
                "unban",
                can_ban_user,
                lambda target, actor, now: state.lift_ban(target),
            )

        def transition(target: User, actor: User, now: datetime) -> User:
            self._shield_admin(target, "Administrators cannot be banned")
            return state.apply_ban(
                target,
                actor,
                reason or settings.default_moderation_reason,
                duration,
                now,
            )

        return await self._apply(moderator_id, target_user_id, "ban", can_ban_user, transition)

    async def mute_user(
        self,
        moderator_id: str | None,
        target_user_id: str | None,
        reason: str | None = None,
        duration: float | None = None,
        unmute: bool = False,
    ) -> User:
        """
        Mute or unmute a user.

        Args:
            moderator_id: Acting moderator/admin ID
            target_user_id: User to mute
            reason: Mute reason (defaults to the configured reason)
            duration: Mute length in hours, must be positive
            unmute: Lift the mute instead

        Returns:
            Updated target user
        """
        if unmute:
            return await self._apply(
                moderator_id,
                target_user_id,
                "unmute",
                can_mute_user,
                lambda target, actor, now: state.lift_mute(target),
            )

        def transition(target: User, actor: User, now: datetime) -> User:
            self._shield_admin(target, "Administrators cannot be muted")
            return state.apply_mute(
                target,
                actor,
                reason or settings.default_moderation_reason,
                duration,
                now,
            )

        return await self._apply(moderator_id, target_user_id, "mute", can_mute_user, transition)
