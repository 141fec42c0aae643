"""
Permission predicates.

Pure functions of the acting user (None when unauthenticated) and, where
relevant, the content record. None of them look at the actor's own ban or
mute state; services check that separately.
"""

from typing import Protocol

from labrinth.models.user import Role, User


class ContentOwner(Protocol):
    """Anything carrying a denormalized author display name."""

    author_name: str


def can_create(user: User | None) -> bool:
    """Any authenticated user can create posts and replies."""
    return user is not None


def can_create_moderated_post(user: User | None) -> bool:
    """Only admins and moderators post in moderated sections."""
    if user is None:
        return False
    return user.role in (Role.ADMIN, Role.MODERATOR)


def can_reply(user: User | None, post: ContentOwner | None = None) -> bool:
    """Any authenticated user can reply."""
    return user is not None


def _owns(user: User, content: ContentOwner) -> bool:
    # Ownership is matched on display name, not user id. Renaming a user
    # detaches them from their content, and a new user reusing a freed
    # display name gains delete rights over it.
    return user.display_name == content.author_name


def can_delete_post(user: User | None, post: ContentOwner) -> bool:
    """Admins and moderators delete any post, users their own."""
    if user is None:
        return False
    if user.role in (Role.ADMIN, Role.MODERATOR):
        return True
    return _owns(user, post)


def can_delete_reply(user: User | None, reply: ContentOwner) -> bool:
    """Admins and moderators delete any reply, users their own."""
    if user is None:
        return False
    if user.role in (Role.ADMIN, Role.MODERATOR):
        return True
    return _owns(user, reply)


def can_ban_user(user: User | None) -> bool:
    if user is None:
        return False
    return user.role in (Role.ADMIN, Role.MODERATOR)


def can_mute_user(user: User | None) -> bool:
    if user is None:
        return False
    return user.role in (Role.ADMIN, Role.MODERATOR)


def is_admin(user: User | None) -> bool:
    return user is not None and user.role == Role.ADMIN


def is_moderator(user: User | None) -> bool:
    """Moderator capability; admins inherit it."""
    return user is not None and user.role in (Role.MODERATOR, Role.ADMIN)
