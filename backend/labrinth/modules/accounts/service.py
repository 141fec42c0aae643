"""
Account Service - Registration, login and profile management.
"""

import re
from typing import Any
from uuid import uuid4

from loguru import logger

from labrinth.core.clock import Clock, utcnow
from labrinth.core.config import settings
from labrinth.core.errors import (
    AuthenticationError,
    InvalidInputError,
    NotFoundError,
    PermissionDeniedError,
)
from labrinth.core.permissions import is_moderator
from labrinth.core.store import Document, JsonStore
from labrinth.models.forum import ActivityItem, Category, Post, Reply
from labrinth.models.user import Role, User, find_user, find_user_index
from labrinth.modules.moderation.state import resolve_expiry

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class AccountService:
    """
    Service for user accounts.

    Usage:
        accounts = AccountService(store)
        user = await accounts.authenticate("alice", "secret")
    """

    def __init__(self, store: JsonStore, clock: Clock | None = None) -> None:
        """Initialize account service with the document store."""
        self.store = store
        self.clock = clock or utcnow

    async def get_user(self, user_id: str) -> User:
        """Get user by id with expired restrictions cleared."""
        users = await self.store.read(Document.USERS)
        user = find_user(users, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return resolve_expiry(user, self.clock())

    async def register(self, username: str, email: str, password: str) -> User:
        """
        Register a new user account.

        Args:
            username: Unique login name, also the initial display name
            email: Unique email address
            password: Plain password

        Returns:
            Created user
        """
        if not username or not email or not password:
            raise InvalidInputError("Username, email, and password are required")

        if not EMAIL_PATTERN.match(email):
            raise InvalidInputError("Invalid email format")

        if len(password) < settings.password_min_length:
            raise InvalidInputError(
                f"Password must be at least {settings.password_min_length} characters long"
            )

        async with self.store.transaction(Document.USERS) as tx:
            users = tx.records(Document.USERS)

            for record in users:
                if record.get("username") == username:
                    raise InvalidInputError("Username already taken")
                if record.get("email") == email:
                    raise InvalidInputError("Email already registered")

            user = User(
                id=str(uuid4()),
                username=username,
                email=email,
                password=password,
                display_name=username,
                created_at=self.clock(),
                role=Role.USER,
            )
            users.append(user.to_record())
            tx.mark(Document.USERS)

        logger.info(f"Registered user {username}")
        return user

    async def authenticate(self, username: str, password: str) -> User:
        """Check credentials and return the user."""
        if not username or not password:
            raise InvalidInputError("Username and password are required")

        users = await self.store.read(Document.USERS)
        for record in users:
            if record.get("username") == username and record.get("password") == password:
                return resolve_expiry(User.model_validate(record), self.clock())

        logger.warning(f"Failed login for {username}")
        raise AuthenticationError("Invalid username or password")

    async def update_password(
        self,
        user_id: str,
        current_password: str,
        new_password: str,
    ) -> None:
        """Replace password after verifying the current one."""
        if not user_id or not current_password or not new_password:
            raise InvalidInputError("All fields are required")

        async with self.store.transaction(Document.USERS) as tx:
            users = tx.records(Document.USERS)
            index = find_user_index(users, user_id)
            if index == -1:
                raise NotFoundError("User not found")

            if users[index].get("password") != current_password:
                raise AuthenticationError("Current password is incorrect")

            users[index] = {**users[index], "password": new_password}
            tx.mark(Document.USERS)

        logger.info(f"Password updated for user {user_id}")

    async def delete_account(self, user_id: str) -> None:
        """
        Remove a user record.

        Posts and replies keep their copied author name.
        """
        if not user_id:
            raise InvalidInputError("User ID is required")

        async with self.store.transaction(Document.USERS) as tx:
            users = tx.records(Document.USERS)
            index = find_user_index(users, user_id)
            if index == -1:
                raise NotFoundError("User not found")

            users.pop(index)
            tx.mark(Document.USERS)

        logger.info(f"Deleted account {user_id}")

    async def list_users(self, auth_user_id: str | None) -> list[dict[str, Any]]:
        """List all users without passwords. Moderators and admins only."""
        if not auth_user_id:
            raise AuthenticationError("Authorization required")

        users = await self.store.read(Document.USERS)
        auth_user = find_user(users, auth_user_id)
        if auth_user is None:
            raise NotFoundError("User not found")

        if not is_moderator(auth_user):
            raise PermissionDeniedError("Unauthorized")

        now = self.clock()
        return [
            resolve_expiry(User.model_validate(record), now).safe_dump()
            for record in users
        ]

    async def get_activity(self, user_id: str) -> list[ActivityItem]:
        """
        Get a user's posts and replies, newest first.

        Authorship is matched on the user's current display name.
        """
        if not user_id:
            raise InvalidInputError("User ID is required")

        users = await self.store.read(Document.USERS)
        user = find_user(users, user_id)
        if user is None:
            raise NotFoundError("User not found")

        posts = [Post.model_validate(r) for r in await self.store.read(Document.POSTS)]
        replies = [Reply.model_validate(r) for r in await self.store.read(Document.REPLIES)]
        categories = {
            r["id"]: Category.model_validate(r)
            for r in await self.store.read(Document.CATEGORIES)
        }
        posts_by_id = {p.id: p for p in posts}

        activity: list[ActivityItem] = []

        for post in posts:
            if post.author_name != user.display_name:
                continue
            category = categories.get(post.category_id)
            activity.append(
                ActivityItem(
                    id=post.id,
                    type="post",
                    title=post.title,
                    date=post.created_at,
                    category=category.name if category else "Unknown",
                    post_id=post.id,
                    category_slug=category.slug if category else "",
                )
            )

        for reply in replies:
            if reply.author_name != user.display_name:
                continue
            post = posts_by_id.get(reply.post_id)
            category = categories.get(post.category_id) if post else None
            activity.append(
                ActivityItem(
                    id=reply.id,
                    type="reply",
                    post_title=post.title if post else "Unknown Post",
                    content=reply.content,
                    date=reply.created_at,
                    post_id=reply.post_id,
                    category_slug=category.slug if category else "",
                )
            )

        activity.sort(key=lambda item: item.date, reverse=True)
        return activity
