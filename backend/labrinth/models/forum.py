"""
Forum record schemas.

Includes:
- Categories (sections)
- Posts (threads)
- Replies
- Read projections (list items, post detail, activity feed)
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Category(BaseModel):
    """Forum category/section."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    slug: str
    description: str | None = None
    icon_name: str | None = None
    is_moderated: bool = False

    # Stats (denormalized cache; read paths recompute them)
    post_count: int = 0
    reply_count: int = 0

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    def __repr__(self) -> str:
        return f"<Category {self.name}>"


class Post(BaseModel):
    """Forum post/thread."""

    model_config = ConfigDict(extra="allow")

    id: str
    title: str
    content: str
    # Display name copied at creation time, not a user id
    author_name: str
    category_id: str
    category_name: str | None = None
    category_slug: str | None = None
    created_at: datetime
    is_moderated: bool = False
    images: list[str] = Field(default_factory=list)

    # Stats (denormalized cache)
    reply_count: int = 0

    @model_validator(mode="before")
    @classmethod
    def normalize_legacy_fields(cls, data: Any) -> Any:
        """
        Accept the older record layout.

        Older records keep the reply count as ``replies: [{"count": n}]`` and
        the category copy as ``categories: {"slug": ..., "name": ...}``.
        """
        if not isinstance(data, dict):
            return data

        data = dict(data)
        replies = data.pop("replies", None)
        if "reply_count" not in data and isinstance(replies, list) and replies:
            first = replies[0]
            if isinstance(first, dict) and isinstance(first.get("count"), int):
                data["reply_count"] = first["count"]

        categories = data.pop("categories", None)
        if isinstance(categories, dict):
            data.setdefault("category_slug", categories.get("slug"))
            data.setdefault("category_name", categories.get("name"))

        return data

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    def __repr__(self) -> str:
        return f"<Post {self.title[:30]}>"


class Reply(BaseModel):
    """Reply to a post."""

    model_config = ConfigDict(extra="allow")

    id: str
    post_id: str
    author_name: str
    content: str
    created_at: datetime

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    def __repr__(self) -> str:
        return f"<Reply {self.id} to post {self.post_id}>"


# ==================== Projections ====================


class CategoryWithStats(BaseModel):
    """Category with counts recomputed from live data."""

    id: str
    name: str
    slug: str
    description: str | None = None
    icon_name: str | None = None
    is_moderated: bool = False
    post_count: int = 0
    reply_count: int = 0


class PostListItem(BaseModel):
    """Post entry in a category listing."""

    id: str
    title: str
    author_name: str
    created_at: datetime
    reply_count: int
    category_slug: str
    category_name: str
    is_moderated: bool = False


class PostDetail(PostListItem):
    """Post with its replies."""

    content: str
    images: list[str] = Field(default_factory=list)
    replies: list[Reply] = Field(default_factory=list)


class ActivityItem(BaseModel):
    """Entry of a user's activity feed."""

    id: str
    type: Literal["post", "reply"]
    date: datetime
    post_id: str
    category_slug: str = ""
    title: str | None = None
    category: str | None = None
    post_title: str | None = None
    content: str | None = None
