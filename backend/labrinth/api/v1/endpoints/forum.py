"""
Forum API Endpoints.

Categories, posts and replies.
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from labrinth.core.store import JsonStore, get_store
from labrinth.modules.forum.service import ForumService

router = APIRouter()


# ==================== Schemas ====================


class ForumRequest(BaseModel):
    """Base for request bodies using camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)


class ActorRequest(ForumRequest):
    """Identifies the acting user."""

    user_id: str | None = Field(None, alias="userId")


class CreateCategoryRequest(ForumRequest):
    """Create new category."""

    actor_id: str | None = Field(None, alias="actorId")
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    icon_name: str | None = Field(None, alias="iconName")
    is_moderated: bool = Field(False, alias="isModerated")


class CreatePostRequest(ForumRequest):
    """Create new post."""

    title: str = Field(..., min_length=3, max_length=200)
    content: str = Field(..., min_length=10)
    category_id: str = Field(..., min_length=1, alias="categoryId")
    author_id: str | None = Field(None, alias="authorId")
    images: list[str] = Field(default_factory=list)


class CreateModeratedPostRequest(ForumRequest):
    """Create new post in the moderated section."""

    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    category_id: str = Field(..., min_length=1, alias="categoryId")
    author_id: str | None = Field(None, alias="authorId")


class CreateReplyRequest(ForumRequest):
    """Create new reply."""

    content: str = Field(..., min_length=1)
    author_id: str | None = Field(None, alias="authorId")


# ==================== Categories ====================


@router.get("/categories")
async def get_categories(
    store: JsonStore = Depends(get_store),
) -> list[dict[str, Any]]:
    """Get all forum categories with live statistics."""
    forum = ForumService(store)
    categories = await forum.get_categories()

    return [cat.model_dump(mode="json") for cat in categories]


@router.post("/categories")
async def create_category(
    request: CreateCategoryRequest,
    store: JsonStore = Depends(get_store),
) -> dict[str, Any]:
    """Create new category (admins only)."""
    forum = ForumService(store)
    category = await forum.create_category(
        actor_id=request.actor_id,
        name=request.name,
        description=request.description,
        icon_name=request.icon_name,
        is_moderated=request.is_moderated,
    )

    return category.model_dump(mode="json")


@router.get("/categories/posts/moderated")
async def get_moderated_posts(
    store: JsonStore = Depends(get_store),
) -> dict[str, Any]:
    """Get all moderated posts, newest first."""
    forum = ForumService(store)
    posts = await forum.get_moderated_posts()

    return {"posts": [p.model_dump(mode="json") for p in posts]}


@router.post("/categories/posts/moderated")
async def create_moderated_post(
    request: CreateModeratedPostRequest,
    store: JsonStore = Depends(get_store),
) -> dict[str, Any]:
    """Create new moderated post (moderators and admins only)."""
    forum = ForumService(store)
    post = await forum.create_moderated_post(
        author_id=request.author_id,
        category_id=request.category_id,
        title=request.title,
        content=request.content,
    )

    return {
        "message": "Moderated post created successfully",
        "post": post.model_dump(mode="json"),
    }


@router.get("/categories/posts/{category_id}")
async def get_category_posts(
    category_id: str,
    store: JsonStore = Depends(get_store),
) -> list[dict[str, Any]]:
    """Get posts in category."""
    forum = ForumService(store)
    posts = await forum.get_posts_for_category(category_id)

    return [p.model_dump(mode="json") for p in posts]


@router.get("/categories/{slug}")
async def get_category(
    slug: str,
    store: JsonStore = Depends(get_store),
) -> dict[str, Any]:
    """Get category by slug."""
    forum = ForumService(store)
    category = await forum.get_category(slug)

    return category.model_dump(mode="json")


# ==================== Posts ====================


@router.post("/posts")
async def create_post(
    request: CreatePostRequest,
    store: JsonStore = Depends(get_store),
) -> dict[str, Any]:
    """Create new post."""
    forum = ForumService(store)
    post = await forum.create_post(
        author_id=request.author_id,
        category_id=request.category_id,
        title=request.title,
        content=request.content,
        images=request.images,
    )

    return {
        "message": "Post created successfully!",
        "post": post.model_dump(mode="json"),
        "redirect_to": f"/forums/{post.category_slug}",
    }


@router.get("/posts/{post_id}")
async def get_post(
    post_id: str,
    store: JsonStore = Depends(get_store),
) -> dict[str, Any]:
    """Get post details with replies."""
    forum = ForumService(store)
    post = await forum.get_post(post_id)

    return post.model_dump(mode="json")


@router.delete("/posts/{post_id}")
async def delete_post(
    post_id: str,
    request: ActorRequest,
    store: JsonStore = Depends(get_store),
) -> dict[str, Any]:
    """Delete post and its replies."""
    forum = ForumService(store)
    await forum.delete_post(request.user_id, post_id)

    return {"message": "Post deleted successfully"}


# ==================== Replies ====================


@router.post("/posts/{post_id}/replies")
async def create_reply(
    post_id: str,
    request: CreateReplyRequest,
    store: JsonStore = Depends(get_store),
) -> dict[str, Any]:
    """Create new reply to a post."""
    forum = ForumService(store)
    reply = await forum.create_reply(
        author_id=request.author_id,
        post_id=post_id,
        content=request.content,
    )

    return {
        "message": "Reply posted successfully.",
        "reply": reply.model_dump(mode="json"),
    }


@router.get("/replies/{reply_id}")
async def get_reply(
    reply_id: str,
    store: JsonStore = Depends(get_store),
) -> dict[str, Any]:
    """Get reply by ID."""
    forum = ForumService(store)
    reply = await forum.get_reply(reply_id)

    return reply.model_dump(mode="json")


@router.delete("/replies/{reply_id}")
async def delete_reply(
    reply_id: str,
    request: ActorRequest,
    store: JsonStore = Depends(get_store),
) -> dict[str, Any]:
    """Delete a reply."""
    forum = ForumService(store)
    await forum.delete_reply(request.user_id, reply_id)

    return {"message": "Reply deleted successfully"}
