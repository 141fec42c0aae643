"""
Forum Service - Category, post and reply management.
"""

from collections import Counter
from uuid import uuid4

from loguru import logger
from slugify import slugify

from labrinth.core.clock import Clock, utcnow
from labrinth.core.errors import InvalidInputError, NotFoundError, PermissionDeniedError
from labrinth.core.permissions import (
    can_create,
    can_create_moderated_post,
    can_delete_post,
    can_delete_reply,
    can_reply,
    is_admin,
)
from labrinth.core.store import Document, JsonStore, Record
from labrinth.models.forum import (
    Category,
    CategoryWithStats,
    Post,
    PostDetail,
    PostListItem,
    Reply,
)
from labrinth.models.user import User, find_user
from labrinth.modules.moderation import state


def _find_index(records: list[Record], record_id: str) -> int:
    for index, record in enumerate(records):
        if record.get("id") == record_id:
            return index
    return -1


def _with_images(content: str, images: list[str]) -> str:
    """Append image links to markdown content."""
    return content + "".join(f"\n\n![Image]({url})" for url in images)


class ForumService:
    """
    Service for managing forum categories, posts, and replies.

    Stored counters on categories and posts are a cache kept up to date by
    the mutation paths; read paths always recount from live records.

    Usage:
        forum = ForumService(store)
        categories = await forum.get_categories()
    """

    def __init__(self, store: JsonStore, clock: Clock | None = None) -> None:
        """Initialize forum service with the document store."""
        self.store = store
        self.clock = clock or utcnow

    # ==================== Helpers ====================

    async def _load_actor(self, user_id: str | None, message: str = "User ID is required") -> User:
        if not user_id:
            raise InvalidInputError(message)

        users = await self.store.read(Document.USERS)
        user = find_user(users, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return state.resolve_expiry(user, self.clock())

    def _ensure_may_post(self, user: User) -> None:
        now = self.clock()
        if state.is_banned(user, now):
            raise PermissionDeniedError("You cannot create posts while banned")
        if state.is_muted(user, now):
            raise PermissionDeniedError("You cannot create posts while muted")

    async def _live_counts(self) -> tuple[list[Post], Counter]:
        """Load posts and count replies per post id."""
        posts = [Post.model_validate(r) for r in await self.store.read(Document.POSTS)]
        replies = await self.store.read(Document.REPLIES)
        return posts, Counter(r.get("post_id") for r in replies)

    @staticmethod
    def _with_stats(
        category: Category,
        posts: list[Post],
        reply_counts: Counter,
    ) -> CategoryWithStats:
        category_posts = [p for p in posts if p.category_id == category.id]
        return CategoryWithStats(
            id=category.id,
            name=category.name,
            slug=category.slug,
            description=category.description,
            icon_name=category.icon_name,
            is_moderated=category.is_moderated,
            post_count=len(category_posts),
            reply_count=sum(reply_counts[p.id] for p in category_posts),
        )

    # ==================== Categories ====================

    async def get_categories(self) -> list[CategoryWithStats]:
        """Get all categories with live post and reply counts."""
        categories = [
            Category.model_validate(r) for r in await self.store.read(Document.CATEGORIES)
        ]
        posts, reply_counts = await self._live_counts()
        return [self._with_stats(c, posts, reply_counts) for c in categories]

    async def get_category(self, slug: str) -> CategoryWithStats:
        """Get category by slug with live counts."""
        for record in await self.store.read(Document.CATEGORIES):
            if record.get("slug") == slug:
                posts, reply_counts = await self._live_counts()
                return self._with_stats(Category.model_validate(record), posts, reply_counts)

        raise NotFoundError("Category not found")

    async def create_category(
        self,
        actor_id: str | None,
        name: str,
        description: str | None = None,
        icon_name: str | None = None,
        is_moderated: bool = False,
    ) -> Category:
        """Create new forum category. Admins only."""
        actor = await self._load_actor(actor_id)
        if not is_admin(actor):
            raise PermissionDeniedError("Only administrators can create categories")

        slug = slugify(name)[:100]
        if not slug:
            raise InvalidInputError("Category name must contain letters or digits")

        async with self.store.transaction(Document.CATEGORIES) as tx:
            categories = tx.records(Document.CATEGORIES)
            if any(c.get("slug") == slug for c in categories):
                raise InvalidInputError(f"Category slug '{slug}' already exists")

            category = Category(
                id=str(uuid4()),
                name=name,
                slug=slug,
                description=description,
                icon_name=icon_name,
                is_moderated=is_moderated,
            )
            categories.append(category.to_record())
            tx.mark(Document.CATEGORIES)

        logger.info(f"Created category {slug}")
        return category

    # ==================== Posts ====================

    async def get_posts_for_category(self, category_id: str) -> list[PostListItem]:
        """Get post listing of a category."""
        categories = await self.store.read(Document.CATEGORIES)
        index = _find_index(categories, category_id)
        if index == -1:
            raise NotFoundError("Category not found")
        category = Category.model_validate(categories[index])

        posts, reply_counts = await self._live_counts()
        return [
            PostListItem(
                id=post.id,
                title=post.title,
                author_name=post.author_name,
                created_at=post.created_at,
                reply_count=reply_counts[post.id],
                category_slug=category.slug,
                category_name=category.name,
                is_moderated=post.is_moderated,
            )
            for post in posts
            if post.category_id == category_id
        ]

    async def get_post(self, post_id: str) -> PostDetail:
        """Get post with replies in posting order."""
        posts = await self.store.read(Document.POSTS)
        index = _find_index(posts, post_id)
        if index == -1:
            raise NotFoundError("Post not found")
        post = Post.model_validate(posts[index])

        replies = [
            Reply.model_validate(r)
            for r in await self.store.read(Document.REPLIES)
            if r.get("post_id") == post_id
        ]
        replies.sort(key=lambda r: r.created_at)

        categories = await self.store.read(Document.CATEGORIES)
        category_index = _find_index(categories, post.category_id)
        category = Category.model_validate(categories[category_index]) if category_index != -1 else None

        return PostDetail(
            id=post.id,
            title=post.title,
            content=post.content,
            author_name=post.author_name,
            created_at=post.created_at,
            reply_count=len(replies),
            category_slug=category.slug if category else (post.category_slug or ""),
            category_name=category.name if category else (post.category_name or ""),
            is_moderated=post.is_moderated,
            images=post.images,
            replies=replies,
        )

    async def get_moderated_posts(self) -> list[Post]:
        """Get posts from the moderated section, newest first, with live reply counts."""
        posts, reply_counts = await self._live_counts()
        moderated = [
            p.model_copy(update={"reply_count": reply_counts[p.id]})
            for p in posts
            if p.is_moderated
        ]
        moderated.sort(key=lambda p: p.created_at, reverse=True)
        return moderated

    async def _create_post(
        self,
        author: User,
        category_id: str,
        title: str,
        content: str,
        images: list[str] | None,
        is_moderated: bool,
    ) -> Post:
        async with self.store.transaction(Document.POSTS, Document.CATEGORIES) as tx:
            categories = tx.records(Document.CATEGORIES)
            category_index = _find_index(categories, category_id)
            if category_index == -1:
                raise NotFoundError("Category not found")
            category = categories[category_index]

            images = list(images or [])
            post = Post(
                id=str(uuid4()),
                title=title,
                content=_with_images(content, images),
                author_name=author.display_name,
                category_id=category_id,
                category_name=category.get("name"),
                category_slug=category.get("slug"),
                created_at=self.clock(),
                is_moderated=is_moderated,
                images=images,
                reply_count=0,
            )

            tx.records(Document.POSTS).append(post.to_record())
            tx.mark(Document.POSTS)

            category["post_count"] = category.get("post_count", 0) + 1
            tx.mark(Document.CATEGORIES)

        logger.info(f"{author.display_name} created post {post.id} in {category.get('slug')}")
        return post

    async def create_post(
        self,
        author_id: str | None,
        category_id: str,
        title: str,
        content: str,
        images: list[str] | None = None,
    ) -> Post:
        """
        Create new post.

        Args:
            author_id: Author user ID
            category_id: Category ID
            title: Post title
            content: Markdown content
            images: Already-hosted image URLs appended to the content

        Returns:
            Created post
        """
        author = await self._load_actor(author_id, "Author ID is required")
        if not can_create(author):
            raise PermissionDeniedError("You must be signed in to post")
        self._ensure_may_post(author)

        return await self._create_post(author, category_id, title, content, images, False)

    async def create_moderated_post(
        self,
        author_id: str | None,
        category_id: str,
        title: str,
        content: str,
    ) -> Post:
        """Create post in the moderated section. Moderators and admins only."""
        author = await self._load_actor(author_id, "Author ID is required")
        if not can_create_moderated_post(author):
            raise PermissionDeniedError("You do not have permission to create moderated posts")
        self._ensure_may_post(author)

        return await self._create_post(author, category_id, title, content, None, True)

    async def delete_post(self, actor_id: str | None, post_id: str) -> int:
        """
        Delete post together with its replies.

        Args:
            actor_id: Acting user ID
            post_id: Post ID

        Returns:
            Number of replies removed with the post
        """
        actor = await self._load_actor(actor_id)

        async with self.store.transaction(
            Document.REPLIES, Document.POSTS, Document.CATEGORIES
        ) as tx:
            posts = tx.records(Document.POSTS)
            index = _find_index(posts, post_id)
            if index == -1:
                raise NotFoundError("Post not found")

            post = Post.model_validate(posts[index])
            if not can_delete_post(actor, post):
                raise PermissionDeniedError("You do not have permission to delete this post")

            posts.pop(index)
            tx.mark(Document.POSTS)

            replies = tx.records(Document.REPLIES)
            remaining = [r for r in replies if r.get("post_id") != post_id]
            removed = len(replies) - len(remaining)
            if removed:
                tx.replace(Document.REPLIES, remaining)

            categories = tx.records(Document.CATEGORIES)
            category_index = _find_index(categories, post.category_id)
            if category_index != -1:
                category = categories[category_index]
                category["post_count"] = max(0, category.get("post_count", 0) - 1)
                category["reply_count"] = max(0, category.get("reply_count", 0) - removed)
                tx.mark(Document.CATEGORIES)

        logger.info(f"{actor.display_name} deleted post {post_id} with {removed} replies")
        return removed

    # ==================== Replies ====================

    async def get_reply(self, reply_id: str) -> Reply:
        """Get reply by ID."""
        replies = await self.store.read(Document.REPLIES)
        index = _find_index(replies, reply_id)
        if index == -1:
            raise NotFoundError("Reply not found")
        return Reply.model_validate(replies[index])

    async def create_reply(
        self,
        author_id: str | None,
        post_id: str,
        content: str,
    ) -> Reply:
        """
        Create reply to a post.

        Args:
            author_id: Author user ID
            post_id: Post ID
            content: Reply content (markdown)

        Returns:
            Created reply
        """
        author = await self._load_actor(author_id, "Author ID is required")

        async with self.store.transaction(
            Document.REPLIES, Document.POSTS, Document.CATEGORIES
        ) as tx:
            posts = tx.records(Document.POSTS)
            post_index = _find_index(posts, post_id)
            if post_index == -1:
                raise NotFoundError("Post not found")
            post = Post.model_validate(posts[post_index])

            if not can_reply(author, post):
                raise PermissionDeniedError("You must be signed in to reply")
            self._ensure_may_post(author)

            reply = Reply(
                id=str(uuid4()),
                post_id=post_id,
                author_name=author.display_name,
                content=content,
                created_at=self.clock(),
            )
            tx.records(Document.REPLIES).append(reply.to_record())
            tx.mark(Document.REPLIES)

            posts[post_index] = post.model_copy(
                update={"reply_count": post.reply_count + 1}
            ).to_record()
            tx.mark(Document.POSTS)

            categories = tx.records(Document.CATEGORIES)
            category_index = _find_index(categories, post.category_id)
            if category_index != -1:
                category = categories[category_index]
                category["reply_count"] = category.get("reply_count", 0) + 1
                tx.mark(Document.CATEGORIES)

        logger.info(f"{author.display_name} replied to post {post_id}")
        return reply

    async def delete_reply(self, actor_id: str | None, reply_id: str) -> None:
        """Delete a single reply."""
        actor = await self._load_actor(actor_id)

        async with self.store.transaction(
            Document.REPLIES, Document.POSTS, Document.CATEGORIES
        ) as tx:
            replies = tx.records(Document.REPLIES)
            index = _find_index(replies, reply_id)
            if index == -1:
                raise NotFoundError("Reply not found")

            reply = Reply.model_validate(replies[index])
            if not can_delete_reply(actor, reply):
                raise PermissionDeniedError("You do not have permission to delete this reply")

            replies.pop(index)
            tx.mark(Document.REPLIES)

            posts = tx.records(Document.POSTS)
            post_index = _find_index(posts, reply.post_id)
            if post_index != -1:
                post = Post.model_validate(posts[post_index])
                posts[post_index] = post.model_copy(
                    update={"reply_count": max(0, post.reply_count - 1)}
                ).to_record()
                tx.mark(Document.POSTS)

                categories = tx.records(Document.CATEGORIES)
                category_index = _find_index(categories, post.category_id)
                if category_index != -1:
                    category = categories[category_index]
                    category["reply_count"] = max(0, category.get("reply_count", 0) - 1)
                    tx.mark(Document.CATEGORIES)

        logger.info(f"{actor.display_name} deleted reply {reply_id}")

    # ==================== Maintenance ====================

    async def reconcile_counters(self) -> int:
        """
        Recompute every stored counter from live records.

        Returns:
            Number of records whose counters changed
        """
        changed = 0

        async with self.store.transaction(
            Document.REPLIES, Document.POSTS, Document.CATEGORIES
        ) as tx:
            reply_counts = Counter(r.get("post_id") for r in tx.records(Document.REPLIES))

            posts = [Post.model_validate(r) for r in tx.records(Document.POSTS)]
            post_records = tx.records(Document.POSTS)
            for index, post in enumerate(posts):
                live = reply_counts[post.id]
                if post.reply_count != live:
                    changed += 1
                    post_records[index] = post.model_copy(update={"reply_count": live}).to_record()
                    tx.mark(Document.POSTS)

            for category in tx.records(Document.CATEGORIES):
                category_posts = [p for p in posts if p.category_id == category.get("id")]
                post_count = len(category_posts)
                reply_count = sum(reply_counts[p.id] for p in category_posts)
                if (category.get("post_count"), category.get("reply_count")) != (post_count, reply_count):
                    changed += 1
                    category["post_count"] = post_count
                    category["reply_count"] = reply_count
                    tx.mark(Document.CATEGORIES)

        if changed:
            logger.info(f"Reconciled counters on {changed} records")
        return changed
