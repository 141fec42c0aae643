from collections import Counter

import pytest

from labrinth.core.errors import InvalidInputError, NotFoundError, PermissionDeniedError
from labrinth.core.store import Document
from labrinth.models.forum import Post
from labrinth.modules.forum.service import ForumService
from labrinth.modules.moderation.service import ModerationService

from conftest import NOW, read_document


@pytest.fixture
def forum(store, clock):
    return ForumService(store, clock=clock)


@pytest.fixture
def moderation(store, clock):
    return ModerationService(store, clock=clock)


def stored_category(data_dir, category_id):
    return next(c for c in read_document(data_dir, "categories") if c["id"] == category_id)


def stored_post(data_dir, post_id):
    return next(p for p in read_document(data_dir, "posts") if p["id"] == post_id)


async def assert_reply_counts_match(store):
    replies = Counter(r["post_id"] for r in await store.read(Document.REPLIES))
    for record in await store.read(Document.POSTS):
        post = Post.model_validate(record)
        assert post.reply_count == replies[post.id]


# ------------------------------------------------------------
# Read paths
# ------------------------------------------------------------


async def test_categories_recount_live(forum, store):
    # stale cached counters must not leak into the listing
    categories = await store.read(Document.CATEGORIES)
    categories[0]["post_count"] = 99
    categories[0]["reply_count"] = 42
    await store.write(Document.CATEGORIES, categories)

    result = {c.slug: c for c in await forum.get_categories()}
    assert result["general"].post_count == 2
    assert result["general"].reply_count == 3
    assert result["news"].post_count == 0


async def test_get_category_by_slug(forum):
    category = await forum.get_category("general")
    assert category.id == "c-general"
    assert category.reply_count == 3

    with pytest.raises(NotFoundError):
        await forum.get_category("missing")


async def test_posts_for_category(forum):
    posts = {p.id: p for p in await forum.get_posts_for_category("c-general")}
    assert set(posts) == {"p-1", "p-2"}
    assert posts["p-1"].reply_count == 2
    assert posts["p-1"].category_slug == "general"

    assert await forum.get_posts_for_category("c-news") == []
    with pytest.raises(NotFoundError):
        await forum.get_posts_for_category("c-missing")


async def test_post_detail_orders_replies(forum):
    post = await forum.get_post("p-1")
    assert [r.id for r in post.replies] == ["r-1", "r-2"]
    assert post.reply_count == 2
    assert post.category_name == "General"

    with pytest.raises(NotFoundError):
        await forum.get_post("p-missing")


async def test_get_reply(forum):
    reply = await forum.get_reply("r-3")
    assert reply.post_id == "p-2"
    with pytest.raises(NotFoundError):
        await forum.get_reply("r-missing")


# ------------------------------------------------------------
# Posts
# ------------------------------------------------------------


async def test_create_post(forum, data_dir):
    post = await forum.create_post(
        "u-bob",
        "c-news",
        "Launch day",
        "We are live now, folks.",
        images=["/uploads/a.png"],
    )

    assert post.author_name == "Bob"
    assert post.created_at == NOW
    assert not post.is_moderated
    assert post.content == "We are live now, folks.\n\n![Image](/uploads/a.png)"
    assert post.category_slug == "news"

    assert stored_post(data_dir, post.id)["reply_count"] == 0
    assert stored_category(data_dir, "c-news")["post_count"] == 1


async def test_create_post_unknown_category(forum, data_dir):
    before = read_document(data_dir, "posts")
    with pytest.raises(NotFoundError):
        await forum.create_post("u-bob", "c-missing", "Title", "Long enough content")
    assert read_document(data_dir, "posts") == before


async def test_create_post_requires_author(forum):
    with pytest.raises(InvalidInputError):
        await forum.create_post(None, "c-news", "Title", "Long enough content")
    with pytest.raises(NotFoundError):
        await forum.create_post("u-ghost", "c-news", "Title", "Long enough content")


async def test_muted_user_cannot_post_until_expiry(forum, moderation, clock):
    await moderation.mute_user("u-mod", "u-bob", duration=2)

    with pytest.raises(PermissionDeniedError, match="muted"):
        await forum.create_post("u-bob", "c-news", "Title", "Long enough content")

    clock.advance(hours=2, seconds=1)
    post = await forum.create_post("u-bob", "c-news", "Title", "Long enough content")
    assert post.author_name == "Bob"


async def test_banned_user_cannot_reply(forum, moderation):
    await moderation.ban_user("u-mod", "u-bob")

    with pytest.raises(PermissionDeniedError, match="banned"):
        await forum.create_reply("u-bob", "p-1", "hello")


async def test_moderated_post(forum):
    post = await forum.create_moderated_post("u-mod", "c-news", "Rules", "Read the rules")
    assert post.is_moderated

    posts = await forum.get_moderated_posts()
    assert [p.id for p in posts] == [post.id]


async def test_moderated_listing_recounts_replies(forum, store):
    post = await forum.create_moderated_post("u-mod", "c-news", "Rules", "Read the rules")

    # reply record written without the post cache being bumped
    replies = await store.read(Document.REPLIES)
    replies.append(
        {
            "id": "r-extra",
            "post_id": post.id,
            "author_name": "Alice",
            "content": "noted",
            "created_at": "2026-03-01T13:00:00Z",
        }
    )
    await store.write(Document.REPLIES, replies)

    detail = await forum.get_post(post.id)
    listing = await forum.get_moderated_posts()

    assert detail.reply_count == 1
    assert listing[0].reply_count == detail.reply_count


async def test_moderated_post_requires_staff(forum, data_dir):
    before = read_document(data_dir, "posts")
    with pytest.raises(PermissionDeniedError):
        await forum.create_moderated_post("u-alice", "c-news", "Rules", "Read the rules")
    assert read_document(data_dir, "posts") == before


# ------------------------------------------------------------
# Replies
# ------------------------------------------------------------


async def test_create_reply_increments_counters(forum, store, data_dir):
    category_before = stored_category(data_dir, "c-general")["reply_count"]

    reply = await forum.create_reply("u-alice", "p-2", "Agreed")

    assert reply.author_name == "Alice"
    assert stored_post(data_dir, "p-2")["reply_count"] == 2
    assert stored_category(data_dir, "c-general")["reply_count"] == category_before + 1
    await assert_reply_counts_match(store)


async def test_reply_normalizes_legacy_post_record(forum, data_dir):
    await forum.create_reply("u-bob", "p-1", "Third")

    post = stored_post(data_dir, "p-1")
    assert post["reply_count"] == 3
    assert "replies" not in post
    assert post["category_slug"] == "general"


async def test_reply_to_missing_post(forum, data_dir):
    before = read_document(data_dir, "replies")
    with pytest.raises(NotFoundError):
        await forum.create_reply("u-alice", "p-missing", "hello")
    assert read_document(data_dir, "replies") == before


async def test_delete_own_reply(forum, store, data_dir):
    await forum.delete_reply("u-alice", "r-3")

    assert "r-3" not in {r["id"] for r in read_document(data_dir, "replies")}
    assert stored_post(data_dir, "p-2")["reply_count"] == 0
    assert stored_category(data_dir, "c-general")["reply_count"] == 2
    await assert_reply_counts_match(store)


async def test_cannot_delete_others_reply(forum, data_dir):
    with pytest.raises(PermissionDeniedError):
        await forum.delete_reply("u-bob", "r-3")
    assert len(read_document(data_dir, "replies")) == 3


async def test_delete_reply_twice(forum):
    await forum.delete_reply("u-mod", "r-1")
    with pytest.raises(NotFoundError):
        await forum.delete_reply("u-mod", "r-1")


# ------------------------------------------------------------
# Post deletion
# ------------------------------------------------------------


async def test_delete_post_cascades(forum, data_dir):
    removed = await forum.delete_post("u-mod", "p-1")

    assert removed == 2
    assert {p["id"] for p in read_document(data_dir, "posts")} == {"p-2"}
    assert {r["id"] for r in read_document(data_dir, "replies")} == {"r-3"}

    category = stored_category(data_dir, "c-general")
    assert category["post_count"] == 1
    assert category["reply_count"] == 1


async def test_delete_post_twice_is_not_found(forum, data_dir):
    await forum.delete_post("u-alice", "p-1")
    category = stored_category(data_dir, "c-general")

    with pytest.raises(NotFoundError):
        await forum.delete_post("u-alice", "p-1")

    assert stored_category(data_dir, "c-general") == category


async def test_user_cannot_delete_others_post(forum, data_dir):
    with pytest.raises(PermissionDeniedError):
        await forum.delete_post("u-bob", "p-1")
    assert len(read_document(data_dir, "posts")) == 2
    assert len(read_document(data_dir, "replies")) == 3


async def test_delete_post_requires_actor(forum):
    with pytest.raises(InvalidInputError):
        await forum.delete_post("", "p-1")
    with pytest.raises(NotFoundError):
        await forum.delete_post("u-ghost", "p-1")


async def test_counters_never_negative(forum, store, data_dir):
    categories = await store.read(Document.CATEGORIES)
    for category in categories:
        category["post_count"] = 0
        category["reply_count"] = 0
    await store.write(Document.CATEGORIES, categories)

    await forum.delete_post("u-admin", "p-1")

    category = stored_category(data_dir, "c-general")
    assert category["post_count"] == 0
    assert category["reply_count"] == 0


# ------------------------------------------------------------
# Categories and maintenance
# ------------------------------------------------------------


async def test_admin_creates_category(forum, data_dir):
    category = await forum.create_category("u-admin", "Show & Tell", description="Projects")
    assert category.slug == "show-tell"
    assert stored_category(data_dir, category.id)["name"] == "Show & Tell"

    with pytest.raises(InvalidInputError):
        await forum.create_category("u-admin", "Show & Tell")


async def test_moderator_cannot_create_category(forum):
    with pytest.raises(PermissionDeniedError):
        await forum.create_category("u-mod", "Off Topic")


async def test_reconcile_counters(forum, store, data_dir):
    categories = await store.read(Document.CATEGORIES)
    categories[1]["post_count"] = 7
    await store.write(Document.CATEGORIES, categories)

    changed = await forum.reconcile_counters()

    assert changed == 1
    assert stored_category(data_dir, "c-news")["post_count"] == 0
    assert "reply_count" not in stored_post(data_dir, "p-1")
    assert await forum.reconcile_counters() == 0
