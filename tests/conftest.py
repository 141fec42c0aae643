import json
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from labrinth.core.store import JsonStore

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable time source."""

    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def _user(user_id, username, display_name, role="user", **extra):
    record = {
        "id": user_id,
        "username": username,
        "email": f"{username}@example.com",
        "display_name": display_name,
        "password": f"{username}-pass",
        "avatar_url": None,
        "created_at": "2026-01-01T00:00:00.000Z",
        "role": role,
    }
    record.update(extra)
    return record


def seed_documents():
    users = [
        _user("u-admin", "admin", "Admin", role="admin"),
        _user("u-mod", "molly", "Mod Molly", role="moderator"),
        _user("u-alice", "alice", "Alice"),
        _user("u-bob", "bob", "Bob"),
    ]
    categories = [
        {
            "id": "c-general",
            "name": "General",
            "slug": "general",
            "description": "Anything goes",
            "icon_name": "MessageSquare",
            "post_count": 2,
            "reply_count": 3,
        },
        {
            "id": "c-news",
            "name": "News",
            "slug": "news",
            "description": None,
            "icon_name": None,
            "post_count": 0,
            "reply_count": 0,
        },
    ]
    posts = [
        {
            # older layout: embedded reply count and category copy
            "id": "p-1",
            "title": "Welcome thread",
            "content": "Say hello to everyone here.",
            "author_name": "Alice",
            "created_at": "2026-02-01T10:00:00.000Z",
            "category_id": "c-general",
            "categories": {"slug": "general", "name": "General"},
            "replies": [{"count": 2}],
        },
        {
            "id": "p-2",
            "title": "Second thread",
            "content": "Another discussion topic.",
            "author_name": "Bob",
            "created_at": "2026-02-02T10:00:00.000Z",
            "category_id": "c-general",
            "category_slug": "general",
            "category_name": "General",
            "reply_count": 1,
        },
    ]
    replies = [
        {
            "id": "r-1",
            "post_id": "p-1",
            "author_name": "Bob",
            "content": "Hi Alice",
            "created_at": "2026-02-01T11:00:00.000Z",
        },
        {
            "id": "r-2",
            "post_id": "p-1",
            "author_name": "Alice",
            "content": "Hi Bob",
            "created_at": "2026-02-01T12:00:00.000Z",
        },
        {
            "id": "r-3",
            "post_id": "p-2",
            "author_name": "Alice",
            "content": "Nice one",
            "created_at": "2026-02-02T11:00:00.000Z",
        },
    ]
    return {"users": users, "categories": categories, "posts": posts, "replies": replies}


def write_documents(data_dir, documents):
    data_dir.mkdir(parents=True, exist_ok=True)
    for name, records in documents.items():
        (data_dir / f"{name}.json").write_text(json.dumps(records, indent=2), encoding="utf-8")


def read_document(data_dir, name):
    return json.loads((data_dir / f"{name}.json").read_text(encoding="utf-8"))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def data_dir(tmp_path):
    path = tmp_path / "data"
    write_documents(path, seed_documents())
    return path


@pytest_asyncio.fixture
async def store(data_dir):
    json_store = JsonStore(data_dir)
    await json_store.initialize()
    return json_store
