"""
Forum Module - Community discussions.

Features:
- Categories with live post and reply statistics
- Posts with markdown content and image links
- Replies
- Moderated section restricted to moderators and admins
"""

from labrinth.modules.forum.service import ForumService

__all__ = ["ForumService"]
