"""
Accounts Module - User accounts.

Features:
- Registration and login
- Password change and account deletion
- User listing for moderators
- Activity feed
"""

from labrinth.modules.accounts.service import AccountService

__all__ = ["AccountService"]
