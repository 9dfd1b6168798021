"""
Pydantic models for the dojo adapters.

Row shapes and write payloads. No imports from db, repos, or services.
"""

from dojo.models.forum import ForumCommentRow, ForumCommentWrite, ForumPostRow, ForumPostWrite
from dojo.models.kata import KataRow, KataWrite
from dojo.models.mute import MuteRow
from dojo.models.user import AuthSession, UserProfileRow, UserProfileWrite

__all__ = [
    # Kata models
    "KataRow",
    "KataWrite",
    # Forum models
    "ForumPostRow",
    "ForumPostWrite",
    "ForumCommentRow",
    "ForumCommentWrite",
    # User models
    "UserProfileRow",
    "UserProfileWrite",
    "AuthSession",
    # Moderation models
    "MuteRow",
]
