"""
Repository layer for the dojo backend.

All SQL lives here and ONLY here. No database access outside this module.
"""

from dojo.repos.comment_repo import CommentRepo
from dojo.repos.forum_repo import ForumRepo
from dojo.repos.kata_repo import KataRepo
from dojo.repos.mute_repo import MuteRepo
from dojo.repos.reaction_repo import ReactionRepo
from dojo.repos.user_repo import UserRepo

__all__ = [
    "KataRepo",
    "ForumRepo",
    "CommentRepo",
    "ReactionRepo",
    "UserRepo",
    "MuteRepo",
]
