"""
Katalog: the session-side catalog core.

  store        : in-memory snapshot per entity type, with subscribers
  search       : order-preserving filtered view
  reorder      : list moves with dense order renumbering
  orchestrator : create/update/delete/reorder flows against the gateways
  forum        : pin/lock toggles and comments on forum posts
  interactions : likes and favorites
  moderation   : roles and lazily-expiring mutes

No IO happens here beyond calls on the collaborator interfaces in
`katalog.gateway`; the `dojo` package provides production adapters.
"""

from katalog.forum import ForumOrchestrator
from katalog.interactions import InteractionService
from katalog.moderation import ModerationService, MuteDuration, MuteRecord
from katalog.orchestrator import KataOrchestrator, LivenessToken, RecordOrchestrator
from katalog.search import filter_items, normalize_search_text
from katalog.store import EntityStore, Snapshot
from katalog.types import ForumComment, ForumPost, Kata, KataChanges, KataDraft, UserProfile, UserRole

__all__ = [
    "EntityStore",
    "Snapshot",
    "filter_items",
    "normalize_search_text",
    "KataOrchestrator",
    "RecordOrchestrator",
    "ForumOrchestrator",
    "InteractionService",
    "LivenessToken",
    "ModerationService",
    "MuteDuration",
    "MuteRecord",
    "Kata",
    "KataDraft",
    "KataChanges",
    "ForumPost",
    "ForumComment",
    "UserProfile",
    "UserRole",
]
