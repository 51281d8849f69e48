"""
Player presence tracking
"""

from .cache import RecentlySeenCache
from .store import PresenceStore

__all__ = [
    "PresenceStore",
    "RecentlySeenCache",
]
