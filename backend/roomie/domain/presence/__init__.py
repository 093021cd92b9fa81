"""Presence domain exports."""

from .store import PresenceRecord, RedisPresenceStore
from .tracker import PresenceTracker

__all__ = ["PresenceRecord", "PresenceTracker", "RedisPresenceStore"]
