"""Unread tracking exports."""

from .persistence import JsonWatermarkStore, RedisWatermarkStore, WatermarkStore
from .tracker import UnreadTracker
from .watcher import ConversationWatcher

__all__ = [
	"ConversationWatcher",
	"JsonWatermarkStore",
	"RedisWatermarkStore",
	"UnreadTracker",
	"WatermarkStore",
]
