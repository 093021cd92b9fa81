"""Profile domain exports."""

from .models import Answer, Coordinates, Profile
from .store import ProfileStore, RedisProfileStore

__all__ = [
	"Answer",
	"Coordinates",
	"Profile",
	"ProfileStore",
	"RedisProfileStore",
]
