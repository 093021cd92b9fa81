"""Domain models for one-to-one conversations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

CONVERSATION_DELIMITER = "_"


@dataclass(slots=True)
class ConversationKey:
	"""Order-independent pair identity; both sides derive the same id."""

	user_a: str
	user_b: str

	@classmethod
	def from_participants(cls, user_one: str, user_two: str) -> "ConversationKey":
		ordered = tuple(sorted((str(user_one), str(user_two))))
		return cls(user_a=ordered[0], user_b=ordered[1])

	@property
	def conversation_id(self) -> str:
		return f"{self.user_a}{CONVERSATION_DELIMITER}{self.user_b}"

	def participants(self) -> Tuple[str, str]:
		return (self.user_a, self.user_b)

	def other(self, user_id: str) -> str:
		return self.user_b if user_id == self.user_a else self.user_a


def conversation_id_for(user_one: str, user_two: str) -> str:
	return ConversationKey.from_participants(user_one, user_two).conversation_id


@dataclass(slots=True, frozen=True)
class Message:
	id: str
	sender_id: str
	text: str
	timestamp: int
	sender_name: str = ""
	type: str = "text"

	@classmethod
	def from_dict(cls, raw: Mapping[str, Any]) -> "Message":
		return cls(
			id=str(raw["id"]),
			sender_id=str(raw.get("senderId") or raw.get("sender_id") or ""),
			text=str(raw.get("text") or ""),
			timestamp=int(raw.get("timestamp") or 0),
			sender_name=str(raw.get("senderName") or ""),
			type=str(raw.get("type") or "text"),
		)

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"senderId": self.sender_id,
			"senderName": self.sender_name,
			"text": self.text,
			"timestamp": self.timestamp,
			"type": self.type,
		}


@dataclass(slots=True)
class OutgoingMessage:
	sender_id: str
	text: str
	sender_name: str = ""
	type: str = "text"


@dataclass(slots=True)
class SendResult:
	success: bool
	id: Optional[str] = None
	timestamp: Optional[int] = None
	error: Optional[str] = None


@dataclass(slots=True)
class ConsistencyReport:
	conversation_id: str
	exists: bool
	message_count: int = 0


__all__ = [
	"CONVERSATION_DELIMITER",
	"ConsistencyReport",
	"ConversationKey",
	"Message",
	"OutgoingMessage",
	"SendResult",
	"conversation_id_for",
]
