"""Pydantic schemas for the HTTP surface."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from roomie.domain.chat.models import Message


class ProfileResponse(BaseModel):
	profile: Dict[str, Any]


class MatchListResponse(BaseModel):
	items: List[Dict[str, Any]]
	placeholder: bool = False


class MessageResponse(BaseModel):
	id: str
	sender_id: str
	sender_name: str = ""
	text: str
	timestamp: int
	type: str = "text"

	@classmethod
	def from_model(cls, message: Message) -> "MessageResponse":
		return cls(
			id=message.id,
			sender_id=message.sender_id,
			sender_name=message.sender_name,
			text=message.text,
			timestamp=message.timestamp,
			type=message.type,
		)


class MessageListResponse(BaseModel):
	conversation_id: str
	items: List[MessageResponse]


class SendMessageRequest(BaseModel):
	text: str
	sender_name: str = ""


class SendMessageResponse(BaseModel):
	conversation_id: str
	id: str
	timestamp: int


class TypingRequest(BaseModel):
	typing: bool


class ReadResponse(BaseModel):
	conversation_id: str
	unread: int


class UnreadResponse(BaseModel):
	total: int
	conversations: Dict[str, int]


class OnlineRequest(BaseModel):
	name: str = Field(default="", max_length=120)


class PresenceStatusResponse(BaseModel):
	user_id: str
	online: bool
	actually_online: bool
	last_activity_at: Optional[int] = None


__all__ = [
	"MatchListResponse",
	"MessageListResponse",
	"MessageResponse",
	"OnlineRequest",
	"PresenceStatusResponse",
	"ProfileResponse",
	"ReadResponse",
	"SendMessageRequest",
	"SendMessageResponse",
	"TypingRequest",
	"UnreadResponse",
]
