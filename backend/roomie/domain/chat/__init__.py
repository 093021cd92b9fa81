"""Messaging domain exports."""

from .models import ConversationKey, Message, OutgoingMessage, SendResult, conversation_id_for
from .service import ChatService
from .typing_indicator import TypingIndicator

__all__ = [
	"ChatService",
	"ConversationKey",
	"Message",
	"OutgoingMessage",
	"SendResult",
	"TypingIndicator",
	"conversation_id_for",
]
