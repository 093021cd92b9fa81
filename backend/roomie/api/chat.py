"""HTTP endpoints for direct conversations between matched users."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from roomie.api.deps import get_current_user_id, get_engine
from roomie.api.schemas import (
	MessageListResponse,
	MessageResponse,
	ReadResponse,
	SendMessageRequest,
	SendMessageResponse,
	TypingRequest,
	UnreadResponse,
)
from roomie.domain.chat.models import OutgoingMessage
from roomie.domain.engine import MatchEngine
from roomie.obs import logging as obs_logging

router = APIRouter(prefix="/chat", tags=["chat"])


@router.get("/conversations/{other_id}/messages", response_model=MessageListResponse)
async def list_messages(
	other_id: str,
	user_id: str = Depends(get_current_user_id),
	engine: MatchEngine = Depends(get_engine),
) -> MessageListResponse:
	conversation_id = engine.conversation_id_for(user_id, other_id)
	with obs_logging.conversation_context(conversation_id):
		messages = await engine.chat.history(conversation_id)
		tracker = await engine.tracker_for(user_id)
		await tracker.observe(conversation_id, messages)
	return MessageListResponse(
		conversation_id=conversation_id,
		items=[MessageResponse.from_model(message) for message in messages],
	)


@router.post(
	"/conversations/{other_id}/messages",
	response_model=SendMessageResponse,
	status_code=status.HTTP_201_CREATED,
)
async def send_message(
	other_id: str,
	payload: SendMessageRequest,
	user_id: str = Depends(get_current_user_id),
	engine: MatchEngine = Depends(get_engine),
) -> SendMessageResponse:
	conversation_id = await engine.chat.open_conversation(user_id, other_id)
	with obs_logging.conversation_context(conversation_id):
		result = await engine.chat.send(
			conversation_id,
			OutgoingMessage(sender_id=user_id, text=payload.text, sender_name=payload.sender_name),
		)
	if not result.success:
		code = status.HTTP_503_SERVICE_UNAVAILABLE if result.error == "store_unavailable" else status.HTTP_400_BAD_REQUEST
		raise HTTPException(status_code=code, detail=result.error)
	return SendMessageResponse(conversation_id=conversation_id, id=result.id, timestamp=result.timestamp)


@router.post("/conversations/{other_id}/read", response_model=ReadResponse)
async def mark_read(
	other_id: str,
	user_id: str = Depends(get_current_user_id),
	engine: MatchEngine = Depends(get_engine),
) -> ReadResponse:
	conversation_id = engine.conversation_id_for(user_id, other_id)
	with obs_logging.conversation_context(conversation_id):
		await engine.mark_read(user_id, conversation_id)
		unread = await engine.get_unread_count(user_id, conversation_id)
	return ReadResponse(conversation_id=conversation_id, unread=unread)


@router.post("/conversations/{other_id}/typing", status_code=status.HTTP_204_NO_CONTENT)
async def set_typing(
	other_id: str,
	payload: TypingRequest,
	user_id: str = Depends(get_current_user_id),
	engine: MatchEngine = Depends(get_engine),
) -> None:
	conversation_id = engine.conversation_id_for(user_id, other_id)
	with obs_logging.conversation_context(conversation_id):
		await engine.chat.set_typing(conversation_id, user_id, payload.typing)


@router.get("/unread", response_model=UnreadResponse)
async def unread_summary(
	user_id: str = Depends(get_current_user_id),
	engine: MatchEngine = Depends(get_engine),
) -> UnreadResponse:
	state = await engine.refresh_unread(user_id)
	conversations = {other: count for other, (count, _) in state.items()}
	return UnreadResponse(total=sum(conversations.values()), conversations=conversations)
