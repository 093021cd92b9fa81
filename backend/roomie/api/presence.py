"""Presence endpoints: explicit online flag plus heartbeat liveness."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status

from roomie.api.deps import get_current_user_id, get_presence_store
from roomie.api.schemas import OnlineRequest, PresenceStatusResponse
from roomie.domain.presence.store import RedisPresenceStore
from roomie.settings import settings

router = APIRouter(prefix="/presence", tags=["presence"])


@router.post("/online", status_code=status.HTTP_204_NO_CONTENT)
async def go_online(
	payload: Optional[OnlineRequest] = Body(default=None),
	user_id: str = Depends(get_current_user_id),
	store: RedisPresenceStore = Depends(get_presence_store),
) -> None:
	await store.set_online(user_id, name=payload.name if payload else "")


@router.post("/offline", status_code=status.HTTP_204_NO_CONTENT)
async def go_offline(
	user_id: str = Depends(get_current_user_id),
	store: RedisPresenceStore = Depends(get_presence_store),
) -> None:
	await store.set_offline(user_id)


@router.post("/heartbeat")
async def heartbeat(
	user_id: str = Depends(get_current_user_id),
	store: RedisPresenceStore = Depends(get_presence_store),
) -> dict:
	"""Activity ping; repeats inside the throttle window are acknowledged without a write."""
	written, ts = await store.throttled_heartbeat(user_id)
	return {"ok": True, "ts": ts, "throttled": not written}


@router.get("/{target_id}", response_model=PresenceStatusResponse)
async def get_status(
	target_id: str,
	_: str = Depends(get_current_user_id),
	store: RedisPresenceStore = Depends(get_presence_store),
) -> PresenceStatusResponse:
	record = await store.get_record(target_id)
	if record is None:
		raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="presence_not_found")
	actually_online = await store.is_recently_active(target_id, settings.presence_online_window_seconds)
	return PresenceStatusResponse(
		user_id=target_id,
		online=record.online,
		actually_online=actually_online,
		last_activity_at=record.last_activity_at,
	)
