"""Request dependencies shared by the routers."""

from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException, Request, status

from roomie.domain.engine import MatchEngine
from roomie.domain.presence.store import RedisPresenceStore


async def get_current_user_id(x_user_id: Optional[str] = Header(default=None, alias="X-User-Id")) -> str:
	"""Identity comes from the `X-User-Id` header; issuing it happens upstream."""
	user_id = (x_user_id or "").strip()
	if not user_id:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing_identity")
	return user_id


def get_engine(request: Request) -> MatchEngine:
	engine = getattr(request.app.state, "engine", None)
	if engine is None:
		engine = MatchEngine()
		request.app.state.engine = engine
	return engine


def get_presence_store(request: Request) -> RedisPresenceStore:
	store = getattr(request.app.state, "presence", None)
	if store is None:
		store = RedisPresenceStore()
		request.app.state.presence = store
	return store


__all__ = ["get_current_user_id", "get_engine", "get_presence_store"]
