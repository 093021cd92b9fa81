"""Ranked match list for the calling user."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from roomie.api.deps import get_current_user_id, get_engine
from roomie.api.schemas import MatchListResponse
from roomie.domain.engine import MatchEngine

router = APIRouter(prefix="/matches", tags=["matches"])


@router.get("", response_model=MatchListResponse)
async def list_matches(
	pinned: Optional[List[str]] = Query(default=None),
	user_id: str = Depends(get_current_user_id),
	engine: MatchEngine = Depends(get_engine),
) -> MatchListResponse:
	records = await engine.matches_for(user_id, pins=pinned or ())
	return MatchListResponse(
		items=[record.to_dict() for record in records],
		placeholder=any(record.is_placeholder for record in records),
	)
