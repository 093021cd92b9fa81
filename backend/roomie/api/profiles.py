"""Survey submission and profile reads."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, status

from roomie.api.deps import get_current_user_id, get_engine
from roomie.api.schemas import ProfileResponse
from roomie.domain.engine import MatchEngine
from roomie.domain.profiles.survey import build_profile, parse_submission

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.post("", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def submit_survey(
	payload: Dict[str, Any] = Body(...),
	user_id: str = Depends(get_current_user_id),
	engine: MatchEngine = Depends(get_engine),
) -> ProfileResponse:
	# The caller can only write their own profile
	submission = parse_submission({**payload, "user_id": user_id})
	profile = build_profile(submission)
	await engine.store.put(profile)
	logger.info("profiles.submitted", extra={"user_id": user_id, "answers": len(profile.answers)})
	return ProfileResponse(profile=profile.to_document())


@router.get("/{profile_id}", response_model=ProfileResponse)
async def get_profile(
	profile_id: str,
	_: str = Depends(get_current_user_id),
	engine: MatchEngine = Depends(get_engine),
) -> ProfileResponse:
	profile = await engine.store.get(profile_id)
	if profile is None:
		raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="profile_not_found")
	return ProfileResponse(profile=profile.to_document())
