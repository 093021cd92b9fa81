"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from roomie.api import chat, matches, ops, presence, profiles
from roomie.api.errors import install_error_handlers
from roomie.domain.engine import MatchEngine
from roomie.obs import init as obs_init
from roomie.settings import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	engine = getattr(app.state, "engine", None) or MatchEngine()
	app.state.engine = engine
	await engine.start()
	try:
		# Heal lastMessage metadata left behind by partial writes
		await engine.chat.resync_last_messages()
	except Exception:
		logger.warning("main.chat_resync_failed", exc_info=True)
	try:
		yield
	finally:
		await engine.stop()


app = FastAPI(title="RoomieConnect Matching", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(getattr(settings, "cors_allow_origins", []))
if not allow_origins:
	allow_origins = ["http://localhost:3000"] if settings.is_dev() else ["https://app.roomieconnect.example"]

# Starlette disallows wildcard '*' with allow_credentials=True. Replace '*' with explicit origins.
if "*" in allow_origins:
	if settings.is_dev():
		allow_origins = [
			"http://localhost:3000",
			"http://127.0.0.1:3000",
			"http://localhost:5173",
			"http://127.0.0.1:5173",
		]
	else:
		allow_origins = ["https://app.roomieconnect.example"]

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)
obs_init(app)

app.include_router(profiles.router)
app.include_router(matches.router)
app.include_router(chat.router)
app.include_router(presence.router)
app.include_router(ops.router)
