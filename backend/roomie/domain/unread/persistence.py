"""Watermark persistence so unread state survives a restart."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

from roomie.infra.redis import redis_client
from roomie.settings import settings

logger = logging.getLogger(__name__)


class WatermarkStore(Protocol):
	async def load(self, viewer_id: str) -> Dict[str, int]:
		...

	async def save(self, viewer_id: str, conversation_id: str, timestamp: int) -> None:
		...

	async def delete(self, viewer_id: str, conversation_id: Optional[str] = None) -> None:
		...


class JsonWatermarkStore:
	"""Local JSON file: ``{viewer_id: {conversation_id: last_read_ms}}``.

	Writes go to a temp file and are swapped in with `os.replace`. A missing
	or unreadable file loads as empty state.
	"""

	def __init__(self, path: Union[str, Path, None] = None) -> None:
		self.path = Path(path or settings.unread_state_path)
		self._lock = asyncio.Lock()

	def _read(self) -> Dict[str, Dict[str, int]]:
		try:
			raw = json.loads(self.path.read_text(encoding="utf-8"))
		except FileNotFoundError:
			return {}
		except (OSError, ValueError):
			logger.warning("unread.state_unreadable", extra={"path": str(self.path)})
			return {}
		if not isinstance(raw, dict):
			return {}
		state: Dict[str, Dict[str, int]] = {}
		for viewer, marks in raw.items():
			if isinstance(marks, dict):
				state[str(viewer)] = {str(cid): int(ts) for cid, ts in marks.items() if isinstance(ts, (int, float))}
		return state

	def _write(self, state: Dict[str, Dict[str, int]]) -> None:
		self.path.parent.mkdir(parents=True, exist_ok=True)
		tmp = self.path.with_suffix(self.path.suffix + ".tmp")
		tmp.write_text(json.dumps(state, sort_keys=True), encoding="utf-8")
		os.replace(tmp, self.path)

	async def load(self, viewer_id: str) -> Dict[str, int]:
		async with self._lock:
			state = await asyncio.to_thread(self._read)
		return dict(state.get(viewer_id, {}))

	async def save(self, viewer_id: str, conversation_id: str, timestamp: int) -> None:
		async with self._lock:
			state = await asyncio.to_thread(self._read)
			state.setdefault(viewer_id, {})[conversation_id] = int(timestamp)
			await asyncio.to_thread(self._write, state)

	async def delete(self, viewer_id: str, conversation_id: Optional[str] = None) -> None:
		async with self._lock:
			state = await asyncio.to_thread(self._read)
			if conversation_id is None:
				state.pop(viewer_id, None)
			else:
				state.get(viewer_id, {}).pop(conversation_id, None)
			await asyncio.to_thread(self._write, state)


def _redis_key(viewer_id: str) -> str:
	return f"unread:last_read:{viewer_id}"


class RedisWatermarkStore:
	"""Server-side watermarks, one hash per viewer."""

	async def load(self, viewer_id: str) -> Dict[str, int]:
		rows = await redis_client.hgetall(_redis_key(viewer_id))
		return {conversation_id: int(value) for conversation_id, value in rows.items()}

	async def save(self, viewer_id: str, conversation_id: str, timestamp: int) -> None:
		await redis_client.hset(_redis_key(viewer_id), conversation_id, int(timestamp))

	async def delete(self, viewer_id: str, conversation_id: Optional[str] = None) -> None:
		if conversation_id is None:
			await redis_client.delete(_redis_key(viewer_id))
		else:
			await redis_client.hdel(_redis_key(viewer_id), conversation_id)


__all__ = ["JsonWatermarkStore", "RedisWatermarkStore", "WatermarkStore"]
