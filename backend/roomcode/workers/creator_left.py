"""Worker that deletes rooms when their creator leaves."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Protocol

logger = logging.getLogger(__name__)


class RedisStream(Protocol):
	async def xread(
		self,
		streams: Mapping[str, str],
		count: int,
		block: int,
	) -> list[tuple[str, list[tuple[str, Mapping[Any, Any]]]]]:
		...

	async def xrevrange(self, name: str, max: str = "+", min: str = "-", count: int | None = None) -> list[tuple[Any, Mapping[Any, Any]]]:
		...


CreatorLeftHandler = Callable[[str], Awaitable[Any]]


@dataclass
class CreatorLeftWorker:
	"""Consumes creator-left signals and hands each room id to the handler.

	With the default `last_id` of "$" the worker starts after the newest entry
	present on its first poll; pass "0-0" to replay the retained stream.
	"""

	redis: RedisStream
	handler: CreatorLeftHandler
	stream_key: str = "x:rooms.creator_left"
	batch_size: int = 100
	block_ms: int = 5000
	last_id: str = "$"

	async def run_once(self) -> int:
		await self._resolve_start()
		messages = await self.redis.xread({self.stream_key: self.last_id}, count=self.batch_size, block=self.block_ms)
		if not messages:
			return 0
		handled = 0
		for _stream, entries in messages:
			for entry_id, payload in entries:
				event = _decode(payload)
				if await self._handle_event(entry_id, event):
					handled += 1
			if entries:
				self.last_id = _as_str(entries[-1][0])
		return handled

	async def _resolve_start(self) -> None:
		# "$" is pinned to a concrete id so entries added between polls are not skipped
		if self.last_id != "$":
			return
		latest = await self.redis.xrevrange(self.stream_key, count=1)
		self.last_id = _as_str(latest[0][0]) if latest else "0-0"

	async def _handle_event(self, entry_id: Any, event: Mapping[str, Any]) -> bool:
		room_id = str(event.get("room_id") or "").strip()
		if not room_id:
			logger.debug("skipping creator-left event without room id", extra={"entry_id": _as_str(entry_id)})
			return False
		try:
			await self.handler(room_id)
		except Exception:  # noqa: BLE001 - one bad signal must not stall the stream
			logger.exception("creator-left handler failed", extra={"room_id": room_id})
			return False
		return True


def _as_str(value: Any) -> str:
	if isinstance(value, (bytes, bytearray)):
		return value.decode("utf-8")
	return str(value)


def _decode(payload: Mapping[Any, Any]) -> Mapping[str, Any]:
	result: dict[str, Any] = {}
	for key, value in payload.items():
		result[_as_str(key)] = _as_str(value) if isinstance(value, (bytes, bytearray)) else value
	return result
