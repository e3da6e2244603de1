"""Outbox helpers for room-domain events."""

from __future__ import annotations

from typing import Any, Mapping

from roomcode.infra.redis import redis_client
from roomcode.settings import settings

ROOM_EVENT_STREAM = "x:rooms.events"
CREATOR_LEFT_MAXLEN = 10_000


async def append_room_event(event: str, room_id: str, *, user_id: str | None = None, meta: Mapping[str, Any] | None = None) -> None:
	fields: dict[str, Any] = {
		"event": event,
		"room_id": room_id,
	}
	if user_id:
		fields["user_id"] = str(user_id)
	if meta:
		for key, value in meta.items():
			fields[f"meta_{key}"] = str(value)
	await redis_client.xadd(ROOM_EVENT_STREAM, fields)


async def publish_creator_left(room_id: str, *, user_id: str | None = None) -> str:
	"""Append a creator-left signal; the worker consuming the stream deletes the room."""
	fields: dict[str, Any] = {"room_id": room_id}
	if user_id:
		fields["user_id"] = str(user_id)
	return await redis_client.xadd(settings.creator_left_stream, fields, maxlen=CREATOR_LEFT_MAXLEN, approximate=True)
