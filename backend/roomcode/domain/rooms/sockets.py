"""Socket.IO namespace for room fanout and creator presence."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Optional, Set

import socketio
from redis.exceptions import RedisError

from roomcode.domain.rooms import outbox, policy
from roomcode.obs import metrics as obs_metrics

if TYPE_CHECKING:  # pragma: no cover - type hints only
	from roomcode.domain.rooms.service import RoomManager

logger = logging.getLogger(__name__)

_namespace: "RoomsNamespace" | None = None


class RoomsNamespace(socketio.AsyncNamespace):
	"""Tracks which rooms each socket watches.

	When a socket belonging to a room's creator disconnects, a creator-left
	signal is published for that room.
	"""

	def __init__(self, manager: "RoomManager") -> None:
		super().__init__("/rooms")
		self._manager = manager
		self.users: Dict[str, str] = {}
		self.watching: Dict[str, Set[str]] = {}

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		auth_payload = auth or {}
		user_id = str(auth_payload.get("user_id") or auth_payload.get("userId") or "").strip()
		if not user_id:
			raise ConnectionRefusedError("missing_user_id")
		obs_metrics.socket_connected(self.namespace)
		self.users[sid] = user_id
		self.watching[sid] = set()
		await self.emit("rooms:ack", {"ok": True}, room=sid)

	async def on_disconnect(self, sid: str, *args) -> None:
		user_id = self.users.pop(sid, None)
		watched = self.watching.pop(sid, set())
		if user_id is None:
			return
		obs_metrics.socket_disconnected(self.namespace)
		for room_id in watched:
			try:
				room = await self._manager.get_room(room_id)
			except policy.RoomNotFound:
				continue
			if room.is_creator(user_id):
				logger.info("creator disconnected", extra={"room_id": room_id, "creator_id": user_id})
				try:
					await outbox.publish_creator_left(room_id, user_id=user_id)
				except RedisError:
					logger.exception("creator-left signal not published", extra={"room_id": room_id})

	async def on_room_watch(self, sid: str, payload: dict) -> None:
		obs_metrics.socket_event(self.namespace, "room_watch")
		if sid not in self.users:
			raise ConnectionRefusedError("unauthenticated")
		room_id = str(payload.get("room_id") or "").strip()
		if not room_id:
			return
		self.watching[sid].add(room_id)
		await self.enter_room(sid, self.room_channel(room_id))

	async def on_room_unwatch(self, sid: str, payload: dict) -> None:
		obs_metrics.socket_event(self.namespace, "room_unwatch")
		if sid not in self.users:
			raise ConnectionRefusedError("unauthenticated")
		room_id = str(payload.get("room_id") or "").strip()
		if not room_id:
			return
		self.watching[sid].discard(room_id)
		await self.leave_room(sid, self.room_channel(room_id))

	@staticmethod
	def room_channel(room_id: str) -> str:
		return f"room:{room_id}"


def set_namespace(namespace: RoomsNamespace | None) -> None:
	global _namespace
	_namespace = namespace


async def emit_member_event(event: str, room_id: str, payload: dict) -> None:
	if _namespace is None:
		return
	obs_metrics.socket_event(_namespace.namespace, event)
	await _namespace.emit(event, payload, room=RoomsNamespace.room_channel(room_id))


async def emit_room_closed(room_id: str, reason: str) -> None:
	if _namespace is None:
		return
	obs_metrics.socket_event(_namespace.namespace, "room:closed")
	await _namespace.emit(
		"room:closed",
		{"room_id": room_id, "reason": reason},
		room=RoomsNamespace.room_channel(room_id),
	)
