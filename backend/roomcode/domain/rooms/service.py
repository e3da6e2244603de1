"""Room lifecycle service layer."""

from __future__ import annotations

import logging
import random
from typing import Any, Awaitable, List, Mapping, Optional

from redis.exceptions import RedisError

from roomcode.domain.rooms import codes, models, outbox, policy, sockets
from roomcode.domain.rooms.store import RoomStore, build_store
from roomcode.obs import metrics as obs_metrics
from roomcode.settings import Settings, settings

logger = logging.getLogger(__name__)


class RoomManager:
	"""Creation, membership, permission and deletion rules for rooms.

	Holds no room state between calls; every operation goes back to the store.
	"""

	def __init__(
		self,
		store: RoomStore | None = None,
		*,
		config: Settings | None = None,
		rng: Optional[random.Random] = None,
	) -> None:
		self._config = config or settings
		self._store = store or build_store(self._config)
		self._rng = rng

	@property
	def store(self) -> RoomStore:
		return self._store

	async def create_room(self, creator_id: str) -> models.Room:
		creator_id = policy.ensure_user_id(
			creator_id, field="creator_id", max_length=self._config.room_id_max_length
		)
		code = await self._allocate_code()
		room = await self._store.save(models.Room(code=code, creator_id=creator_id))
		logger.info("room created", extra={"room_id": room.id, "code": code, "creator_id": creator_id})
		await self._record_event("room_created", room.id, user_id=creator_id, meta={"code": code})
		obs_metrics.inc_room_created()
		return room

	async def join_room(self, code: str, member_id: str) -> models.Room:
		code = policy.ensure_code(code, length=self._config.room_code_length)
		member_id = policy.ensure_user_id(
			member_id, field="member_id", max_length=self._config.room_id_max_length
		)
		room = policy.ensure_found(await self._store.find_by_code(code), code)
		updated, added = await self._store.add_member(room.id, member_id)
		# The room can be deleted between lookup and write
		updated = policy.ensure_found(updated, code)
		if not added:
			obs_metrics.inc_room_join("already_member")
			return updated
		await self._record_event("member_joined", updated.id, user_id=member_id)
		await self._fanout(
			sockets.emit_member_event(
				"room:member_joined",
				updated.id,
				{"room_id": updated.id, "user_id": member_id},
			),
			"room:member_joined",
			updated.id,
		)
		obs_metrics.inc_room_join("joined")
		return updated

	async def check_permissions(self, code: str, user_id: str) -> bool:
		code = policy.ensure_code(code, length=self._config.room_code_length)
		user_id = policy.ensure_user_id(user_id, field="user_id", max_length=self._config.room_id_max_length)
		room = policy.ensure_found(await self._store.find_by_code(code), code)
		allowed = room.is_creator(user_id)
		obs_metrics.inc_permission_check(allowed)
		return allowed

	async def delete_room(self, room_id: str) -> None:
		room_id = policy.ensure_room_id(room_id, max_length=self._config.room_id_max_length)
		if not await self._remove(room_id, reason="deleted"):
			raise policy.RoomNotFound(room_id)

	async def on_creator_left(self, room_id: str) -> bool:
		"""Delete the room whose creator left, whoever else is still in it.

		Signals may be redelivered, so an unknown room is not an error.
		"""
		room_id = policy.ensure_room_id(room_id, max_length=self._config.room_id_max_length)
		deleted = await self._remove(room_id, reason="creator_left")
		if not deleted:
			logger.info("creator-left signal for unknown room", extra={"room_id": room_id})
		obs_metrics.inc_creator_left("deleted" if deleted else "missing")
		return deleted

	async def delete_if_empty(self, code: str) -> bool:
		code = policy.ensure_code(code, length=self._config.room_code_length)
		room = policy.ensure_found(await self._store.find_by_code(code), code)
		if room.member_ids:
			return False
		return await self._remove(room.id, reason="empty")

	async def get_all_rooms(self) -> List[models.Room]:
		return list(await self._store.find_all())

	async def get_room(self, room_id: str) -> models.Room:
		room_id = policy.ensure_room_id(room_id, max_length=self._config.room_id_max_length)
		return policy.ensure_found(await self._store.find_by_id(room_id), room_id)

	async def get_room_by_code(self, code: str) -> models.Room:
		code = policy.ensure_code(code, length=self._config.room_code_length)
		return policy.ensure_found(await self._store.find_by_code(code), code)

	async def _allocate_code(self) -> str:
		attempts = self._config.room_code_max_attempts
		for _ in range(attempts):
			code = codes.generate_room_code(self._config.room_code_length, rng=self._rng)
			if await self._store.find_by_code(code) is None:
				return code
			obs_metrics.inc_room_code_collision()
			logger.warning("room code collision, regenerating", extra={"code": code})
		raise policy.CodeSpaceExhausted(attempts)

	async def _remove(self, room_id: str, *, reason: str) -> bool:
		if not await self._store.delete_by_id(room_id):
			return False
		logger.info("room deleted", extra={"room_id": room_id, "reason": reason})
		await self._record_event("room_deleted", room_id, meta={"reason": reason})
		await self._fanout(sockets.emit_room_closed(room_id, reason), "room:closed", room_id)
		obs_metrics.inc_room_deleted(reason)
		return True

	async def _record_event(
		self,
		event: str,
		room_id: str,
		*,
		user_id: str | None = None,
		meta: Mapping[str, Any] | None = None,
	) -> None:
		# Called after the store write has committed; a lost event must not fail the operation
		try:
			await outbox.append_room_event(event, room_id, user_id=user_id, meta=meta)
		except RedisError:
			logger.exception("room event not recorded", extra={"event": event, "room_id": room_id})

	async def _fanout(self, send: Awaitable[None], event: str, room_id: str) -> None:
		try:
			await send
		except Exception:  # noqa: BLE001 - socket delivery is best-effort
			logger.exception("room fanout failed", extra={"event": event, "room_id": room_id})
