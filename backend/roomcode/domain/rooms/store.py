"""Room persistence: the RoomStore contract and its implementations."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Awaitable, Callable, Dict, List, Optional, Protocol, Tuple

import asyncpg
import ulid

from roomcode.domain.rooms import models, policy
from roomcode.infra import postgres
from roomcode.settings import Settings


class RoomStore(Protocol):
	async def save(self, room: models.Room) -> models.Room:
		...

	async def find_by_code(self, code: str) -> Optional[models.Room]:
		...

	async def find_by_id(self, room_id: str) -> Optional[models.Room]:
		...

	async def find_all(self) -> List[models.Room]:
		...

	async def delete_by_id(self, room_id: str) -> bool:
		...

	async def add_member(self, room_id: str, member_id: str) -> Tuple[Optional[models.Room], bool]:
		...


def _new_room_id() -> str:
	return str(ulid.new())


class MemoryRoomStore:
	"""Process-local store; every read hands out a copy."""

	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self.rooms: Dict[str, models.Room] = {}

	async def save(self, room: models.Room) -> models.Room:
		async with self._lock:
			stored = room.copy()
			if not stored.id:
				stored.id = _new_room_id()
			else:
				stored.updated_at = datetime.now(timezone.utc)
			self.rooms[stored.id] = stored
			return stored.copy()

	async def find_by_code(self, code: str) -> Optional[models.Room]:
		async with self._lock:
			for room in self.rooms.values():
				if room.code == code:
					return room.copy()
			return None

	async def find_by_id(self, room_id: str) -> Optional[models.Room]:
		async with self._lock:
			room = self.rooms.get(room_id)
			return room.copy() if room else None

	async def find_all(self) -> List[models.Room]:
		async with self._lock:
			return [room.copy() for room in self.rooms.values()]

	async def delete_by_id(self, room_id: str) -> bool:
		async with self._lock:
			return self.rooms.pop(room_id, None) is not None

	async def add_member(self, room_id: str, member_id: str) -> Tuple[Optional[models.Room], bool]:
		async with self._lock:
			room = self.rooms.get(room_id)
			if room is None:
				return None, False
			added = room.add_member(member_id)
			return room.copy(), added

	async def clear(self) -> None:
		async with self._lock:
			self.rooms.clear()


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS rooms (
	id TEXT PRIMARY KEY,
	code TEXT NOT NULL,
	creator_id TEXT NOT NULL,
	member_ids TEXT[] NOT NULL DEFAULT '{}',
	created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
	updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS rooms_code_idx ON rooms (code);
"""

_STORE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)


class PostgresRoomStore:
	"""asyncpg-backed store; failures surface as StoreUnavailable."""

	def __init__(self, pool_getter: Callable[[], Awaitable[asyncpg.Pool]] = postgres.get_pool) -> None:
		self._pool_getter = pool_getter

	@asynccontextmanager
	async def _connection(self, operation: str) -> AsyncIterator[asyncpg.Connection]:
		try:
			pool = await self._pool_getter()
			async with pool.acquire() as conn:
				yield conn
		except _STORE_ERRORS as exc:
			raise policy.StoreUnavailable(operation) from exc

	async def ensure_schema(self) -> None:
		async with self._connection("ensure_schema") as conn:
			await conn.execute(SCHEMA_SQL)

	async def save(self, room: models.Room) -> models.Room:
		room_id = room.id or _new_room_id()
		async with self._connection("save") as conn:
			row = await conn.fetchrow(
				"""
				INSERT INTO rooms (id, code, creator_id, member_ids, created_at, updated_at)
				VALUES ($1,$2,$3,$4,$5,NOW())
				ON CONFLICT (id) DO UPDATE
				SET code=EXCLUDED.code, member_ids=EXCLUDED.member_ids, updated_at=NOW()
				RETURNING *
				""",
				room_id,
				room.code,
				room.creator_id,
				list(room.member_ids),
				room.created_at,
			)
		return _row_to_room(row)

	async def find_by_code(self, code: str) -> Optional[models.Room]:
		async with self._connection("find_by_code") as conn:
			row = await conn.fetchrow(
				"SELECT * FROM rooms WHERE code=$1 ORDER BY created_at LIMIT 1",
				code,
			)
		return _row_to_room(row) if row else None

	async def find_by_id(self, room_id: str) -> Optional[models.Room]:
		async with self._connection("find_by_id") as conn:
			row = await conn.fetchrow("SELECT * FROM rooms WHERE id=$1", room_id)
		return _row_to_room(row) if row else None

	async def find_all(self) -> List[models.Room]:
		async with self._connection("find_all") as conn:
			rows = await conn.fetch("SELECT * FROM rooms ORDER BY created_at")
		return [_row_to_room(row) for row in rows]

	async def delete_by_id(self, room_id: str) -> bool:
		async with self._connection("delete_by_id") as conn:
			result = await conn.execute("DELETE FROM rooms WHERE id=$1", room_id)
		# asyncpg returns the command tag, e.g. "DELETE 1"
		return result.split()[-1] != "0"

	async def add_member(self, room_id: str, member_id: str) -> Tuple[Optional[models.Room], bool]:
		async with self._connection("add_member") as conn:
			row = await conn.fetchrow(
				"""
				UPDATE rooms
				SET member_ids=array_append(member_ids, $2), updated_at=NOW()
				WHERE id=$1 AND NOT ($2 = ANY(member_ids))
				RETURNING *
				""",
				room_id,
				member_id,
			)
			if row:
				return _row_to_room(row), True
			row = await conn.fetchrow("SELECT * FROM rooms WHERE id=$1", room_id)
		return (_row_to_room(row), False) if row else (None, False)


def _row_to_room(row: asyncpg.Record) -> models.Room:
	return models.Room(
		id=str(row["id"]),
		code=row["code"],
		creator_id=str(row["creator_id"]),
		member_ids=[str(member) for member in (row["member_ids"] or [])],
		created_at=row["created_at"],
		updated_at=row["updated_at"],
	)


_MEMORY = MemoryRoomStore()


def build_store(config: Settings) -> RoomStore:
	if config.room_store_backend == "postgres":
		return PostgresRoomStore()
	return _MEMORY


async def reset_memory_state() -> None:
	"""Test helper to clear in-memory store state."""
	await _MEMORY.clear()
