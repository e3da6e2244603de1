import pytest

from roomcode.domain.rooms import outbox, policy
from roomcode.domain.rooms.service import RoomManager
from roomcode.domain.rooms.store import MemoryRoomStore
from roomcode.settings import settings
from roomcode.workers.creator_left import CreatorLeftWorker


def _worker(fake_redis, handler) -> CreatorLeftWorker:
	return CreatorLeftWorker(
		redis=fake_redis,
		handler=handler,
		stream_key=settings.creator_left_stream,
		block_ms=10,
		last_id="0-0",
	)


@pytest.mark.asyncio
async def test_worker_deletes_room_named_by_signal(fake_redis):
	manager = RoomManager(MemoryRoomStore())
	room = await manager.create_room("u1")
	await manager.join_room(room.code, "u2")
	await outbox.publish_creator_left(room.id, user_id="u1")

	worker = _worker(fake_redis, manager.on_creator_left)
	assert await worker.run_once() == 1

	with pytest.raises(policy.RoomNotFound):
		await manager.get_room(room.id)
	assert worker.last_id != "0-0"


@pytest.mark.asyncio
async def test_worker_does_not_replay_consumed_entries(fake_redis):
	seen = []

	async def handler(room_id: str) -> None:
		seen.append(room_id)

	await outbox.publish_creator_left("room-1")
	worker = _worker(fake_redis, handler)
	await worker.run_once()
	await outbox.publish_creator_left("room-2")
	await worker.run_once()
	assert seen == ["room-1", "room-2"]


@pytest.mark.asyncio
async def test_worker_skips_entries_without_room_id(fake_redis):
	seen = []

	async def handler(room_id: str) -> None:
		seen.append(room_id)

	await fake_redis.xadd(settings.creator_left_stream, {"user_id": "u1"})
	await outbox.publish_creator_left("room-1")
	worker = _worker(fake_redis, handler)
	assert await worker.run_once() == 1
	assert seen == ["room-1"]


@pytest.mark.asyncio
async def test_worker_continues_after_handler_failure(fake_redis):
	seen = []

	async def handler(room_id: str) -> None:
		if room_id == "bad":
			raise RuntimeError("boom")
		seen.append(room_id)

	await outbox.publish_creator_left("bad")
	await outbox.publish_creator_left("good")
	worker = _worker(fake_redis, handler)
	assert await worker.run_once() == 1
	assert seen == ["good"]


@pytest.mark.asyncio
async def test_worker_idle_stream_returns_zero(fake_redis):
	async def handler(room_id: str) -> None:
		raise AssertionError("should not be called")

	worker = _worker(fake_redis, handler)
	assert await worker.run_once() == 0
	assert worker.last_id == "0-0"


@pytest.mark.asyncio
async def test_worker_starts_after_existing_backlog(fake_redis):
	seen = []

	async def handler(room_id: str) -> None:
		seen.append(room_id)

	await outbox.publish_creator_left("stale")
	worker = CreatorLeftWorker(redis=fake_redis, handler=handler, stream_key=settings.creator_left_stream, block_ms=10)
	assert await worker.run_once() == 0
	assert worker.last_id != "$"

	await outbox.publish_creator_left("fresh")
	assert await worker.run_once() == 1
	assert seen == ["fresh"]


@pytest.mark.asyncio
async def test_worker_on_empty_stream_picks_up_first_signal(fake_redis):
	seen = []

	async def handler(room_id: str) -> None:
		seen.append(room_id)

	worker = CreatorLeftWorker(redis=fake_redis, handler=handler, stream_key=settings.creator_left_stream, block_ms=10)
	assert await worker.run_once() == 0
	await outbox.publish_creator_left("room-1")
	assert await worker.run_once() == 1
	assert seen == ["room-1"]
