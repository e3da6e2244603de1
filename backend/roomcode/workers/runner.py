"""Utilities for wiring room workers into an event loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from redis.asyncio import Redis

from roomcode.domain.rooms.service import RoomManager
from roomcode.settings import settings
from roomcode.workers.creator_left import CreatorLeftWorker

logger = logging.getLogger(__name__)


async def _run_forever(worker, delay: float) -> None:
	while True:
		try:
			await worker.run_once()
		except asyncio.CancelledError:
			raise
		except Exception:  # noqa: BLE001 - keep consuming after transient redis errors
			logger.exception("worker iteration failed", extra={"worker": type(worker).__name__})
		await asyncio.sleep(delay)


def spawn_workers(
	redis_client: Redis,
	manager: RoomManager,
	*,
	poll_interval: float | None = None,
) -> Iterable[asyncio.Task]:
	"""Create asyncio tasks for the room workers."""
	delay = settings.worker_poll_interval if poll_interval is None else poll_interval
	creator_left = CreatorLeftWorker(
		redis=redis_client,
		handler=manager.on_creator_left,
		stream_key=settings.creator_left_stream,
	)
	return [
		asyncio.create_task(_run_forever(creator_left, delay), name="rooms-creator-left"),
	]
