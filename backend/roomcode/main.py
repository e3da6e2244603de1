"""FastAPI application entrypoint."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from roomcode.api import ops, rooms
from roomcode.api.errors import install_error_handlers
from roomcode.domain.rooms.sockets import RoomsNamespace, set_namespace as set_rooms_namespace
from roomcode.domain.rooms.store import PostgresRoomStore
from roomcode.infra import postgres
from roomcode.infra.redis import redis_client
from roomcode.obs import init as obs_init
from roomcode.settings import settings
from roomcode.workers import spawn_workers

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	manager = rooms.get_room_manager()
	store = manager.store
	if isinstance(store, PostgresRoomStore):
		await postgres.init_pool()
		await store.ensure_schema()
	worker_tasks: list[asyncio.Task] = []
	if settings.room_workers_enabled:
		worker_tasks.extend(spawn_workers(redis_client, manager))
	logger.info(
		"roomcode started",
		extra={"store_backend": settings.room_store_backend, "workers": len(worker_tasks)},
	)
	try:
		yield
	finally:
		for task in worker_tasks:
			task.cancel()
		if worker_tasks:
			await asyncio.gather(*worker_tasks, return_exceptions=True)
		await postgres.close_pool()


app = FastAPI(title="Roomcode API", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(getattr(settings, "cors_allow_origins", []))
if not allow_origins:
	allow_origins = ["http://localhost:3000"]

# Starlette disallows wildcard '*' with allow_credentials=True. Replace '*' with explicit origins.
if "*" in allow_origins:
	allow_origins = [
		"http://localhost:3000",
		"http://127.0.0.1:3000",
	]

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

# Use the same allowed origins for Socket.IO as for the REST API
sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=allow_origins)
rooms_namespace = RoomsNamespace(rooms.get_room_manager())
sio.register_namespace(rooms_namespace)
set_rooms_namespace(rooms_namespace)
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)
obs_init(app)

app.include_router(rooms.router)
app.include_router(ops.router)


if __name__ == "__main__":
	import uvicorn

	uvicorn.run("roomcode.main:socket_app", host="0.0.0.0", port=8000)
