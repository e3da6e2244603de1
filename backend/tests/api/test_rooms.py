import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from roomcode.api.rooms import get_room_manager
from roomcode.infra.redis import set_redis_client
from roomcode.settings import settings
from roomcode.workers.creator_left import CreatorLeftWorker


async def _create(api_client, creator_id: str = "u1") -> dict:
	resp = await api_client.post("/api/rooms", json={"creator_id": creator_id})
	assert resp.status_code == 200, resp.text
	return resp.json()


@pytest.mark.asyncio
async def test_room_lifecycle_flow(api_client, fake_redis):
	room = await _create(api_client)
	assert len(room["code"]) == 4
	assert room["member_ids"] == []

	for _ in range(2):
		resp = await api_client.post(f"/api/rooms/{room['code']}/join", json={"member_id": "u2"})
		assert resp.status_code == 200
	assert resp.json()["member_ids"] == ["u2"]

	resp = await api_client.get(f"/api/rooms/{room['code']}/permissions", params={"user_id": "u1"})
	assert resp.json() == {"code": room["code"], "user_id": "u1", "is_creator": True}
	resp = await api_client.get(f"/api/rooms/{room['code']}/permissions", params={"user_id": "u2"})
	assert resp.json()["is_creator"] is False

	resp = await api_client.get("/api/rooms")
	assert [item["id"] for item in resp.json()] == [room["id"]]

	resp = await api_client.post(f"/api/rooms/{room['id']}/creator-left")
	assert resp.status_code == 202
	assert resp.json() == {"room_id": room["id"], "accepted": True}

	worker = CreatorLeftWorker(
		redis=fake_redis,
		handler=get_room_manager().on_creator_left,
		stream_key=settings.creator_left_stream,
		block_ms=10,
		last_id="0-0",
	)
	assert await worker.run_once() == 1

	resp = await api_client.post(f"/api/rooms/{room['code']}/join", json={"member_id": "u3"})
	assert resp.status_code == 404
	assert (await api_client.get("/api/rooms")).json() == []


@pytest.mark.asyncio
async def test_join_by_code_body_accepts_camel_case(api_client):
	room = await _create(api_client)
	resp = await api_client.post(
		"/api/rooms/join",
		json={"code": room["code"].lower(), "memberId": "u2"},
	)
	assert resp.status_code == 200
	assert resp.json()["member_ids"] == ["u2"]


@pytest.mark.asyncio
async def test_create_accepts_camel_case(api_client):
	resp = await api_client.post("/api/rooms", json={"creatorId": "u9"})
	assert resp.status_code == 200
	assert resp.json()["creator_id"] == "u9"


@pytest.mark.asyncio
async def test_unknown_code_maps_to_404_with_request_id(api_client):
	resp = await api_client.post("/api/rooms/ZZZZ/join", json={"member_id": "u2"})
	assert resp.status_code == 404
	body = resp.json()
	assert body["detail"] == "room_not_found"
	assert body["request_id"]
	assert resp.headers["X-Request-Id"] == body["request_id"]


@pytest.mark.asyncio
async def test_malformed_code_maps_to_400(api_client):
	resp = await api_client.get("/api/rooms/A1/permissions", params={"user_id": "u1"})
	assert resp.status_code == 400
	assert resp.json()["detail"] == "invalid_code"


@pytest.mark.asyncio
async def test_blank_creator_maps_to_400(api_client):
	resp = await api_client.post("/api/rooms", json={"creator_id": "  "})
	assert resp.status_code == 400
	assert resp.json()["detail"] == "invalid_creator_id"


@pytest.mark.asyncio
async def test_missing_body_field_is_validation_error(api_client):
	resp = await api_client.post("/api/rooms", json={})
	assert resp.status_code == 422
	assert resp.json()["detail"] == "validation_error"


@pytest.mark.asyncio
async def test_get_room_by_id(api_client):
	room = await _create(api_client)
	resp = await api_client.get(f"/api/rooms/by-id/{room['id']}")
	assert resp.status_code == 200
	assert resp.json()["code"] == room["code"]
	resp = await api_client.get("/api/rooms/by-id/missing")
	assert resp.status_code == 404


@pytest.mark.asyncio
async def test_delete_room(api_client):
	room = await _create(api_client)
	resp = await api_client.delete(f"/api/rooms/{room['id']}")
	assert resp.status_code == 204
	resp = await api_client.delete(f"/api/rooms/{room['id']}")
	assert resp.status_code == 404


@pytest.mark.asyncio
async def test_cleanup_only_removes_empty_rooms(api_client):
	empty = await _create(api_client, "u1")
	busy = await _create(api_client, "u2")
	await api_client.post(f"/api/rooms/{busy['code']}/join", json={"member_id": "u3"})

	resp = await api_client.post(f"/api/rooms/{empty['code']}/cleanup")
	assert resp.json() == {"deleted": True}
	resp = await api_client.post(f"/api/rooms/{busy['code']}/cleanup")
	assert resp.json() == {"deleted": False}


@pytest.mark.asyncio
async def test_creator_left_publishes_signal(api_client, fake_redis):
	resp = await api_client.post("/api/rooms/some-room/creator-left")
	assert resp.status_code == 202
	entries = await fake_redis.xrange(settings.creator_left_stream)
	assert [fields["room_id"] for _id, fields in entries] == ["some-room"]


@pytest.mark.asyncio
async def test_health_and_metrics(api_client):
	resp = await api_client.get("/health/live")
	assert resp.json() == {"status": "ok"}

	resp = await api_client.get("/health/ready")
	assert resp.status_code == 200
	assert resp.json()["checks"]["postgres"]["skipped"] is True

	await _create(api_client)
	resp = await api_client.get("/metrics")
	assert resp.status_code == 200
	assert "rooms_created_total" in resp.text


@pytest.mark.asyncio
async def test_metrics_require_token_when_private(api_client, monkeypatch):
	monkeypatch.setattr(settings, "obs_metrics_public", False)
	monkeypatch.setattr(settings, "obs_admin_token", "secret")
	resp = await api_client.get("/metrics")
	assert resp.status_code == 403
	resp = await api_client.get("/metrics", headers={"X-Admin-Token": "secret"})
	assert resp.status_code == 200


class _DownRedis:
	async def xadd(self, *args, **kwargs):
		raise RedisConnectionError("redis unavailable")


@pytest.mark.asyncio
async def test_room_writes_succeed_while_event_stream_is_down(api_client):
	set_redis_client(_DownRedis())
	room = await _create(api_client)
	resp = await api_client.post(f"/api/rooms/{room['code']}/join", json={"member_id": "u2"})
	assert resp.status_code == 200
	resp = await api_client.delete(f"/api/rooms/{room['id']}")
	assert resp.status_code == 204


@pytest.mark.asyncio
async def test_creator_left_maps_stream_outage_to_503(api_client):
	set_redis_client(_DownRedis())
	resp = await api_client.post("/api/rooms/some-room/creator-left")
	assert resp.status_code == 503
	assert resp.json()["detail"] == "store_unavailable"
