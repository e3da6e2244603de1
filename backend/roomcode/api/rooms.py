"""FastAPI routes for rooms."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, Response, status
from redis.exceptions import RedisError

from roomcode.domain.rooms import RoomManager, outbox, policy, schemas
from roomcode.domain.rooms.models import Room

router = APIRouter(prefix="/api/rooms", tags=["rooms"])

_room_manager = RoomManager()


def get_room_manager() -> RoomManager:
	return _room_manager


def _as_http_error(exc: policy.RoomPolicyError) -> HTTPException:
	return HTTPException(status_code=exc.status_code, detail=exc.detail)


def _summary(room: Room) -> schemas.RoomSummary:
	return schemas.RoomSummary(**room.to_summary())


@router.post("", response_model=schemas.RoomSummary)
async def create_room_endpoint(payload: schemas.RoomCreateRequest) -> schemas.RoomSummary:
	try:
		room = await _room_manager.create_room(payload.creator_id)
	except policy.RoomPolicyError as exc:
		raise _as_http_error(exc) from exc
	return _summary(room)


@router.get("", response_model=list[schemas.RoomSummary])
async def list_rooms_endpoint() -> list[schemas.RoomSummary]:
	rooms = await _room_manager.get_all_rooms()
	return [_summary(room) for room in rooms]


@router.post("/join", response_model=schemas.RoomSummary)
async def join_by_code_endpoint(payload: schemas.JoinByCodeRequest) -> schemas.RoomSummary:
	try:
		room = await _room_manager.join_room(payload.code, payload.member_id)
	except policy.RoomPolicyError as exc:
		raise _as_http_error(exc) from exc
	return _summary(room)


@router.get("/by-id/{room_id}", response_model=schemas.RoomSummary)
async def get_room_endpoint(room_id: str) -> schemas.RoomSummary:
	try:
		room = await _room_manager.get_room(room_id)
	except policy.RoomPolicyError as exc:
		raise _as_http_error(exc) from exc
	return _summary(room)


@router.post("/{code}/join", response_model=schemas.RoomSummary)
async def join_room_endpoint(code: str, payload: schemas.JoinRoomRequest) -> schemas.RoomSummary:
	try:
		room = await _room_manager.join_room(code, payload.member_id)
	except policy.RoomPolicyError as exc:
		raise _as_http_error(exc) from exc
	return _summary(room)


@router.get("/{code}/permissions", response_model=schemas.PermissionsResponse)
async def permissions_endpoint(
	code: str,
	user_id: str = Query(...),
) -> schemas.PermissionsResponse:
	try:
		allowed = await _room_manager.check_permissions(code, user_id)
	except policy.RoomPolicyError as exc:
		raise _as_http_error(exc) from exc
	return schemas.PermissionsResponse(code=code.strip().upper(), user_id=user_id, is_creator=allowed)


@router.post("/{code}/cleanup", response_model=schemas.CleanupResponse)
async def cleanup_endpoint(code: str) -> schemas.CleanupResponse:
	try:
		deleted = await _room_manager.delete_if_empty(code)
	except policy.RoomPolicyError as exc:
		raise _as_http_error(exc) from exc
	return schemas.CleanupResponse(deleted=deleted)


@router.delete("/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_room_endpoint(room_id: str) -> Response:
	try:
		await _room_manager.delete_room(room_id)
	except policy.RoomPolicyError as exc:
		raise _as_http_error(exc) from exc
	return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
	"/{room_id}/creator-left",
	response_model=schemas.SignalAccepted,
	status_code=status.HTTP_202_ACCEPTED,
)
async def creator_left_endpoint(room_id: str) -> schemas.SignalAccepted:
	if not room_id.strip():
		raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid_room_id")
	try:
		await outbox.publish_creator_left(room_id.strip())
	except RedisError as exc:
		raise _as_http_error(policy.StoreUnavailable("publish_creator_left")) from exc
	return schemas.SignalAccepted(room_id=room_id.strip())
