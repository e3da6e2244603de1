"""Policy helpers and error types for rooms."""

from __future__ import annotations

from typing import Optional

from roomcode.domain.rooms import codes, models


class RoomPolicyError(RuntimeError):
	def __init__(self, code: str, *, status_code: int = 400, message: str | None = None) -> None:
		super().__init__(message or code)
		self.code = code
		self.status_code = status_code
		self.detail = message or code


class RoomNotFound(RoomPolicyError):
	def __init__(self, lookup: str) -> None:
		super().__init__("room_not_found", status_code=404, message=f"room {lookup} not found")
		self.detail = "room_not_found"
		self.lookup = lookup


class InvalidInput(RoomPolicyError):
	def __init__(self, field: str, reason: str = "invalid") -> None:
		super().__init__(f"invalid_{field}", status_code=400, message=f"{field}: {reason}")
		self.detail = f"invalid_{field}"
		self.field = field


class StoreUnavailable(RoomPolicyError):
	def __init__(self, operation: str) -> None:
		super().__init__("store_unavailable", status_code=503, message=f"room store failed during {operation}")
		self.detail = "store_unavailable"
		self.operation = operation


class CodeSpaceExhausted(RoomPolicyError):
	def __init__(self, attempts: int) -> None:
		super().__init__(
			"code_space_exhausted",
			status_code=503,
			message=f"no free room code after {attempts} attempts",
		)
		self.detail = "code_space_exhausted"
		self.attempts = attempts


def ensure_user_id(value: Optional[str], *, field: str, max_length: int) -> str:
	if value is None:
		raise InvalidInput(field, "missing")
	text = str(value).strip()
	if not text:
		raise InvalidInput(field, "empty")
	if len(text) > max_length:
		raise InvalidInput(field, "too_long")
	return text


def ensure_code(value: Optional[str], *, length: int) -> str:
	if value is None:
		raise InvalidInput("code", "missing")
	code = codes.normalise_code(str(value))
	if not codes.is_valid_code(code, length):
		raise InvalidInput("code", "malformed")
	return code


def ensure_room_id(value: Optional[str], *, max_length: int) -> str:
	return ensure_user_id(value, field="room_id", max_length=max_length)


def ensure_found(room: models.Room | None, lookup: str) -> models.Room:
	if room is None:
		raise RoomNotFound(lookup)
	return room
