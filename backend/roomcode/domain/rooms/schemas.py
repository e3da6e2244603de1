"""Pydantic schemas for the rooms API."""

from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import AliasChoices, BaseModel, Field


class RoomCreateRequest(BaseModel):
	creator_id: str = Field(..., validation_alias=AliasChoices("creator_id", "creatorId"))


class JoinRoomRequest(BaseModel):
	member_id: str = Field(..., validation_alias=AliasChoices("member_id", "memberId"))


class JoinByCodeRequest(BaseModel):
	code: str
	member_id: str = Field(..., validation_alias=AliasChoices("member_id", "memberId"))


class RoomSummary(BaseModel):
	id: str
	code: str
	creator_id: str
	member_ids: List[str] = Field(default_factory=list)
	created_at: datetime


class PermissionsResponse(BaseModel):
	code: str
	user_id: str
	is_creator: bool


class CleanupResponse(BaseModel):
	deleted: bool


class SignalAccepted(BaseModel):
	room_id: str
	accepted: bool = True
