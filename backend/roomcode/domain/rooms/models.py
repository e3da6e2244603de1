"""Domain models for code-addressed rooms."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import List


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


@dataclass(slots=True)
class Room:
	"""Persisted representation of a room.

	`id` is empty until the store assigns one on first save. `member_ids`
	keeps join order but never holds the same user twice.
	"""

	code: str
	creator_id: str
	id: str = ""
	member_ids: List[str] = field(default_factory=list)
	created_at: datetime = field(default_factory=_utcnow)
	updated_at: datetime = field(default_factory=_utcnow)

	def is_creator(self, user_id: str) -> bool:
		return self.creator_id == user_id

	def has_member(self, user_id: str) -> bool:
		return user_id in self.member_ids

	def add_member(self, user_id: str) -> bool:
		"""Append `user_id` unless already present; return whether it was added."""
		if self.has_member(user_id):
			return False
		self.member_ids.append(user_id)
		self.updated_at = _utcnow()
		return True

	def copy(self) -> "Room":
		return replace(self, member_ids=list(self.member_ids))

	def to_summary(self) -> dict:
		"""Return a dictionary payload suitable for the RoomSummary schema."""
		return {
			"id": self.id,
			"code": self.code,
			"creator_id": self.creator_id,
			"member_ids": list(self.member_ids),
			"created_at": self.created_at,
		}
