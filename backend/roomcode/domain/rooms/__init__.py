"""Rooms domain exports."""

from .service import RoomManager

__all__ = ["RoomManager"]
