"""WebSocket room host: exposes cardtable rooms to table clients."""

from .server import ClientSession, RoomHostError, RoomServer

__all__ = ["ClientSession", "RoomHostError", "RoomServer"]
