from __future__ import annotations

import random
import string
from typing import TYPE_CHECKING, Dict, Iterator, Optional, Protocol

if TYPE_CHECKING:
    from .game import RoomEngine

ROOM_ID_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ROOM_ID_LENGTH = 6
PLAYER_ID_ALPHABET = string.ascii_lowercase + string.digits
PLAYER_ID_LENGTH = 8


class RoomStore(Protocol):
    """Key-value repository the host uses to look rooms up by id."""

    def get(self, room_id: str) -> Optional["RoomEngine"]: ...

    def put(self, room: "RoomEngine") -> None: ...

    def delete(self, room_id: str) -> None: ...

    def __contains__(self, room_id: object) -> bool: ...


class InMemoryRoomStore:
    def __init__(self) -> None:
        self._rooms: Dict[str, "RoomEngine"] = {}

    def get(self, room_id: str) -> Optional["RoomEngine"]:
        return self._rooms.get(room_id.upper())

    def put(self, room: "RoomEngine") -> None:
        self._rooms[room.room_id.upper()] = room

    def delete(self, room_id: str) -> None:
        self._rooms.pop(room_id.upper(), None)

    def __contains__(self, room_id: object) -> bool:
        return isinstance(room_id, str) and room_id.upper() in self._rooms

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._rooms))

    def __len__(self) -> int:
        return len(self._rooms)


def generate_room_id(store: RoomStore, rng: Optional[random.Random] = None) -> str:
    rng = rng or random.Random()
    while True:
        room_id = "".join(rng.choice(ROOM_ID_ALPHABET) for _ in range(ROOM_ID_LENGTH))
        if room_id not in store:
            return room_id


def generate_player_id(rng: Optional[random.Random] = None) -> str:
    rng = rng or random.Random()
    return "".join(rng.choice(PLAYER_ID_ALPHABET) for _ in range(PLAYER_ID_LENGTH))
