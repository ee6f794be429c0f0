import threading
from typing import Callable, Dict, Iterator, List, Optional

from taixiu.models import DEFAULT_PLAYER_NAME, DEFAULT_ROOM_ID, Room

ROOM_ID_MAX_LEN = 24
NAME_MAX_LEN = 20


def _keep(text: str, extra: str) -> str:
    return ''.join(ch for ch in text if ch.isalnum() or ch in extra)


def sanitize_room_id(raw) -> str:
    """Letters, digits and ``._-``, at most 24 chars; falls back to the lobby."""
    if isinstance(raw, (int, float)) and not isinstance(raw, bool) and raw:
        raw = str(raw)
    text = raw.strip() if isinstance(raw, str) else ''
    cleaned = _keep(text[:ROOM_ID_MAX_LEN], '._-')
    return cleaned or DEFAULT_ROOM_ID


def sanitize_name(raw) -> str:
    text = raw.strip() if isinstance(raw, str) else ''
    cleaned = _keep(text[:NAME_MAX_LEN], ' ._-').strip()
    return cleaned or DEFAULT_PLAYER_NAME


class RoomRegistry:
    """All rooms of this process, keyed by sanitized room id.

    ``factory`` builds and starts a room; it is called at most once per id
    while the id is registered.
    """

    def __init__(self, factory: Callable[[str], Room], list_limit: int = 50):
        self._factory = factory
        self.list_limit = list_limit
        self._rooms: Dict[str, Room] = {}
        self._lock = threading.Lock()

    def get_or_create(self, raw_room_id) -> Room:
        room_id = sanitize_room_id(raw_room_id)
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                room = self._factory(room_id)
                self._rooms[room_id] = room
            return room

    def get(self, raw_room_id) -> Optional[Room]:
        return self._rooms.get(sanitize_room_id(raw_room_id))

    def remove(self, room_id: str) -> Optional[Room]:
        with self._lock:
            room = self._rooms.pop(room_id, None)
        if room is not None:
            room.closed = True
        return room

    def idle_rooms(self, now: int, ttl_ms: int) -> List[Room]:
        """Rooms other than the lobby that have had no players for ``ttl_ms``."""
        return [
            r for r in list(self._rooms.values())
            if r.room_id != DEFAULT_ROOM_ID and not r.players and now - r.last_active_at >= ttl_ms
        ]

    def list(self):
        rooms = sorted(
            list(self._rooms.values()),
            key=lambda r: (-len(r.players), -r.created_at, r.room_id),
        )
        return [r.summary() for r in rooms[:self.list_limit]]

    def __iter__(self) -> Iterator[Room]:
        return iter(list(self._rooms.values()))

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room_id) -> bool:
        return room_id in self._rooms
