import time
from typing import Dict, List

from errors import InvalidRoomError
from logging_config import get_logger

logger = get_logger(__name__)


def _peers(count: int) -> str:
    return f"{count} peer{'' if count == 1 else 's'}"


class RoomRegistry:
    """In-memory room membership and connection bookkeeping.

    Every method is synchronous and is only called from the event loop, so a
    mutation always runs to completion before any other handler sees the state.
    Connections are duck-typed: anything with ``is_open`` and ``send(dict)`` works.
    """

    def __init__(self):
        # Format: {room_id: [connection, ...]} in join order
        self.rooms: Dict[str, List] = {}
        self._connections = set()
        self.total_connections = 0
        self.started_at = time.monotonic()
        logger.info("Initializing RoomRegistry")

    # Connection tracking

    def register(self, conn):
        self._connections.add(conn)
        self.total_connections += 1
        logger.debug(f"Registered connection {conn!r} (total: {self.total_connections}, active: {self.active_connections})")

    def unregister(self, conn):
        self._connections.discard(conn)

    @property
    def connections(self) -> list:
        return list(self._connections)

    @property
    def active_connections(self) -> int:
        return len(self._connections)

    @property
    def room_count(self) -> int:
        return len(self.rooms)

    @property
    def uptime(self) -> float:
        return time.monotonic() - self.started_at

    # Membership

    def join(self, conn, room_id) -> list:
        if not isinstance(room_id, str) or not room_id:
            raise InvalidRoomError(room_id)
        members = self.rooms.setdefault(room_id, [])
        if any(member is conn for member in members):
            logger.debug(f"Connection {conn!r} already in room {room_id}, not adding again")
        else:
            members.append(conn)
        logger.info(f"Client joined \"{room_id}\" ({_peers(len(members))})")
        return list(members)

    def leave(self, conn, room_id) -> bool:
        members = self.rooms.get(room_id)
        if not members:
            return False
        for index, member in enumerate(members):
            if member is conn:
                del members[index]
                break
        else:
            return False

        logger.info(f"Client left \"{room_id}\" ({_peers(len(members))} remaining)")
        if not members:
            del self.rooms[room_id]
            logger.debug(f"Room {room_id} is empty, deleted")
        return True

    def lookup(self, room_id) -> list:
        return list(self.rooms.get(room_id, ()))

    def broadcast(self, room_id, sender, payload: dict) -> int:
        """Queue ``payload`` for every open member except ``sender``.

        Best effort: a member whose send fails is skipped silently.
        """
        delivered = 0
        for member in self.lookup(room_id):
            if member is sender or not member.is_open:
                continue
            try:
                if member.send(payload) is not False:
                    delivered += 1
            except Exception as e:
                logger.debug(f"Broadcast to {member!r} in room {room_id} failed: {e}")
        logger.debug(f"Broadcast {payload.get('type')!r} to {delivered} member(s) of room {room_id}")
        return delivered

    def sweep(self) -> int:
        """Drop closed connections from every room; delete rooms left empty."""
        cleaned = 0
        for room_id, members in list(self.rooms.items()):
            active = [member for member in members if member.is_open]
            if not active:
                del self.rooms[room_id]
                cleaned += 1
            elif len(active) != len(members):
                self.rooms[room_id] = active
        if cleaned:
            logger.info(f"[Cleanup] Removed {cleaned} empty room(s). Active rooms: {self.room_count}")
        return cleaned


room_registry = RoomRegistry()
