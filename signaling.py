import json
from typing import Union

from backend import RoomRegistry
from errors import InvalidRoomError, MalformedMessageError
from logging_config import get_logger
from message_types import JOIN, LEAVE, PEER_LEFT, READY, RELAYED_TYPES

logger = get_logger(__name__)


def parse_message(raw: Union[str, bytes]) -> dict:
    """Decode one inbound frame into a message dict carrying a ``type``."""
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedMessageError(f"Frame is not valid UTF-8: {e}") from e
    try:
        message = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedMessageError(f"Frame is not valid JSON: {e}") from e
    if not isinstance(message, dict):
        raise MalformedMessageError(f"Expected a JSON object, got {type(message).__name__}")
    if "type" not in message:
        raise MalformedMessageError("Message has no 'type' field")
    return message


class MessageRouter:
    """Drives the per-connection Unjoined/Joined state machine.

    The state lives on the connection itself: ``connection.room`` is None while
    unjoined and holds the room id once joined.
    """

    def __init__(self, registry: RoomRegistry):
        self.registry = registry

    def handle(self, connection, raw):
        """Process one inbound frame. Never raises for bad client input."""
        # Any frame from the peer proves it is still there
        connection.mark_alive()
        try:
            message = parse_message(raw)
        except MalformedMessageError as e:
            logger.warning(f"[Error] Dropping message from connection {connection.short_id}: {e}")
            return

        message_type = message["type"]
        if message_type == JOIN:
            self.join(connection, message.get("room"))
        elif message_type in RELAYED_TYPES:
            self.relay(connection, message)
        elif message_type == LEAVE:
            self.leave(connection)
        else:
            logger.debug(f"Ignoring unknown message type {message_type!r} from connection {connection.short_id}")

    def join(self, connection, room_id):
        if not isinstance(room_id, str) or not room_id:
            logger.warning(f"[Warning] Invalid room ID received from connection {connection.short_id}: {room_id!r}")
            return

        if connection.room is not None and connection.room != room_id:
            self.leave(connection)

        try:
            self.registry.join(connection, room_id)
        except InvalidRoomError as e:
            logger.warning(f"[Warning] {e}")
            return
        connection.room = room_id
        self.registry.broadcast(room_id, connection, {"type": READY})

    def relay(self, connection, message: dict):
        room_id = connection.room
        if room_id is None:
            logger.debug(f"Dropping {message['type']!r} from unjoined connection {connection.short_id}")
            return
        self.registry.broadcast(room_id, connection, message)

    def leave(self, connection):
        room_id = connection.room
        if room_id is None:
            return
        connection.room = None
        if self.registry.leave(connection, room_id):
            self.registry.broadcast(room_id, connection, {"type": PEER_LEFT})

    def disconnect(self, connection):
        """Close path: the peer is gone, release its room membership."""
        self.leave(connection)
