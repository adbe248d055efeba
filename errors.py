class SignalingError(Exception):
    """Base class for errors raised inside the signaling core."""


class InvalidRoomError(SignalingError):
    def __init__(self, room_id):
        super().__init__(f"Invalid room id: {room_id!r}")
        self.room_id = room_id


class MalformedMessageError(SignalingError):
    """Inbound frame could not be parsed into a message with a `type` field."""
