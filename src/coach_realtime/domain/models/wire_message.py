"""Message types exchanged over the live connection."""

from enum import StrEnum


class WireMessageType(StrEnum):
    """Value of the ``type`` field of every websocket message."""

    # client -> server
    REGISTER_USER = "register_user"
    PING = "ping"

    # server -> client
    REGISTERED = "registered"
    REGISTRATION_REJECTED = "registration_rejected"
    CHANGE = "change"
    SUPERSEDED = "superseded"
    PONG = "pong"
    ERROR = "error"
