from enum import Enum, IntEnum

# Close codes used by the relay endpoint
WS_CLOSE_NORMAL = 1000
WS_CLOSE_GOING_AWAY = 1001
WS_CLOSE_UNSUPPORTED_DATA = 1003
WS_CLOSE_INTERNAL_ERROR = 1011

STATUS_BANNER = "WebSocket server is running\n"


class BroadcastPolicy(str, Enum):
    """
    Target-set policy applied when a session sends a message.

    Attributes:
        ALL: Relay to every open session, sender included.
        OTHERS: Relay to every open session except the sender.
        ACK: Acknowledge the sender directly and relay to the others.
    """

    ALL = "all"
    OTHERS = "others"
    ACK = "ack"


class EnvelopeName(str, Enum):
    """Wire envelope convention for text frames."""

    RAW = "raw"
    EVENT = "event"


class SessionState(IntEnum):
    """
    Lifecycle states of a relay session.

    Transitions only move forward: CONNECTING -> OPEN -> CLOSED.
    """

    CONNECTING = 0
    OPEN = 1
    CLOSED = 2

    def __str__(self):
        """
        Returns a string representation like "SessionState.OPEN<1>".
        """
        return f"{__class__.__name__}.{self.name}<{self.value}>"
