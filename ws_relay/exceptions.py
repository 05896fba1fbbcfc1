"""
Custom exception classes for the relay.

This module defines the error taxonomy used by the relay: transport-level
errors raised at a single session boundary, and startup errors that are
fatal for the whole process.
"""


class RelayError(Exception):
    """
    Base class for all relay errors.
    """

    pass


class TransportError(RelayError):
    """
    Transport-level failure on a single session.

    Raised when a frame cannot be received or sent. Always handled at the
    session boundary and treated as an implicit disconnect.
    """

    pass


class MalformedFrameError(TransportError, ValueError):
    """
    Inbound frame could not be decoded.

    Raised for binary frames or text frames that do not match the active
    envelope convention.
    """

    pass


class StartupValidationError(RelayError):
    """
    Exception raised when startup validation fails.

    This exception indicates that the relay cannot start, e.g. because the
    configured port is already bound.
    """

    pass
