"""
Startup validation for configuration and the listening socket.

Implements fail-fast checks so the relay does not start with an invalid
configuration or on a port another process already holds.
"""

import socket

from ws_relay.constants import BroadcastPolicy, EnvelopeName
from ws_relay.exceptions import StartupValidationError
from ws_relay.logging import logger
from ws_relay.settings import Settings


def validate_settings(settings: Settings) -> None:
    """
    Validate relay configuration.

    Raises:
        StartupValidationError: If any setting is invalid.
    """
    logger.info("Validating relay settings...")

    if not 0 < settings.RELAY_PORT < 65536:
        raise StartupValidationError(
            f"RELAY_PORT must be between 1 and 65535, got {settings.RELAY_PORT}"
        )

    if (
        settings.ENVELOPE == EnvelopeName.EVENT
        and settings.MESSAGE_EVENT == settings.ACK_EVENT
        and settings.BROADCAST_POLICY == BroadcastPolicy.ACK
    ):
        raise StartupValidationError(
            "ACK_EVENT must differ from MESSAGE_EVENT when acknowledging "
            "senders with the event envelope"
        )

    logger.info("Relay settings validated successfully")


def validate_bind(host: str, port: int) -> None:
    """
    Check that ``host:port`` can be bound.

    Raises:
        StartupValidationError: If the address is already in use or cannot
            be bound for another reason.
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    try:
        with socket.socket(family, socket.SOCK_STREAM) as sock:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, port))
    except OSError as e:
        raise StartupValidationError(
            f"Cannot bind {host}:{port}: {e.strerror or e}"
        ) from e

    logger.debug(f"Address {host}:{port} is available")


def run_all_validations(settings: Settings) -> None:
    """
    Run all startup validations.

    Raises:
        StartupValidationError: If any validation fails.
    """
    validate_settings(settings)
    validate_bind(settings.RELAY_HOST, settings.RELAY_PORT)
