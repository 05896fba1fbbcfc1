"""Tests for startup validation and settings validators."""

import socket

import pytest
from pydantic import ValidationError

from ws_relay.exceptions import StartupValidationError
from ws_relay.startup_validation import (
    run_all_validations,
    validate_bind,
    validate_settings,
)


@pytest.fixture
def listening_socket():
    """
    Provides a socket listening on an ephemeral localhost port.

    Yields:
        tuple[str, int]: The bound (host, port).
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        sock.listen()
        yield sock.getsockname()


class TestValidateBind:
    def test_free_port_passes(self):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind(("127.0.0.1", 0))
            port = sock.getsockname()[1]

        validate_bind("127.0.0.1", port)

    def test_port_in_use_fails(self, listening_socket):
        host, port = listening_socket

        with pytest.raises(StartupValidationError, match=f"Cannot bind {host}:{port}"):
            validate_bind(host, port)


class TestValidateSettings:
    def test_defaults_are_valid(self, settings):
        validate_settings(settings)

    @pytest.mark.parametrize("port", [0, -1, 65536])
    def test_port_out_of_range(self, make_settings, port):
        with pytest.raises(StartupValidationError, match="RELAY_PORT"):
            validate_settings(make_settings(RELAY_PORT=port))

    def test_ack_event_must_differ_from_message_event(self, make_settings):
        settings = make_settings(
            ENVELOPE="event",
            BROADCAST_POLICY="ack",
            ACK_EVENT="message",
        )

        with pytest.raises(StartupValidationError, match="ACK_EVENT"):
            validate_settings(settings)

    def test_same_events_allowed_without_ack(self, make_settings):
        validate_settings(
            make_settings(ENVELOPE="event", BROADCAST_POLICY="all", ACK_EVENT="message")
        )

    def test_run_all_validations_checks_bind(self, make_settings, listening_socket):
        host, port = listening_socket

        with pytest.raises(StartupValidationError):
            run_all_validations(make_settings(RELAY_HOST=host, RELAY_PORT=port))


class TestSettingsValidators:
    def test_defaults(self, settings):
        assert settings.RELAY_PORT == 8080
        assert settings.BROADCAST_POLICY == "all"
        assert settings.ENVELOPE == "raw"
        assert settings.WELCOME_MESSAGE is None

    @pytest.mark.parametrize("timeout", [0, -5])
    def test_idle_timeout_must_be_positive(self, make_settings, timeout):
        with pytest.raises(ValidationError):
            make_settings(IDLE_TIMEOUT_SECONDS=timeout)

    @pytest.mark.parametrize("template", ["{other}", "{0}", "{payload"])
    def test_ack_template_only_references_payload(self, make_settings, template):
        with pytest.raises(ValidationError):
            make_settings(ACK_TEMPLATE=template)

    def test_unknown_policy_rejected(self, make_settings):
        with pytest.raises(ValidationError):
            make_settings(BROADCAST_POLICY="random")

    def test_settings_read_from_environment(self, make_settings, monkeypatch):
        monkeypatch.setenv("BROADCAST_POLICY", "others")
        monkeypatch.setenv("RELAY_PORT", "9090")

        settings = make_settings()

        assert settings.BROADCAST_POLICY == "others"
        assert settings.RELAY_PORT == 9090
