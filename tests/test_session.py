"""
Unit tests for the device session and credential parsing.
"""

import math

import pytest

from angle_relay.errors import AuthError
from angle_relay.session import Credentials, DeviceSession, SessionState, parse_credentials

from conftest import auth_message


class TestParseCredentials:
    """Tests for credential payload formats."""

    def test_json(self):
        creds = parse_credentials('{"name": "Sean", "password": "bayar10rb"}')

        assert creds == Credentials("Sean", "bayar10rb")

    def test_url_form(self):
        creds = parse_credentials("name=Sean&password=bayar10rb")

        assert creds == Credentials("Sean", "bayar10rb")

    @pytest.mark.parametrize("password", ["a+b", "a%20b", "x=y"])
    def test_url_form_values_taken_verbatim(self, password):
        """No percent or plus decoding; everything after the first = is the value."""
        creds = parse_credentials(f"name=Sean&password={password}")

        assert creds == Credentials("Sean", password)

    def test_url_form_encoded_password_does_not_match(self):
        configured = Credentials("Sean", "a b")

        assert not configured.matches(parse_credentials("name=Sean&password=a+b"))

    @pytest.mark.parametrize("payload", [
        "hello",
        "42",
        pytest.param("[" * 100000, id="deep-nest"),
        '["Sean", "bayar10rb"]',
        '{"name": "Sean"}',
        '{"name": "Sean", "password": 10}',
        "name=Sean",
    ])
    def test_malformed(self, payload):
        with pytest.raises(AuthError):
            parse_credentials(payload)

    def test_password_not_in_repr(self):
        assert "bayar10rb" not in repr(Credentials("Sean", "bayar10rb"))


class TestAuthentication:
    """Tests for the UNAUTHENTICATED -> AUTHENTICATED transition."""

    def test_initial_state(self, session):
        assert session.state == SessionState.UNAUTHENTICATED
        assert session.peer is None
        assert session.has_target is False

    def test_valid_credentials(self, session):
        session.authenticate(auth_message(), "10.0.0.7")

        assert session.state == SessionState.AUTHENTICATED
        assert session.authenticated is True
        assert session.peer == "10.0.0.7"

    def test_wrong_password(self, session):
        """Mismatch leaves the session and PID state untouched."""
        pid = session.engine.state
        before = (pid.target_angle, pid.current_angle, pid.previous_error, pid.previous_timestamp)

        with pytest.raises(AuthError):
            session.authenticate(auth_message(password="wrong"), "10.0.0.7")

        assert session.state == SessionState.UNAUTHENTICATED
        assert session.peer is None
        assert (pid.target_angle, pid.current_angle, pid.previous_error, pid.previous_timestamp) == before

    def test_wrong_name(self, session):
        with pytest.raises(AuthError):
            session.authenticate(auth_message(name="Budi"), "10.0.0.7")

    def test_takeover(self, session):
        """A second controller with valid credentials becomes the owner."""
        session.authenticate(auth_message(), "10.0.0.7")
        session.authenticate(auth_message(), "10.0.0.8")

        assert session.peer == "10.0.0.8"
        assert session.authenticated is True


class TestTargetAndClose:
    """Tests for TRACKING and teardown."""

    def test_set_target(self, session):
        session.authenticate(auth_message(), "10.0.0.7")
        session.set_target(math.radians(90), now=1.0)

        assert session.state == SessionState.TRACKING
        assert session.target_angle == pytest.approx(math.pi / 2)
        assert session.engine.state.previous_timestamp == 1.0

    def test_compute_uses_measurement(self, session):
        session.authenticate(auth_message(), "10.0.0.7")
        session.set_target(0.5, now=0.0)
        session.update_measurement(0.2)

        out = session.compute_command(now=0.1)

        assert out.error == pytest.approx(0.3)
        assert out.pwm > 0

    def test_close_clears_target(self, session):
        """Disconnect while tracking: target unset, next compute is zero."""
        session.authenticate(auth_message(), "10.0.0.7")
        session.set_target(math.radians(90), now=0.0)
        session.update_measurement(0.1)

        session.close()

        assert session.state == SessionState.UNAUTHENTICATED
        assert session.has_target is False
        assert session.peer is None
        assert session.target_angle is None
        assert session.compute_command(now=1.0).pwm == 0

    def test_snapshot(self, session):
        session.authenticate(auth_message(), "10.0.0.7")
        snap = session.snapshot()

        assert snap["state"] == "AUTHENTICATED"
        assert snap["peer"] == "10.0.0.7"
        assert snap["target_angle"] is None

    def test_default_credentials_from_config(self):
        from angle_relay import config

        session = DeviceSession()

        assert session.credentials == Credentials(config.DEVICE_NAME, config.DEVICE_PASSWORD)
