"""
Unit tests for runtime parameters.
"""

import json

from angle_relay.params import Parameters


class TestUpdate:
    """Tests for Parameters.update."""

    def test_coerces_types(self):
        params = Parameters()
        params.update(kp="2.0", min_pwm="12", secure_framing="false")

        assert params.kp == 2.0
        assert params.min_pwm == 12
        assert params.secure_framing is False

    def test_invalid_value_ignored(self):
        params = Parameters()
        params.update(max_pwm="lots")

        assert params.max_pwm == 50

    def test_unknown_key_ignored(self):
        params = Parameters()
        params.update(colour="red")

        assert not hasattr(params, "colour")

    def test_unknown_modes_fall_back(self):
        params = Parameters()
        params.update(downlink="carrier-pigeon", integral_mode="magic")

        assert params.downlink == "datagram"
        assert params.integral_mode == "windowed"


class TestPersistence:
    """Tests for save/load."""

    def test_round_trip(self, tmp_path):
        path = tmp_path / "params.json"
        params = Parameters(kp=3.0, downlink="socket", reset_on_setpoint=True)
        params.save(path)

        loaded = Parameters.load(path)

        assert loaded == params

    def test_missing_file_defaults(self, tmp_path):
        assert Parameters.load(tmp_path / "absent.json") == Parameters()

    def test_corrupt_file_defaults(self, tmp_path):
        path = tmp_path / "params.json"
        path.write_text("{not json")

        assert Parameters.load(path) == Parameters()

    def test_partial_file(self, tmp_path):
        path = tmp_path / "params.json"
        path.write_text(json.dumps({"kd": 0.17, "min_pwm": 12}))

        loaded = Parameters.load(path)

        assert loaded.kd == 0.17
        assert loaded.min_pwm == 12
        assert loaded.kp == Parameters().kp
