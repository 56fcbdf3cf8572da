"""
Tests for the retry gate and fault-isolated reads
"""

import logging

import pytest

from swerveio.hardware.device_util import read_if_ok, try_until_ok
from swerveio.hardware.interfaces import DeviceStatus
from swerveio.hardware.motor import SimulatedMotor


class FlakyOperation:
    """Operation that fails a fixed number of times before succeeding"""

    def __init__(self, failures: int, failure_status: DeviceStatus = DeviceStatus.TIMEOUT):
        self.failures = failures
        self.failure_status = failure_status
        self.calls = 0

    def __call__(self) -> DeviceStatus:
        self.calls += 1
        if self.calls <= self.failures:
            return self.failure_status
        return DeviceStatus.OK


@pytest.mark.parametrize("failures", [0, 1, 4])
def test_succeeds_after_transient_failures(failures):
    operation = FlakyOperation(failures)

    assert try_until_ok(None, 5, operation) is True
    assert operation.calls == failures + 1


def test_gives_up_after_max_attempts(caplog):
    operation = FlakyOperation(failures=10)

    with caplog.at_level(logging.ERROR):
        assert try_until_ok(None, 5, operation, description="configure") is False

    assert operation.calls == 5
    assert "configure failed after 5 attempts" in caplog.text


def test_custom_success_predicate():
    operation = FlakyOperation(failures=2, failure_status=DeviceStatus.ERROR)

    # Accept timeouts and errors alike: the first call already counts as success
    accepted = try_until_ok(None, 5, operation, is_ok=lambda status: status is not DeviceStatus.OK)

    assert accepted is True
    assert operation.calls == 1


def test_rejects_zero_attempts():
    with pytest.raises(ValueError):
        try_until_ok(None, 0, FlakyOperation(0))


def test_uses_device_name_in_logs(clock, caplog):
    motor = SimulatedMotor(can_id=3, name="front_left/drive", clock=clock)
    motor.inject_faults(3)

    with caplog.at_level(logging.ERROR):
        assert try_until_ok(motor, 2, lambda: motor.set_encoder_position(0.0), description="zero encoder") is False

    assert "front_left/drive: zero encoder failed after 2 attempts" in caplog.text


def test_read_if_ok_returns_values(clock):
    motor = SimulatedMotor(can_id=1, clock=clock)

    values = read_if_ok(motor, motor.get_applied_output, motor.get_bus_voltage)

    assert values == (0.0, 12.0)


def test_read_if_ok_returns_none_on_any_failure(clock):
    motor = SimulatedMotor(can_id=1, clock=clock)
    motor.inject_faults(1)

    assert read_if_ok(motor, motor.get_position) is None
    # Fault consumed, next read succeeds
    assert read_if_ok(motor, motor.get_position) == (0.0,)


def test_read_if_ok_fails_when_second_supplier_fails(clock):
    motor = SimulatedMotor(can_id=1, clock=clock)
    calls = []

    def first():
        calls.append("first")
        value = motor.get_applied_output()
        motor.inject_faults(1)
        return value

    def second():
        calls.append("second")
        return motor.get_bus_voltage()

    assert read_if_ok(motor, first, second) is None
    assert calls == ["first", "second"]
