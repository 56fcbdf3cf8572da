"""
Tests for simulated motor controllers, absolute encoders and the hardware factory
"""

import math

import pytest

from swerveio.hardware.encoder import SimulatedAbsoluteEncoder
from swerveio.hardware.factory import HardwareFactory
from swerveio.hardware.interfaces import ControlType, DeviceStatus, MagnetSensorConfig, MotorControllerConfig
from swerveio.hardware.motor import SimulatedMotor
from swerveio.utils.config_loader import Config, ModuleIndex


def test_motor_spins_up_in_voltage_mode(clock):
    motor = SimulatedMotor(can_id=1, clock=clock)

    motor.set_voltage(6.0)
    clock.advance(0.5)

    assert motor.get_velocity() == pytest.approx(6.0 * 473.0, rel=0.01)
    assert motor.get_applied_output() == pytest.approx(0.5)
    assert motor.get_position() > 0.0
    assert motor.get_output_current() >= 0.0


def test_motor_faults_report_status(clock):
    motor = SimulatedMotor(can_id=1, clock=clock)
    motor.inject_faults(2)

    assert motor.get_bus_voltage() == 0.0
    assert motor.last_error() is DeviceStatus.TIMEOUT
    assert motor.set_encoder_position(1.0) is DeviceStatus.TIMEOUT
    assert motor.get_bus_voltage() == 12.0
    assert motor.last_error() is DeviceStatus.OK


def test_motor_failure_rate_is_seeded(clock):
    first = SimulatedMotor(can_id=1, failure_rate=0.5, seed=42, clock=clock)
    second = SimulatedMotor(can_id=1, failure_rate=0.5, seed=42, clock=clock)

    statuses_first = []
    statuses_second = []
    for _ in range(20):
        first.get_position()
        second.get_position()
        statuses_first.append(first.last_error())
        statuses_second.append(second.last_error())

    assert statuses_first == statuses_second
    assert DeviceStatus.TIMEOUT in statuses_first
    assert DeviceStatus.OK in statuses_first


def test_encoder_position_reseed(clock):
    motor = SimulatedMotor(can_id=1, clock=clock)
    motor.set_voltage(3.0)
    clock.advance(0.2)

    assert motor.set_encoder_position(1.5) is DeviceStatus.OK
    assert motor.get_position() == pytest.approx(1.5)
    # Reseeding does not move the mechanism
    assert motor.physical_position() != pytest.approx(1.5)


def test_configure_applies_conversion_factor(clock):
    motor = SimulatedMotor(can_id=1, clock=clock)
    factor = 2.0 * math.pi / 10.0

    assert motor.configure(MotorControllerConfig(position_conversion_factor=factor)) is DeviceStatus.OK
    assert motor.configure_count == 1

    motor.set_voltage(12.0)
    clock.advance(0.2)
    position = motor.get_position()

    assert position > 0.0
    assert position == pytest.approx(motor.rotor_rotations * factor)


def test_position_reference_takes_shortest_path(clock):
    motor = SimulatedMotor(can_id=2, clock=clock)
    motor.configure(MotorControllerConfig(
        kp=1.0,
        position_conversion_factor=2.0 * math.pi / 50.0,
        velocity_conversion_factor=2.0 * math.pi / 60.0 / 50.0,
        position_wrapping_enabled=True,
        position_wrapping_min_input=0.0,
        position_wrapping_max_input=2.0 * math.pi,
    ))
    motor.set_encoder_position(0.2)

    # Target just "below" zero: the short way is backwards through the wrap
    motor.set_reference(2.0 * math.pi - 0.2, ControlType.POSITION)
    for _ in range(20):
        clock.advance(0.1)
        motor.get_position()

    assert motor.get_position() == pytest.approx(-0.2, abs=0.02)


def test_velocity_reference_uses_feedforward(clock):
    motor = SimulatedMotor(can_id=1, clock=clock)

    motor.set_reference(100.0, ControlType.VELOCITY, arb_feedforward_volts=2.0)
    clock.advance(0.5)

    assert motor.control_type is ControlType.VELOCITY
    assert motor.reference == 100.0
    # kp = 0: only the feedforward drives the rotor
    assert motor.get_velocity() == pytest.approx(2.0 * 473.0, rel=0.01)


@pytest.mark.parametrize("raw, config, expected", [
    (0.25, MagnetSensorConfig(), 0.25),
    (0.75, MagnetSensorConfig(), -0.25),
    (0.25, MagnetSensorConfig(clockwise_positive=True), -0.25),
    (0.25, MagnetSensorConfig(magnet_offset=0.1), 0.35),
    (0.25, MagnetSensorConfig(magnet_offset=-0.25), 0.0),
    (-0.25, MagnetSensorConfig(discontinuity_point=1.0), 0.75),
])
def test_absolute_encoder_corrections(raw, config, expected):
    encoder = SimulatedAbsoluteEncoder(can_id=9, raw_rotations=raw)

    assert encoder.apply_magnet_config(config) is DeviceStatus.OK
    assert encoder.get_absolute_position() == pytest.approx(expected)


def test_absolute_encoder_defaults_to_unsigned_range():
    encoder = SimulatedAbsoluteEncoder(can_id=9, raw_rotations=-0.25)

    assert encoder.get_absolute_position() == pytest.approx(0.75)


def test_absolute_encoder_faults():
    encoder = SimulatedAbsoluteEncoder(can_id=9, raw_rotations=0.25)
    encoder.inject_faults(1)

    assert encoder.get_absolute_position() == 0.0
    assert encoder.last_error() is DeviceStatus.TIMEOUT
    assert encoder.get_absolute_position() == pytest.approx(0.25)
    assert encoder.last_error() is DeviceStatus.OK


def test_absolute_encoder_follows_linked_motor(clock):
    motor = SimulatedMotor(can_id=2, clock=clock)
    motor.configure(MotorControllerConfig(position_conversion_factor=2.0 * math.pi / 50.0))
    encoder = SimulatedAbsoluteEncoder(can_id=9, raw_rotations=0.1, linked_motor=motor)

    motor.set_voltage(2.0)
    clock.advance(0.3)
    turned_rotations = motor.physical_position() / (2.0 * math.pi)

    assert encoder.magnet_rotations() == pytest.approx(0.1 + turned_rotations)


def test_factory_creates_simulated_module_devices():
    config = Config()
    module_config = config.module(ModuleIndex.BACK_LEFT)

    drive, steer, absolute_encoder = HardwareFactory.create_module_devices(config, "back_left", module_config)

    assert isinstance(drive, SimulatedMotor)
    assert isinstance(steer, SimulatedMotor)
    assert isinstance(absolute_encoder, SimulatedAbsoluteEncoder)
    assert drive.can_id == 3
    assert steer.can_id == 4
    assert absolute_encoder.can_id == 11
    assert drive.name == "back_left/drive"
    assert absolute_encoder.linked_motor is steer
