"""
Swerve module controller for swerveio

Owns the drive motor, steer motor and absolute encoder of one wheel:
configures them at boot, seeds the steer encoder from the absolute sensor,
refreshes module inputs every control cycle and forwards actuation commands.
"""

import logging
import dataclasses
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

import numpy as np
from wpimath.filter import Debouncer

from .odometry_sampler import SamplingEngine
from ..hardware.device_util import read_if_ok, try_until_ok
from ..hardware.factory import HardwareFactory
from ..hardware.interfaces import (
    AbsoluteEncoderInterface,
    ControlType,
    DeviceStatus,
    MagnetSensorConfig,
    MotorControllerConfig,
    MotorControllerInterface,
)
from ..utils.config_loader import DriveConfig, ModuleConfig, ModuleIndex
from ..utils.units import input_modulus, input_modulus_array, rotations_to_radians, sign

logger = logging.getLogger(__name__)


@dataclass
class ModuleState:
    """Latest inputs of one module, refreshed by update_inputs()"""
    drive_connected: bool = False
    drive_position_rad: float = 0.0  # Cumulative, never wraps
    drive_velocity_rad_per_sec: float = 0.0
    drive_applied_volts: float = 0.0
    drive_current_amps: float = 0.0

    steer_connected: bool = False
    steer_heading_rad: float = 0.0  # Wrapped into the steer input range
    steer_velocity_rad_per_sec: float = 0.0
    steer_applied_volts: float = 0.0
    steer_current_amps: float = 0.0

    steer_absolute_position_rad: float = 0.0  # Diagnostic only


@dataclass
class OdometrySampleBurst:
    """High-rate position samples captured since the previous control cycle"""
    timestamps: np.ndarray = field(default_factory=lambda: np.zeros(0))
    drive_positions_rad: np.ndarray = field(default_factory=lambda: np.zeros(0))
    steer_headings_rad: np.ndarray = field(default_factory=lambda: np.zeros(0))

    def __len__(self) -> int:
        return len(self.timestamps)

    @classmethod
    def empty(cls) -> 'OdometrySampleBurst':
        return cls()


def _applied_volts(applied_output: float, bus_voltage: float) -> float:
    return applied_output * bus_voltage


class ModuleController:
    """
    Hardware interface for one swerve module

    All device failures are reported through status values. Boot steps that
    keep failing are logged and skipped so the module stays usable.
    """

    def __init__(
        self,
        name: str,
        module_config: ModuleConfig,
        drive_config: DriveConfig,
        drive: MotorControllerInterface,
        steer: MotorControllerInterface,
        absolute_encoder: AbsoluteEncoderInterface,
        sampling_engine: SamplingEngine
    ):
        """
        Initialize module controller and run the boot sequence

        Args:
            name: Module name for logs and the odometry group
            module_config: Per-module IDs, inversions and sensor calibration
            drive_config: Tuning constants shared by all modules
            drive: Drive motor controller
            steer: Steer motor controller
            absolute_encoder: Absolute steer angle sensor
            sampling_engine: Shared odometry sampling engine
        """
        self.name = name
        self.module_config = module_config
        self.drive_config = drive_config
        self.drive = drive
        self.steer = steer
        self.absolute_encoder = absolute_encoder
        self.sampling_engine = sampling_engine

        self.steer_min = drive_config.steer_pid_min_input
        self.steer_max = drive_config.steer_pid_max_input

        self.state = ModuleState()

        self.drive_debouncer = Debouncer(drive_config.connection_debounce_s, Debouncer.DebounceType.kBoth)
        self.steer_debouncer = Debouncer(drive_config.connection_debounce_s, Debouncer.DebounceType.kBoth)

        # (field, getters, combine) per actuator
        self._drive_reads = [
            ('drive_position_rad', (drive.get_position,), None),
            ('drive_velocity_rad_per_sec', (drive.get_velocity,), None),
            ('drive_applied_volts', (drive.get_applied_output, drive.get_bus_voltage), _applied_volts),
            ('drive_current_amps', (drive.get_output_current,), None),
        ]
        self._steer_reads = [
            ('steer_heading_rad', (steer.get_position,), self._wrap_heading),
            ('steer_velocity_rad_per_sec', (steer.get_velocity,), None),
            ('steer_applied_volts', (steer.get_applied_output, steer.get_bus_voltage), _applied_volts),
            ('steer_current_amps', (steer.get_output_current,), None),
        ]

        self._configure_drive()
        self._configure_steer()
        self._configure_absolute_encoder()
        self.recalibrate_from_absolute()

        self.odometry_group = sampling_engine.register_group(name, [
            (drive, drive.get_position),
            (steer, steer.get_position),
        ])

        logger.info(f"Module {name} initialized")

    # Boot sequence

    def _base_motor_config(self) -> MotorControllerConfig:
        cfg = self.drive_config
        return MotorControllerConfig(
            brake_mode=True,
            voltage_compensation=cfg.voltage_compensation,
            uvw_measurement_period_ms=10,
            uvw_average_depth=2,
            position_period_ms=cfg.odometry_period_ms,
            velocity_period_ms=cfg.signal_period_ms,
            applied_output_period_ms=cfg.signal_period_ms,
            bus_voltage_period_ms=cfg.signal_period_ms,
            output_current_period_ms=cfg.signal_period_ms,
        )

    def _configure_drive(self) -> bool:
        cfg = self.drive_config
        motor_config = dataclasses.replace(
            self._base_motor_config(),
            inverted=self.module_config.drive_inverted,
            smart_current_limit=cfg.drive_current_limit,
            position_conversion_factor=cfg.drive_position_factor,
            velocity_conversion_factor=cfg.drive_velocity_factor,
            kp=cfg.drive_kp,
            kd=cfg.drive_kd,
        )

        configured = try_until_ok(
            self.drive, cfg.configure_attempts,
            lambda: self.drive.configure(motor_config),
            description="configure"
        )
        zeroed = try_until_ok(
            self.drive, cfg.configure_attempts,
            lambda: self.drive.set_encoder_position(0.0),
            description="zero encoder"
        )
        return configured and zeroed

    def _configure_steer(self) -> bool:
        cfg = self.drive_config
        motor_config = dataclasses.replace(
            self._base_motor_config(),
            inverted=self.module_config.steer_inverted,
            smart_current_limit=cfg.steer_current_limit,
            position_conversion_factor=cfg.steer_position_factor,
            velocity_conversion_factor=cfg.steer_velocity_factor,
            kp=cfg.steer_kp,
            kd=cfg.steer_kd,
            position_wrapping_enabled=True,
            position_wrapping_min_input=self.steer_min,
            position_wrapping_max_input=self.steer_max,
        )

        return try_until_ok(
            self.steer, cfg.configure_attempts,
            lambda: self.steer.configure(motor_config),
            description="configure"
        )

    def _configure_absolute_encoder(self) -> bool:
        magnet_config = MagnetSensorConfig(
            clockwise_positive=self.module_config.absolute_clockwise_positive,
            magnet_offset=self.module_config.zero_rotation,
            discontinuity_point=self.drive_config.absolute_discontinuity_point,
        )

        return try_until_ok(
            self.absolute_encoder, self.drive_config.configure_attempts,
            lambda: self.absolute_encoder.apply_magnet_config(magnet_config),
            description="apply magnet config"
        )

    def recalibrate_from_absolute(self) -> bool:
        """
        Seed the steer relative encoder from the absolute sensor

        Runs at boot. Safe to call again later; repeated calls with the wheel
        at rest leave the same seeded position.

        Returns:
            True if the steer encoder was reseeded
        """
        with self.sampling_engine.odometry_lock:
            return self._seed_steer_encoder()

    def _seed_steer_encoder(self) -> bool:
        attempts = self.drive_config.configure_attempts
        reading = []

        def read_absolute() -> DeviceStatus:
            rotations = self.absolute_encoder.get_absolute_position()
            status = self.absolute_encoder.last_error()
            if status is DeviceStatus.OK:
                reading.append(rotations)
            return status

        if not try_until_ok(self.absolute_encoder, attempts, read_absolute, description="read absolute position"):
            logger.error(f"Module {self.name}: steer encoder not seeded, heading is relative to power-on")
            return False

        position_rad = rotations_to_radians(reading[-1])
        seeded = try_until_ok(
            self.steer, attempts,
            lambda: self.steer.set_encoder_position(position_rad),
            description="seed encoder"
        )
        if seeded:
            self.state.steer_absolute_position_rad = position_rad
            logger.info(f"Module {self.name}: steer encoder seeded to {position_rad:.4f} rad ({reading[-1]:.4f} rot)")
        return seeded

    # Periodic inputs

    def _wrap_heading(self, position: float) -> float:
        return input_modulus(position, self.steer_min, self.steer_max)

    def _refresh(self, device, reads: List) -> bool:
        """Run a read table against one device; failed reads keep the old field value"""
        all_ok = True
        for field_name, suppliers, combine in reads:
            values = read_if_ok(device, *suppliers)
            if values is None:
                all_ok = False
                continue
            value = combine(*values) if combine is not None else values[0]
            setattr(self.state, field_name, value)
        return all_ok

    def _update_connection(self, debouncer: Debouncer, field_name: str, ok: bool, label: str):
        was_connected = getattr(self.state, field_name)
        connected = debouncer.calculate(ok)
        if connected != was_connected:
            if connected:
                logger.info(f"Module {self.name}: {label} connected")
            else:
                logger.warning(f"Module {self.name}: {label} disconnected")
        setattr(self.state, field_name, connected)

    def drain_odometry(self) -> OdometrySampleBurst:
        """Take the samples captured since the last call"""
        timestamps, (drive_positions, steer_positions) = self.odometry_group.drain()
        return OdometrySampleBurst(
            timestamps=timestamps,
            drive_positions_rad=drive_positions,
            steer_headings_rad=input_modulus_array(steer_positions, self.steer_min, self.steer_max),
        )

    def update_inputs(self) -> Tuple[ModuleState, OdometrySampleBurst]:
        """
        Refresh module inputs (call once per control cycle)

        Returns:
            (state snapshot, odometry samples since the previous call)
        """
        with self.sampling_engine.odometry_lock:
            drive_ok = self._refresh(self.drive, self._drive_reads)
            steer_ok = self._refresh(self.steer, self._steer_reads)
            absolute = read_if_ok(self.absolute_encoder, self.absolute_encoder.get_absolute_position)

        self._update_connection(self.drive_debouncer, 'drive_connected', drive_ok, "drive")
        self._update_connection(self.steer_debouncer, 'steer_connected', steer_ok, "steer")

        if absolute is not None:
            self.state.steer_absolute_position_rad = rotations_to_radians(absolute[0])

        return dataclasses.replace(self.state), self.drain_odometry()

    # Actuation

    def set_drive_open_loop(self, volts: float):
        """Run the drive motor at a fixed voltage"""
        with self.sampling_engine.odometry_lock:
            self.drive.set_voltage(volts)

    def set_steer_open_loop(self, volts: float):
        """Run the steer motor at a fixed voltage"""
        with self.sampling_engine.odometry_lock:
            self.steer.set_voltage(volts)

    def drive_feedforward(self, velocity_rad_per_sec: float) -> float:
        """Static plus velocity feedforward in volts"""
        cfg = self.drive_config
        return cfg.drive_ks * sign(velocity_rad_per_sec) + cfg.drive_kv * velocity_rad_per_sec

    def set_drive_velocity(self, velocity_rad_per_sec: float) -> DeviceStatus:
        """
        Run the drive wheel at a velocity using the onboard controller

        Args:
            velocity_rad_per_sec: Wheel velocity setpoint

        Returns:
            Status of the reference write
        """
        feedforward = self.drive_feedforward(velocity_rad_per_sec)
        with self.sampling_engine.odometry_lock:
            return self.drive.set_reference(
                velocity_rad_per_sec,
                ControlType.VELOCITY,
                slot=0,
                arb_feedforward_volts=feedforward
            )

    def set_steer_heading(self, angle_rad: float) -> DeviceStatus:
        """
        Turn the module to a heading using the onboard controller

        Args:
            angle_rad: Heading setpoint, any value (wrapped into the steer input range)

        Returns:
            Status of the reference write
        """
        reference = self._wrap_heading(angle_rad)
        with self.sampling_engine.odometry_lock:
            return self.steer.set_reference(reference, ControlType.POSITION)


def create_module_controllers(config, sampling_engine: SamplingEngine) -> Dict[ModuleIndex, ModuleController]:
    """
    Build the four module controllers of the drive base

    Args:
        config: Configuration object
        sampling_engine: Shared odometry sampling engine

    Returns:
        Module controllers keyed by wheel position
    """
    modules = {}
    for index in ModuleIndex:
        module_config = config.module(index)
        drive, steer, absolute_encoder = HardwareFactory.create_module_devices(config, index.value, module_config)
        modules[index] = ModuleController(
            index.value,
            module_config,
            config.drive,
            drive,
            steer,
            absolute_encoder,
            sampling_engine
        )
    return modules
