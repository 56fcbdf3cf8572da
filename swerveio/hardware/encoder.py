"""
Absolute encoder implementations for swerveio
CTRE CANcoder and simulated absolute encoder
"""

import time
import random
import logging
import threading
from typing import Callable, Optional

from .interfaces import AbsoluteEncoderInterface, DeviceStatus, MagnetSensorConfig
from ..utils.units import TWO_PI, input_modulus

logger = logging.getLogger(__name__)


class CANcoderEncoder(AbsoluteEncoderInterface):
    """
    CTRE CANcoder magnetic absolute encoder over CAN
    Direction and magnet offset are applied on the device
    """

    def __init__(self, can_id: int, name: Optional[str] = None, canbus: str = ""):
        """
        Initialize CANcoder

        Args:
            can_id: CAN bus identifier
            name: Device name for logs
            canbus: CAN bus name ("" = roboRIO bus)
        """
        self.can_id = can_id
        self._name = name or f"CANcoder[{can_id}]"
        self._last_error = DeviceStatus.OK

        try:
            from phoenix6.hardware import CANcoder
            from phoenix6.configs import MagnetSensorConfigs
            from phoenix6.signals import SensorDirectionValue
            from phoenix6.status_code import StatusCode

            self._magnet_configs_cls = MagnetSensorConfigs
            self._sensor_direction = SensorDirectionValue
            self._status_code = StatusCode

            self.cancoder = CANcoder(can_id, canbus)
            logger.info(f"CANcoder initialized: {self._name}")

        except Exception as e:
            logger.error(f"Failed to initialize CANcoder {self._name}: {e}")
            raise

    @property
    def name(self) -> str:
        return self._name

    def _to_status(self, status) -> DeviceStatus:
        """Translate a Phoenix StatusCode into a DeviceStatus"""
        if status.is_ok():
            return DeviceStatus.OK
        if status == self._status_code.RX_TIMEOUT:
            return DeviceStatus.TIMEOUT
        return DeviceStatus.ERROR

    def apply_magnet_config(self, config: MagnetSensorConfig) -> DeviceStatus:
        direction = (
            self._sensor_direction.CLOCKWISE_POSITIVE
            if config.clockwise_positive
            else self._sensor_direction.COUNTER_CLOCKWISE_POSITIVE
        )
        magnet_config = self._magnet_configs_cls() \
            .with_absolute_sensor_discontinuity_point(config.discontinuity_point) \
            .with_sensor_direction(direction) \
            .with_magnet_offset(config.magnet_offset)

        try:
            self._last_error = self._to_status(self.cancoder.configurator.apply(magnet_config))
        except Exception as e:
            logger.error(f"Error configuring {self._name}: {e}")
            self._last_error = DeviceStatus.ERROR
        return self._last_error

    def get_absolute_position(self) -> float:
        signal = self.cancoder.get_absolute_position()
        self._last_error = self._to_status(signal.status)
        return signal.value

    def last_error(self) -> DeviceStatus:
        return self._last_error


class SimulatedAbsoluteEncoder(AbsoluteEncoderInterface):
    """
    Simulated absolute encoder for testing without hardware

    The raw magnet angle is counter-clockwise positive. When linked to a
    simulated steer motor, the magnet turns with the motor's mechanism.
    """

    def __init__(
        self,
        can_id: int,
        raw_rotations: float = 0.0,
        name: Optional[str] = None,
        linked_motor=None,
        failure_rate: float = 0.0,
        seed: Optional[int] = None
    ):
        """
        Initialize simulated absolute encoder

        Args:
            can_id: Simulated CAN identifier
            raw_rotations: Magnet angle at startup in rotations
            name: Device name for logs
            linked_motor: SimulatedMotor whose mechanism position (radians) turns the magnet
            failure_rate: Probability (0-1) that any call fails
            seed: Seed for the failure RNG
        """
        self.can_id = can_id
        self._name = name or f"SimAbsEncoder[{can_id}]"
        self.raw_rotations = raw_rotations
        self.linked_motor = linked_motor
        self.failure_rate = failure_rate

        self.config = MagnetSensorConfig(discontinuity_point=1.0)
        self._link_origin = linked_motor.physical_position() if linked_motor is not None else 0.0

        self._last_error = DeviceStatus.OK
        self._pending_faults = 0
        self._rng = random.Random(seed)
        self.lock = threading.Lock()

        logger.info(f"Simulated absolute encoder initialized: {self._name}")

    @property
    def name(self) -> str:
        return self._name

    def inject_faults(self, count: int):
        """Make the next `count` calls on this device fail"""
        with self.lock:
            self._pending_faults += count

    def _begin_call(self) -> bool:
        if self._pending_faults > 0:
            self._pending_faults -= 1
            self._last_error = DeviceStatus.TIMEOUT
        elif self.failure_rate > 0 and self._rng.random() < self.failure_rate:
            self._last_error = DeviceStatus.TIMEOUT
        else:
            self._last_error = DeviceStatus.OK
        return self._last_error is DeviceStatus.OK

    def magnet_rotations(self) -> float:
        """Uncorrected magnet angle in rotations (unwrapped)"""
        rotations = self.raw_rotations
        if self.linked_motor is not None:
            rotations += (self.linked_motor.physical_position() - self._link_origin) / TWO_PI
        return rotations

    def apply_magnet_config(self, config: MagnetSensorConfig) -> DeviceStatus:
        with self.lock:
            if not self._begin_call():
                return self._last_error
            self.config = config
            return DeviceStatus.OK

    def get_absolute_position(self) -> float:
        with self.lock:
            if not self._begin_call():
                return 0.0
            rotations = self.magnet_rotations()
            if self.config.clockwise_positive:
                rotations = -rotations
            rotations += self.config.magnet_offset
            point = self.config.discontinuity_point
            return input_modulus(rotations, point - 1.0, point)

    def last_error(self) -> DeviceStatus:
        with self.lock:
            return self._last_error
