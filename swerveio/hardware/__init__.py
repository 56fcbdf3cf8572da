"""
Hardware abstraction layer for swerveio
Provides interfaces and implementations for module motor controllers and absolute encoders
"""

from .interfaces import (
    AbsoluteEncoderInterface,
    ControlType,
    DeviceStatus,
    MagnetSensorConfig,
    MotorControllerConfig,
    MotorControllerInterface,
)

from .device_util import try_until_ok, read_if_ok
from .encoder import CANcoderEncoder, SimulatedAbsoluteEncoder
from .motor import SparkMaxMotor, SimulatedMotor
from .factory import HardwareFactory

__all__ = [
    # Interfaces
    'AbsoluteEncoderInterface',
    'ControlType',
    'DeviceStatus',
    'MagnetSensorConfig',
    'MotorControllerConfig',
    'MotorControllerInterface',
    # Device call helpers
    'try_until_ok',
    'read_if_ok',
    # Absolute encoder implementations
    'CANcoderEncoder',
    'SimulatedAbsoluteEncoder',
    # Motor controller implementations
    'SparkMaxMotor',
    'SimulatedMotor',
    # Factory
    'HardwareFactory',
]
