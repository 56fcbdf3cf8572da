"""
Hardware interfaces for swerveio
Abstract base classes defining contracts for module hardware

Device handles never raise on transient bus faults. Every call records a
DeviceStatus that callers inspect through last_error(), the same way the
vendor libraries report errors.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class DeviceStatus(Enum):
    """Result of the most recent call on a device handle"""
    OK = "ok"
    TIMEOUT = "timeout"
    ERROR = "error"


class ControlType(Enum):
    """Onboard closed-loop modes of a motor controller"""
    VOLTAGE = "voltage"
    VELOCITY = "velocity"
    POSITION = "position"


@dataclass
class MotorControllerConfig:
    """Configuration applied to a motor controller in a single bulk call"""
    inverted: bool = False
    brake_mode: bool = True
    smart_current_limit: int = 40
    voltage_compensation: float = 12.0

    # Relative encoder conversion (rotor rotations -> mechanism units)
    position_conversion_factor: float = 1.0
    velocity_conversion_factor: float = 1.0
    uvw_measurement_period_ms: int = 0  # 0 = controller default
    uvw_average_depth: int = 0

    # Closed-loop slot 0
    kp: float = 0.0
    ki: float = 0.0
    kd: float = 0.0
    position_wrapping_enabled: bool = False
    position_wrapping_min_input: float = 0.0
    position_wrapping_max_input: float = 0.0

    # Status frame periods
    position_period_ms: int = 20
    velocity_period_ms: int = 20
    applied_output_period_ms: int = 20
    bus_voltage_period_ms: int = 20
    output_current_period_ms: int = 20


@dataclass
class MagnetSensorConfig:
    """Absolute sensor configuration, applied so the sensor reports corrected values"""
    clockwise_positive: bool = False
    magnet_offset: float = 0.0  # rotations
    discontinuity_point: float = 0.5  # output range is [point - 1, point)


class MotorControllerInterface(ABC):
    """
    Abstract interface for a smart motor controller with an integrated
    relative encoder and onboard PID
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human readable device identity for logs"""
        pass

    @abstractmethod
    def configure(self, config: MotorControllerConfig) -> DeviceStatus:
        """
        Apply a full configuration (resets safe parameters, persists)

        Args:
            config: Motor controller configuration

        Returns:
            Status of the configuration call
        """
        pass

    @abstractmethod
    def last_error(self) -> DeviceStatus:
        """Status of the most recent call on this device"""
        pass

    @abstractmethod
    def get_position(self) -> float:
        """Relative encoder position in converted units (unbounded)"""
        pass

    @abstractmethod
    def get_velocity(self) -> float:
        """Relative encoder velocity in converted units"""
        pass

    @abstractmethod
    def get_applied_output(self) -> float:
        """Applied output as a fraction of bus voltage (-1.0 to 1.0)"""
        pass

    @abstractmethod
    def get_bus_voltage(self) -> float:
        """Input bus voltage in volts"""
        pass

    @abstractmethod
    def get_output_current(self) -> float:
        """Output current in amps"""
        pass

    @abstractmethod
    def set_encoder_position(self, position: float) -> DeviceStatus:
        """
        Force the relative encoder to report a position

        Args:
            position: New position in converted units
        """
        pass

    @abstractmethod
    def set_voltage(self, volts: float):
        """Open-loop voltage command"""
        pass

    @abstractmethod
    def set_reference(
        self,
        value: float,
        control_type: ControlType,
        slot: int = 0,
        arb_feedforward_volts: float = 0.0
    ) -> DeviceStatus:
        """
        Closed-loop command executed by the onboard controller

        Args:
            value: Setpoint in converted units
            control_type: Closed-loop mode
            slot: Gain slot
            arb_feedforward_volts: Additional feedforward voltage
        """
        pass


class AbsoluteEncoderInterface(ABC):
    """
    Abstract interface for an absolute angle sensor
    Reading wraps within one rotation and is valid at power-on
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human readable device identity for logs"""
        pass

    @abstractmethod
    def apply_magnet_config(self, config: MagnetSensorConfig) -> DeviceStatus:
        """Apply direction, offset and discontinuity configuration"""
        pass

    @abstractmethod
    def get_absolute_position(self) -> float:
        """Corrected absolute position in rotations"""
        pass

    @abstractmethod
    def last_error(self) -> DeviceStatus:
        """Status of the most recent call on this device"""
        pass
