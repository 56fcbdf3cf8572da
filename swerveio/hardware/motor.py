"""
Motor controller implementations for swerveio
REV SPARK MAX (CAN) and simulated motor controller
"""

import math
import time
import random
import logging
import threading
from typing import Callable, Optional

from .interfaces import ControlType, DeviceStatus, MotorControllerConfig, MotorControllerInterface

logger = logging.getLogger(__name__)


class SparkMaxMotor(MotorControllerInterface):
    """
    REV SPARK MAX driving a brushless motor over CAN
    Uses the integrated hall sensor as relative encoder and the onboard PID
    """

    def __init__(self, can_id: int, name: Optional[str] = None):
        """
        Initialize SPARK MAX

        Args:
            can_id: CAN bus identifier
            name: Device name for logs
        """
        self.can_id = can_id
        self._name = name or f"SparkMax[{can_id}]"

        try:
            import rev
            self._rev = rev

            self.spark = rev.SparkMax(can_id, rev.SparkLowLevel.MotorType.kBrushless)
            self.encoder = self.spark.getEncoder()
            self.controller = self.spark.getClosedLoopController()

            logger.info(f"SPARK MAX initialized: {self._name}")

        except Exception as e:
            logger.error(f"Failed to initialize SPARK MAX {self._name}: {e}")
            raise

        self._control_types = {
            ControlType.VOLTAGE: rev.SparkBase.ControlType.kVoltage,
            ControlType.VELOCITY: rev.SparkBase.ControlType.kVelocity,
            ControlType.POSITION: rev.SparkBase.ControlType.kPosition,
        }
        self._slots = [
            rev.ClosedLoopSlot.kSlot0,
            rev.ClosedLoopSlot.kSlot1,
            rev.ClosedLoopSlot.kSlot2,
            rev.ClosedLoopSlot.kSlot3,
        ]

    @property
    def name(self) -> str:
        return self._name

    def _to_status(self, error) -> DeviceStatus:
        """Translate a REVLibError into a DeviceStatus"""
        if error == self._rev.REVLibError.kOk:
            return DeviceStatus.OK
        if error == self._rev.REVLibError.kTimeout:
            return DeviceStatus.TIMEOUT
        return DeviceStatus.ERROR

    def _build_config(self, config: MotorControllerConfig):
        rev = self._rev
        spark_config = rev.SparkMaxConfig()

        idle_mode = rev.SparkBaseConfig.IdleMode.kBrake if config.brake_mode else rev.SparkBaseConfig.IdleMode.kCoast
        spark_config.setIdleMode(idle_mode) \
            .smartCurrentLimit(config.smart_current_limit) \
            .voltageCompensation(config.voltage_compensation) \
            .inverted(config.inverted)

        spark_config.encoder \
            .positionConversionFactor(config.position_conversion_factor) \
            .velocityConversionFactor(config.velocity_conversion_factor)
        if config.uvw_measurement_period_ms > 0:
            spark_config.encoder \
                .uvwMeasurementPeriod(config.uvw_measurement_period_ms) \
                .uvwAverageDepth(config.uvw_average_depth)

        spark_config.closedLoop \
            .setFeedbackSensor(rev.ClosedLoopConfig.FeedbackSensor.kPrimaryEncoder) \
            .pidf(config.kp, config.ki, config.kd, 0.0)
        if config.position_wrapping_enabled:
            spark_config.closedLoop \
                .positionWrappingEnabled(True) \
                .positionWrappingInputRange(
                    config.position_wrapping_min_input,
                    config.position_wrapping_max_input
                )

        spark_config.signals \
            .primaryEncoderPositionAlwaysOn(True) \
            .primaryEncoderPositionPeriodMs(config.position_period_ms) \
            .primaryEncoderVelocityAlwaysOn(True) \
            .primaryEncoderVelocityPeriodMs(config.velocity_period_ms) \
            .appliedOutputPeriodMs(config.applied_output_period_ms) \
            .busVoltagePeriodMs(config.bus_voltage_period_ms) \
            .outputCurrentPeriodMs(config.output_current_period_ms)

        return spark_config

    def configure(self, config: MotorControllerConfig) -> DeviceStatus:
        try:
            error = self.spark.configure(
                self._build_config(config),
                self._rev.SparkBase.ResetMode.kResetSafeParameters,
                self._rev.SparkBase.PersistMode.kPersistParameters
            )
            return self._to_status(error)
        except Exception as e:
            logger.error(f"Error configuring {self._name}: {e}")
            return DeviceStatus.ERROR

    def last_error(self) -> DeviceStatus:
        return self._to_status(self.spark.getLastError())

    def get_position(self) -> float:
        return self.encoder.getPosition()

    def get_velocity(self) -> float:
        return self.encoder.getVelocity()

    def get_applied_output(self) -> float:
        return self.spark.getAppliedOutput()

    def get_bus_voltage(self) -> float:
        return self.spark.getBusVoltage()

    def get_output_current(self) -> float:
        return self.spark.getOutputCurrent()

    def set_encoder_position(self, position: float) -> DeviceStatus:
        return self._to_status(self.encoder.setPosition(position))

    def set_voltage(self, volts: float):
        self.spark.setVoltage(volts)

    def set_reference(
        self,
        value: float,
        control_type: ControlType,
        slot: int = 0,
        arb_feedforward_volts: float = 0.0
    ) -> DeviceStatus:
        error = self.controller.setReference(
            value,
            self._control_types[control_type],
            self._slots[slot],
            arb_feedforward_volts,
            self._rev.SparkClosedLoopController.ArbFFUnits.kVoltage
        )
        return self._to_status(error)


class SimulatedMotor(MotorControllerInterface):
    """
    Simulated smart motor controller for testing without hardware

    First-order brushless motor model (rotor speed lags the applied voltage)
    with an onboard PID that runs the velocity and position references in
    converted units, like the real controller does.
    """

    # Simulation sub-step for the motor model and onboard PID
    MAX_STEP_S = 0.001

    def __init__(
        self,
        can_id: int,
        name: Optional[str] = None,
        free_speed_rpm_per_volt: float = 473.0,  # NEO: 5676 RPM at 12V
        time_constant_s: float = 0.03,
        resistance_ohms: float = 0.114,
        bus_voltage: float = 12.0,
        failure_rate: float = 0.0,
        seed: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize simulated motor controller

        Args:
            can_id: Simulated CAN identifier
            name: Device name for logs
            free_speed_rpm_per_volt: Steady-state rotor speed per applied volt
            time_constant_s: Mechanical time constant of the rotor
            resistance_ohms: Winding resistance used for current estimation
            bus_voltage: Simulated battery voltage
            failure_rate: Probability (0-1) that any call fails
            seed: Seed for the failure RNG
            clock: Time source in seconds
        """
        from ..control.pid import PIDController

        self.can_id = can_id
        self._name = name or f"SimMotor[{can_id}]"
        self.free_speed_rpm_per_volt = free_speed_rpm_per_volt
        self.time_constant_s = time_constant_s
        self.resistance_ohms = resistance_ohms
        self.bus_voltage = bus_voltage
        self.failure_rate = failure_rate
        self.clock = clock

        self.config = MotorControllerConfig()
        self.configure_count = 0

        # Physical rotor state
        self.rotor_rotations = 0.0
        self.rotor_rpm = 0.0
        # Reported position = rotor_rotations * position factor + offset
        self.encoder_offset = 0.0

        # Command state
        self.control_type = ControlType.VOLTAGE
        self.command_volts = 0.0
        self.applied_volts = 0.0
        self.reference = 0.0
        self.arb_feedforward_volts = 0.0
        self.pid = PIDController(kp=0.0, ki=0.0, kd=0.0)

        self._last_error = DeviceStatus.OK
        self._pending_faults = 0
        self._rng = random.Random(seed)
        self._last_update_time = clock()
        self.lock = threading.RLock()

        logger.info(f"Simulated motor initialized: {self._name}")

    @property
    def name(self) -> str:
        return self._name

    def inject_faults(self, count: int):
        """Make the next `count` calls on this device fail"""
        with self.lock:
            self._pending_faults += count

    def _begin_call(self) -> bool:
        """Advance the model and decide whether this call succeeds"""
        self._update_physics()
        if self._pending_faults > 0:
            self._pending_faults -= 1
            self._last_error = DeviceStatus.TIMEOUT
        elif self.failure_rate > 0 and self._rng.random() < self.failure_rate:
            self._last_error = DeviceStatus.TIMEOUT
        else:
            self._last_error = DeviceStatus.OK
        return self._last_error is DeviceStatus.OK

    def _measured_position(self) -> float:
        return self.rotor_rotations * self.config.position_conversion_factor + self.encoder_offset

    def _measured_velocity(self) -> float:
        return self.rotor_rpm * self.config.velocity_conversion_factor

    def _control_volts(self, dt: float) -> float:
        """Voltage requested by the active control mode"""
        if self.control_type is ControlType.VELOCITY:
            duty = self.pid.compute(self._measured_velocity(), dt)
            return duty * self.config.voltage_compensation + self.arb_feedforward_volts
        if self.control_type is ControlType.POSITION:
            duty = self.pid.compute(self._measured_position(), dt)
            return duty * self.config.voltage_compensation + self.arb_feedforward_volts
        return self.command_volts

    def _update_physics(self):
        """Integrate the motor model up to the current clock time"""
        now = self.clock()
        elapsed = now - self._last_update_time
        self._last_update_time = now
        if elapsed <= 0:
            return

        # Ignore large gaps (debugger pauses, clock jumps)
        elapsed = min(elapsed, 1.0)
        steps = max(1, int(math.ceil(elapsed / self.MAX_STEP_S)))
        dt = elapsed / steps

        for _ in range(steps):
            volts = self._control_volts(dt)
            volts = max(-self.bus_voltage, min(self.bus_voltage, volts))
            self.applied_volts = volts

            target_rpm = volts * self.free_speed_rpm_per_volt
            alpha = min(1.0, dt / self.time_constant_s)
            self.rotor_rpm += (target_rpm - self.rotor_rpm) * alpha
            self.rotor_rotations += self.rotor_rpm / 60.0 * dt

    def physical_position(self) -> float:
        """True mechanism position in converted units, ignoring encoder reseeds"""
        with self.lock:
            self._update_physics()
            return self.rotor_rotations * self.config.position_conversion_factor

    def configure(self, config: MotorControllerConfig) -> DeviceStatus:
        from ..control.pid import wrapped_error_function

        with self.lock:
            if not self._begin_call():
                return self._last_error

            # Keep the reported position continuous across a factor change
            position = self._measured_position()
            self.config = config
            self.encoder_offset = position - self.rotor_rotations * config.position_conversion_factor

            self.pid.set_gains(kp=config.kp, ki=config.ki, kd=config.kd)
            if config.position_wrapping_enabled:
                self.pid.set_error_function(wrapped_error_function(
                    config.position_wrapping_min_input,
                    config.position_wrapping_max_input
                ))
            else:
                self.pid.set_error_function(None)
            self.pid.reset()

            self.configure_count += 1
            return DeviceStatus.OK

    def last_error(self) -> DeviceStatus:
        with self.lock:
            return self._last_error

    def get_position(self) -> float:
        with self.lock:
            if not self._begin_call():
                return 0.0
            return self._measured_position()

    def get_velocity(self) -> float:
        with self.lock:
            if not self._begin_call():
                return 0.0
            return self._measured_velocity()

    def get_applied_output(self) -> float:
        with self.lock:
            if not self._begin_call():
                return 0.0
            return self.applied_volts / self.bus_voltage

    def get_bus_voltage(self) -> float:
        with self.lock:
            if not self._begin_call():
                return 0.0
            return self.bus_voltage

    def get_output_current(self) -> float:
        with self.lock:
            if not self._begin_call():
                return 0.0
            back_emf = self.rotor_rpm / self.free_speed_rpm_per_volt
            return abs(self.applied_volts - back_emf) / self.resistance_ohms

    def set_encoder_position(self, position: float) -> DeviceStatus:
        with self.lock:
            if not self._begin_call():
                return self._last_error
            self.encoder_offset = position - self.rotor_rotations * self.config.position_conversion_factor
            return DeviceStatus.OK

    def set_voltage(self, volts: float):
        with self.lock:
            if not self._begin_call():
                return
            self.control_type = ControlType.VOLTAGE
            self.command_volts = volts

    def set_reference(
        self,
        value: float,
        control_type: ControlType,
        slot: int = 0,
        arb_feedforward_volts: float = 0.0
    ) -> DeviceStatus:
        with self.lock:
            if not self._begin_call():
                return self._last_error

            if control_type is ControlType.VOLTAGE:
                self.control_type = ControlType.VOLTAGE
                self.command_volts = value + arb_feedforward_volts
                return DeviceStatus.OK

            if control_type is not self.control_type:
                self.pid.reset()
            self.control_type = control_type
            self.reference = value
            self.arb_feedforward_volts = arb_feedforward_volts
            self.pid.set_setpoint(value)
            logger.debug(f"{self._name} reference: {control_type.value}={value:.4f} ff={arb_feedforward_volts:.3f}V")
            return DeviceStatus.OK
