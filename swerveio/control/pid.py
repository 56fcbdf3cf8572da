"""
PID controller for swerveio
Discrete PID used by simulated motor controllers to stand in for onboard closed-loop control
"""

import logging
from typing import Callable, Optional, Tuple

from ..utils.units import input_modulus

logger = logging.getLogger(__name__)


def wrapped_error_function(minimum: float, maximum: float) -> Callable[[float, float], float]:
    """
    Build an error function for a continuous (wrapping) input range

    The returned error is the shortest signed distance from measurement to
    setpoint, in [-(range/2), range/2).
    """
    half_range = (maximum - minimum) / 2.0

    def error(setpoint: float, measurement: float) -> float:
        return input_modulus(setpoint - measurement, -half_range, half_range)

    return error


class PIDController:
    """
    PID (Proportional-Integral-Derivative) Controller
    Fixed time step, optional output limits and wrap-aware error
    """

    def __init__(
        self,
        kp: float = 1.0,
        ki: float = 0.0,
        kd: float = 0.0,
        setpoint: float = 0.0,
        output_limits: Optional[Tuple[float, float]] = None,
        error_function: Optional[Callable[[float, float], float]] = None
    ):
        """
        Initialize PID controller

        Args:
            kp: Proportional gain
            ki: Integral gain
            kd: Derivative gain
            setpoint: Initial setpoint
            output_limits: (min, max) output limits
            error_function: Optional custom error calculation function(setpoint, measurement) -> error
                           If None, uses default: setpoint - measurement
        """
        self.kp = kp
        self.ki = ki
        self.kd = kd
        self.setpoint = setpoint
        self.output_limits = output_limits
        self.error_function = error_function if error_function is not None else lambda s, m: s - m

        self.integral = 0.0
        self.last_error: Optional[float] = None
        self.last_output = 0.0

    def compute(self, measurement: float, dt: float) -> float:
        """
        Compute PID output

        Args:
            measurement: Current process variable
            dt: Time step in seconds

        Returns:
            Control output
        """
        error = self.error_function(self.setpoint, measurement)

        p_term = self.kp * error

        if dt > 0:
            self.integral += error * dt
        i_term = self.ki * self.integral

        if dt > 0 and self.last_error is not None:
            d_term = self.kd * (error - self.last_error) / dt
        else:
            d_term = 0.0

        output = p_term + i_term + d_term

        if self.output_limits is not None:
            output = max(self.output_limits[0], min(self.output_limits[1], output))

        self.last_error = error
        self.last_output = output
        return output

    def set_setpoint(self, setpoint: float):
        self.setpoint = setpoint

    def set_error_function(self, error_function: Optional[Callable[[float, float], float]]):
        """Replace the error function (None restores setpoint - measurement)"""
        self.error_function = error_function if error_function is not None else lambda s, m: s - m

    def set_gains(self, kp: Optional[float] = None, ki: Optional[float] = None, kd: Optional[float] = None):
        """
        Update PID gains

        Args:
            kp: Proportional gain (None = no change)
            ki: Integral gain (None = no change)
            kd: Derivative gain (None = no change)
        """
        if kp is not None:
            self.kp = kp
        if ki is not None:
            self.ki = ki
        if kd is not None:
            self.kd = kd

    def reset(self):
        """Reset PID state (integral and last error)"""
        self.integral = 0.0
        self.last_error = None
        self.last_output = 0.0
