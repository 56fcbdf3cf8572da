"""
Periodic loop timing monitoring
Tracks loop rate, jitter, and overruns for the control loop and the odometry sampler
"""

import time
import threading
from collections import deque
from typing import Callable, Optional


class LoopTimingMonitor:
    """
    Monitor periodic loop timing performance
    Tracks execution time, actual rate, jitter, and overruns
    """

    def __init__(
        self,
        target_rate_hz: float,
        window_size: int = 100,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize timing monitor

        Args:
            target_rate_hz: Target loop rate in Hz
            window_size: Number of loop iterations to average
            clock: Monotonic time source in seconds
        """
        self.target_rate_hz = target_rate_hz
        self.target_period_s = 1.0 / target_rate_hz
        self.clock = clock

        self.loop_times_ms: deque = deque(maxlen=window_size)
        self.periods_s: deque = deque(maxlen=window_size)
        self.max_loop_time_ms = 0.0
        self.overrun_count = 0
        self.total_iterations = 0

        self.last_loop_start: Optional[float] = None

        self.lock = threading.Lock()

    def start_iteration(self):
        """Mark the start of a loop iteration"""
        now = self.clock()
        with self.lock:
            if self.last_loop_start is not None:
                self.periods_s.append(now - self.last_loop_start)
            self.last_loop_start = now

    def end_iteration(self):
        """Mark the end of a loop iteration"""
        now = self.clock()
        with self.lock:
            if self.last_loop_start is None:
                return

            execution_s = now - self.last_loop_start
            execution_ms = execution_s * 1000.0

            self.loop_times_ms.append(execution_ms)
            self.total_iterations += 1
            self.max_loop_time_ms = max(self.max_loop_time_ms, execution_ms)

            if execution_s > self.target_period_s:
                self.overrun_count += 1

    def get_overrun_count(self) -> int:
        with self.lock:
            return self.overrun_count

    def get_metrics(self) -> dict:
        """
        Get timing metrics

        Returns:
            Dictionary with timing information
        """
        with self.lock:
            actual_rate_hz = 0.0
            if self.periods_s:
                avg_period = sum(self.periods_s) / len(self.periods_s)
                if avg_period > 0:
                    actual_rate_hz = 1.0 / avg_period

            avg_loop_time_ms = 0.0
            jitter_ms = 0.0
            if self.loop_times_ms:
                avg_loop_time_ms = sum(self.loop_times_ms) / len(self.loop_times_ms)
                variance = sum((t - avg_loop_time_ms) ** 2 for t in self.loop_times_ms) / len(self.loop_times_ms)
                jitter_ms = variance ** 0.5

            overrun_rate_percent = 0.0
            if self.total_iterations > 0:
                overrun_rate_percent = (self.overrun_count / self.total_iterations) * 100.0

            return {
                'target_rate_hz': self.target_rate_hz,
                'actual_rate_hz': actual_rate_hz,
                'avg_loop_time_ms': avg_loop_time_ms,
                'max_loop_time_ms': self.max_loop_time_ms,
                'jitter_ms': jitter_ms,
                'overrun_count': self.overrun_count,
                'overrun_rate_percent': overrun_rate_percent,
                'total_iterations': self.total_iterations
            }

    def reset(self):
        """Reset all timing statistics"""
        with self.lock:
            self.loop_times_ms.clear()
            self.periods_s.clear()
            self.max_loop_time_ms = 0.0
            self.overrun_count = 0
            self.total_iterations = 0
            self.last_loop_start = None
