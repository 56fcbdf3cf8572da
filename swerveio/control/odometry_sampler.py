"""
High-frequency odometry sampler for swerveio

One SamplingEngine per process polls the position signals of every module
on its own thread, faster than the control loop. Each module owns a
SampleGroup: a timestamp tap plus one tap per signal, appended together
under the group's lock so a drain always sees aligned samples.

Device reads and their status checks must not interleave between the
sampling thread and the control loop: a tick runs under the engine's
odometry_lock, and module controllers take the same lock for their reads.
"""

import time
import logging
import threading
from collections import deque
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from ..hardware.interfaces import DeviceStatus
from ..utils.timing_monitor import LoopTimingMonitor

logger = logging.getLogger(__name__)


class SampleTap:
    """FIFO of captured values for one signal (or of capture timestamps)"""

    def __init__(self, name: str, capacity: int):
        self.name = name
        self.capacity = capacity
        self.values: deque = deque(maxlen=capacity)

    def full(self) -> bool:
        return len(self.values) >= self.capacity

    def __len__(self) -> int:
        return len(self.values)


class SampleGroup:
    """
    Taps of one module, captured and drained atomically

    The timestamp tap and every signal tap always hold the same number of
    entries.
    """

    def __init__(
        self,
        name: str,
        signals: Sequence[Tuple[object, Callable[[], float]]],
        capacity: int
    ):
        """
        Args:
            name: Group name for logs (usually the module name)
            signals: (device, getter) pairs sampled every engine tick
            capacity: Maximum buffered samples; oldest are dropped when full
        """
        self.name = name
        self.signals = list(signals)
        self.timestamps = SampleTap(f"{name}/timestamps", capacity)
        self.taps = [SampleTap(f"{name}/{index}", capacity) for index in range(len(self.signals))]
        self.lock = threading.Lock()

        # Touched by the engine thread only
        self.dropped_ticks = 0
        self.consecutive_failures = 0

        # Samples pushed out of full taps; reported once per stall
        self.evicted_samples = 0
        self._eviction_logged = False

    def _read_signals(self) -> Optional[List[float]]:
        """Call every getter; None if any read failed"""
        values = []
        for device, getter in self.signals:
            try:
                value = getter()
            except Exception as e:
                logger.debug(f"{self.name}: sample getter raised: {e}")
                return None
            if device.last_error() is not DeviceStatus.OK:
                return None
            values.append(value)
        return values

    def capture(self, timestamp: float) -> bool:
        """
        Sample all signals and append them with the timestamp

        Args:
            timestamp: Engine tick time shared by all groups

        Returns:
            True if a sample was appended
        """
        values = self._read_signals()
        if values is None:
            self.dropped_ticks += 1
            self.consecutive_failures += 1
            if self.consecutive_failures == 1:
                logger.warning(f"{self.name}: odometry sample dropped (device read failed)")
            return False

        if self.consecutive_failures > 1:
            logger.info(f"{self.name}: odometry sampling recovered after {self.consecutive_failures} dropped ticks")
        self.consecutive_failures = 0

        with self.lock:
            if self.timestamps.full():
                self.evicted_samples += 1
                if not self._eviction_logged:
                    self._eviction_logged = True
                    logger.warning(
                        f"{self.name}: odometry buffer full ({self.timestamps.capacity} samples), "
                        f"dropping oldest until the next drain"
                    )
            self.timestamps.values.append(timestamp)
            for tap, value in zip(self.taps, values):
                tap.values.append(value)
        return True

    def drain(self) -> Tuple[np.ndarray, List[np.ndarray]]:
        """
        Take every buffered sample and clear the taps

        Returns:
            (timestamps, [values per signal]) as float arrays of equal length
        """
        with self.lock:
            timestamps = np.fromiter(self.timestamps.values, dtype=np.float64, count=len(self.timestamps))
            values = [np.fromiter(tap.values, dtype=np.float64, count=len(tap)) for tap in self.taps]
            self.timestamps.values.clear()
            for tap in self.taps:
                tap.values.clear()
            self._eviction_logged = False
        return timestamps, values

    def __len__(self) -> int:
        with self.lock:
            return len(self.timestamps)


class SamplingEngine:
    """
    Shared odometry sampling service

    Create exactly one per process and pass it to every ModuleController.
    Runs independently of the control loop at a fixed, higher frequency.
    """

    _instances = 0

    def __init__(
        self,
        frequency_hz: float = 100.0,
        queue_capacity: int = 20,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize sampling engine

        Args:
            frequency_hz: Sampling frequency
            queue_capacity: Samples buffered per group between drains
            clock: Monotonic time source in seconds (timestamps come from here)
        """
        if frequency_hz <= 0:
            raise ValueError(f"frequency_hz must be positive, got {frequency_hz}")

        SamplingEngine._instances += 1
        if SamplingEngine._instances > 1:
            logger.warning("More than one SamplingEngine created; modules should share a single engine")

        self.frequency_hz = frequency_hz
        self.period_s = 1.0 / frequency_hz
        self.queue_capacity = queue_capacity
        self.clock = clock

        self.groups: List[SampleGroup] = []
        self.groups_lock = threading.Lock()

        # Held around every read-then-status-check pair on registered devices
        self.odometry_lock = threading.Lock()

        self.running = False
        self.thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

        self.timing_monitor = LoopTimingMonitor(target_rate_hz=frequency_hz, clock=clock)

        logger.info(f"Sampling engine initialized: {frequency_hz}Hz, capacity={queue_capacity}")

    @classmethod
    def from_config(cls, config) -> 'SamplingEngine':
        """Create the engine from a Config object"""
        return cls(
            frequency_hz=config.drive.odometry_frequency_hz,
            queue_capacity=config.drive.odometry_queue_capacity
        )

    def register_group(
        self,
        name: str,
        signals: Sequence[Tuple[object, Callable[[], float]]]
    ) -> SampleGroup:
        """
        Register the signals of one module

        Args:
            name: Group name (module name)
            signals: (device, getter) pairs; the device reports each read's status

        Returns:
            SampleGroup to drain from the control loop
        """
        group = SampleGroup(name, signals, self.queue_capacity)
        with self.groups_lock:
            self.groups.append(group)
        logger.debug(f"Registered odometry group {name} with {len(group.signals)} signals")
        return group

    def sample_once(self) -> int:
        """
        Run one engine tick

        Returns:
            Number of groups that received a sample
        """
        timestamp = self.clock()
        with self.groups_lock:
            groups = list(self.groups)

        captured = 0
        with self.odometry_lock:
            for group in groups:
                if group.capture(timestamp):
                    captured += 1
        return captured

    def start(self):
        """Start the sampling thread"""
        if not self.running:
            self.running = True
            self._stop_event.clear()
            self.thread = threading.Thread(target=self._run, name="odometry", daemon=True)
            self.thread.start()
            logger.info("Odometry sampling started")

    def stop(self):
        """Stop the sampling thread"""
        if self.running:
            self.running = False
            self._stop_event.set()
            if self.thread:
                self.thread.join(timeout=2.0)
            logger.info(f"Odometry sampling stopped: {self.timing_monitor.get_metrics()}")

    def _run(self):
        next_tick = time.monotonic()
        while self.running:
            self.timing_monitor.start_iteration()
            try:
                self.sample_once()
            except Exception as e:
                logger.error(f"Odometry sampling tick failed: {e}")
            self.timing_monitor.end_iteration()

            next_tick += self.period_s
            delay = next_tick - time.monotonic()
            if delay > 0:
                self._stop_event.wait(delay)
            else:
                # Fell behind; skip missed ticks instead of bursting
                next_tick = time.monotonic()
