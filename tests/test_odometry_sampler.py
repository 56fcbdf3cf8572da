"""
Tests for the odometry sampling engine
"""

import time
import logging

import numpy as np
import pytest

from swerveio.control.odometry_sampler import SamplingEngine
from swerveio.hardware.interfaces import DeviceStatus


class FakeSignalDevice:
    """Device whose reads return a counter and can be told to fail"""

    def __init__(self, name: str, step: float = 1.0):
        self.name = name
        self.step = step
        self.value = 0.0
        self.fail_next = 0
        self.raise_next = 0
        self.status = DeviceStatus.OK

    def get(self) -> float:
        if self.raise_next > 0:
            self.raise_next -= 1
            raise RuntimeError("bus unplugged")
        if self.fail_next > 0:
            self.fail_next -= 1
            self.status = DeviceStatus.TIMEOUT
            return 0.0
        self.status = DeviceStatus.OK
        self.value += self.step
        return self.value

    def last_error(self) -> DeviceStatus:
        return self.status


def make_group(engine, name, step=1.0):
    drive = FakeSignalDevice(f"{name}/drive", step)
    steer = FakeSignalDevice(f"{name}/steer", step * 10.0)
    group = engine.register_group(name, [(drive, drive.get), (steer, steer.get)])
    return group, drive, steer


def test_groups_share_tick_timestamp(clock):
    engine = SamplingEngine(frequency_hz=100.0, queue_capacity=20, clock=clock)
    front, _, _ = make_group(engine, "front_left")
    back, _, _ = make_group(engine, "back_right")

    for _ in range(3):
        clock.advance(0.01)
        assert engine.sample_once() == 2

    front_times, front_values = front.drain()
    back_times, _ = back.drain()

    np.testing.assert_allclose(front_times, [0.01, 0.02, 0.03])
    np.testing.assert_array_equal(front_times, back_times)
    np.testing.assert_allclose(front_values[0], [1.0, 2.0, 3.0])
    np.testing.assert_allclose(front_values[1], [10.0, 20.0, 30.0])


def test_failed_read_drops_whole_tick_for_that_group(clock):
    engine = SamplingEngine(clock=clock)
    front, _, front_steer = make_group(engine, "front_left")
    back, _, _ = make_group(engine, "back_right")

    clock.advance(0.01)
    engine.sample_once()
    front_steer.fail_next = 1
    clock.advance(0.01)
    assert engine.sample_once() == 1
    clock.advance(0.01)
    engine.sample_once()

    front_times, (front_drive, front_steer_values) = front.drain()
    back_times, _ = back.drain()

    assert len(front_times) == len(front_drive) == len(front_steer_values) == 2
    np.testing.assert_allclose(front_times, [0.01, 0.03])
    assert len(back_times) == 3
    assert front.dropped_ticks == 1


def test_raising_getter_counts_as_failed_read(clock):
    engine = SamplingEngine(clock=clock)
    group, drive, _ = make_group(engine, "front_left")

    drive.raise_next = 1
    clock.advance(0.01)
    assert engine.sample_once() == 0
    clock.advance(0.01)
    assert engine.sample_once() == 1

    timestamps, values = group.drain()
    assert len(timestamps) == 1
    assert all(len(tap_values) == 1 for tap_values in values)


def test_drain_empties_taps(clock):
    engine = SamplingEngine(clock=clock)
    group, _, _ = make_group(engine, "front_left")

    clock.advance(0.01)
    engine.sample_once()
    assert len(group) == 1

    first_times, _ = group.drain()
    second_times, second_values = group.drain()

    assert len(first_times) == 1
    assert len(second_times) == 0
    assert all(len(tap_values) == 0 for tap_values in second_values)
    assert len(group) == 0


def test_full_taps_drop_oldest_samples_together(clock):
    engine = SamplingEngine(queue_capacity=20, clock=clock)
    group, _, _ = make_group(engine, "front_left")

    for _ in range(25):
        clock.advance(0.01)
        engine.sample_once()

    timestamps, (drive_values, steer_values) = group.drain()

    assert len(timestamps) == len(drive_values) == len(steer_values) == 20
    assert drive_values[0] == pytest.approx(6.0)
    assert steer_values[0] == pytest.approx(60.0)
    assert timestamps[0] == pytest.approx(0.06)


def test_full_taps_report_eviction_once_per_stall(clock, caplog):
    engine = SamplingEngine(queue_capacity=5, clock=clock)
    group, _, _ = make_group(engine, "front_left")

    def buffer_full_warnings():
        return [r for r in caplog.records if "odometry buffer full" in r.getMessage()]

    with caplog.at_level(logging.WARNING):
        for _ in range(8):
            clock.advance(0.01)
            engine.sample_once()

        assert group.evicted_samples == 3
        assert len(buffer_full_warnings()) == 1

        group.drain()
        for _ in range(6):
            clock.advance(0.01)
            engine.sample_once()

    assert group.evicted_samples == 4
    assert len(buffer_full_warnings()) == 2


def test_no_eviction_warning_while_drained_in_time(clock, caplog):
    engine = SamplingEngine(queue_capacity=5, clock=clock)
    group, _, _ = make_group(engine, "front_left")

    with caplog.at_level(logging.WARNING):
        for _ in range(20):
            clock.advance(0.01)
            engine.sample_once()
            if len(group) == 4:
                group.drain()

    assert group.evicted_samples == 0
    assert "odometry buffer full" not in caplog.text


def test_second_engine_logs_warning(caplog):
    SamplingEngine()

    with caplog.at_level(logging.WARNING):
        SamplingEngine()

    assert "More than one SamplingEngine" in caplog.text


def test_rejects_non_positive_frequency():
    with pytest.raises(ValueError):
        SamplingEngine(frequency_hz=0.0)


def test_background_thread_samples_between_drains():
    engine = SamplingEngine(frequency_hz=200.0, queue_capacity=100)
    group, _, _ = make_group(engine, "front_left")

    engine.start()
    try:
        time.sleep(0.2)
    finally:
        engine.stop()

    timestamps, (drive_values, steer_values) = group.drain()

    assert engine.thread is not None and not engine.thread.is_alive()
    assert len(timestamps) > 5
    assert len(timestamps) == len(drive_values) == len(steer_values)
    assert np.all(np.diff(timestamps) >= 0.0)
    # Every sample carries the values read on the same tick
    np.testing.assert_allclose(steer_values, drive_values * 10.0)
    assert engine.timing_monitor.get_metrics()['total_iterations'] >= len(timestamps)
