#!/usr/bin/env python3
"""
swerveio - Swerve module IO runner
Builds the four modules and the odometry sampler, then runs a fixed-rate control loop
"""

import sys
import time
import math
import signal
import logging
import argparse
from typing import Optional

from .utils.config_loader import load_config
from .utils.logger import setup_logging
from .utils.timing_monitor import LoopTimingMonitor
from .control.odometry_sampler import SamplingEngine
from .control.module_controller import create_module_controllers

logger = logging.getLogger(__name__)


class SwerveIO:
    """
    Swerve module IO application
    Owns the sampling engine and the module controllers of the drive base
    """

    def __init__(self, config_path: Optional[str] = None, simulation: bool = False):
        """
        Initialize application

        Args:
            config_path: Path to config file (default: search standard locations)
            simulation: Force simulated hardware
        """
        self.config = load_config(config_path)
        if simulation:
            self.config.simulation_mode = True

        setup_logging(self.config)

        logger.info("=" * 60)
        logger.info("swerveio - Swerve Module IO")
        logger.info("=" * 60)
        logger.info(f"Simulation mode: {self.config.simulation_mode}")

        self.running = False
        self.control_timing = LoopTimingMonitor(target_rate_hz=self.config.drive.control_rate_hz)

        self.sampling_engine = SamplingEngine.from_config(self.config)
        self.modules = create_module_controllers(self.config, self.sampling_engine)

        logger.info("swerveio initialization complete")

    def start(self):
        """Start odometry sampling"""
        self.running = True
        self.sampling_engine.start()

    def run(self, duration_s: Optional[float] = None):
        """
        Run the control loop

        Commands a slow steering sweep and a constant wheel speed, and logs
        sample counts and connectivity once per second.

        Args:
            duration_s: Stop after this many seconds (None = until stopped)
        """
        period = 1.0 / self.config.drive.control_rate_hz
        start_time = time.monotonic()
        next_cycle = start_time
        last_report = start_time
        samples_since_report = 0

        logger.info("Control loop started")

        while self.running:
            now = time.monotonic()
            if duration_s is not None and now - start_time >= duration_s:
                break

            self.control_timing.start_iteration()

            elapsed = now - start_time
            heading = 0.5 * elapsed
            velocity = 10.0 * math.sin(0.5 * elapsed)

            states = {}
            for index, module in self.modules.items():
                state, burst = module.update_inputs()
                states[index] = state
                samples_since_report += len(burst)

                module.set_steer_heading(heading)
                module.set_drive_velocity(velocity)

            self.control_timing.end_iteration()

            if now - last_report >= 1.0:
                disconnected = [
                    index.value for index, state in states.items()
                    if not (state.drive_connected and state.steer_connected)
                ]
                logger.info(
                    f"Odometry samples/s: {samples_since_report / len(self.modules):.1f} per module, "
                    f"disconnected: {disconnected or 'none'}"
                )
                samples_since_report = 0
                last_report = now

            next_cycle += period
            sleep_time = next_cycle - time.monotonic()
            if sleep_time > 0:
                time.sleep(sleep_time)
            else:
                logger.debug(f"Control loop overrun: {-sleep_time * 1000.0:.1f}ms late")
                next_cycle = time.monotonic()

        logger.info(f"Control loop stopped: {self.control_timing.get_metrics()}")

    def stop(self):
        """Stop the control loop, sampling and all motors"""
        if not self.running:
            return

        logger.info("Stopping swerveio...")
        self.running = False

        for module in self.modules.values():
            module.set_drive_open_loop(0.0)
            module.set_steer_open_loop(0.0)

        self.sampling_engine.stop()
        logger.info("swerveio stopped")

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.stop()


def signal_handler(signum, frame):
    """Handle shutdown signals"""
    logger.info(f"Received signal {signum}, shutting down...")
    sys.exit(0)


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(description="swerveio - Swerve module IO runner")
    parser.add_argument(
        "-c", "--config",
        default=None,
        help="Path to configuration file (default: config/config.yaml)"
    )
    parser.add_argument(
        "-s", "--simulation",
        action="store_true",
        help="Force simulation mode"
    )
    parser.add_argument(
        "-d", "--duration",
        type=float,
        help="Run for this many seconds, then exit"
    )

    args = parser.parse_args()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        with SwerveIO(config_path=args.config, simulation=args.simulation) as app:
            app.start()
            app.run(duration_s=args.duration)

    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)

    logger.info("swerveio shutdown complete")


if __name__ == "__main__":
    main()
