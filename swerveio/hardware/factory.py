"""
Hardware factory for swerveio
Creates module devices based on configuration (real or simulated)
"""

import logging
from typing import Tuple

from .interfaces import AbsoluteEncoderInterface, MotorControllerInterface
from .encoder import CANcoderEncoder, SimulatedAbsoluteEncoder
from .motor import SparkMaxMotor, SimulatedMotor

logger = logging.getLogger(__name__)


class HardwareFactory:
    """
    Factory for creating module hardware
    Automatically chooses between real and simulated hardware based on config
    """

    @staticmethod
    def create_motor(config, can_id: int, name: str) -> MotorControllerInterface:
        """
        Create motor controller instance

        Args:
            config: Configuration object
            can_id: CAN identifier
            name: Device name for logs

        Returns:
            Motor controller instance (real or simulated)
        """
        if config.simulation_mode:
            logger.info(f"Creating simulated motor: {name}")
            return SimulatedMotor(can_id=can_id, name=name)
        else:
            logger.info(f"Creating SPARK MAX: {name} (CAN {can_id})")
            return SparkMaxMotor(can_id=can_id, name=name)

    @staticmethod
    def create_absolute_encoder(config, can_id: int, name: str, steer_motor=None) -> AbsoluteEncoderInterface:
        """
        Create absolute encoder instance

        Args:
            config: Configuration object
            can_id: CAN identifier
            name: Device name for logs
            steer_motor: Steer motor (simulation links the magnet to it)

        Returns:
            Absolute encoder instance (real or simulated)
        """
        if config.simulation_mode:
            logger.info(f"Creating simulated absolute encoder: {name}")
            return SimulatedAbsoluteEncoder(can_id=can_id, name=name, linked_motor=steer_motor)
        else:
            logger.info(f"Creating CANcoder: {name} (CAN {can_id})")
            return CANcoderEncoder(can_id=can_id, name=name)

    @staticmethod
    def create_module_devices(
        config,
        module_name: str,
        module_config
    ) -> Tuple[MotorControllerInterface, MotorControllerInterface, AbsoluteEncoderInterface]:
        """
        Create the drive motor, steer motor and absolute encoder of one module

        Args:
            config: Configuration object
            module_name: Module name used as device name prefix
            module_config: ModuleConfig record for this module

        Returns:
            (drive, steer, absolute_encoder) tuple
        """
        drive = HardwareFactory.create_motor(config, module_config.drive_can_id, f"{module_name}/drive")
        steer = HardwareFactory.create_motor(config, module_config.steer_can_id, f"{module_name}/steer")
        absolute_encoder = HardwareFactory.create_absolute_encoder(
            config,
            module_config.absolute_can_id,
            f"{module_name}/absolute",
            steer_motor=steer
        )
        return drive, steer, absolute_encoder
