"""
Configuration loader for swerveio
Loads and validates configuration from YAML file
"""

import os
import math
import yaml
import logging
from enum import Enum
from pathlib import Path
from typing import Dict, Optional
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


class ModuleIndex(Enum):
    """Wheel positions of the drive base"""
    FRONT_LEFT = "front_left"
    FRONT_RIGHT = "front_right"
    BACK_LEFT = "back_left"
    BACK_RIGHT = "back_right"


@dataclass
class ModuleConfig:
    """Per-module hardware configuration"""
    drive_can_id: int = 0
    steer_can_id: int = 0
    absolute_can_id: int = 0
    drive_inverted: bool = False
    steer_inverted: bool = False
    absolute_clockwise_positive: bool = False  # False = counter-clockwise positive
    zero_rotation: float = 0.0  # Magnet offset added to the raw sensor angle (rotations)


def _default_modules() -> Dict[ModuleIndex, ModuleConfig]:
    return {
        ModuleIndex.FRONT_LEFT: ModuleConfig(drive_can_id=1, steer_can_id=2, absolute_can_id=9),
        ModuleIndex.FRONT_RIGHT: ModuleConfig(drive_can_id=5, steer_can_id=6, absolute_can_id=10),
        ModuleIndex.BACK_LEFT: ModuleConfig(drive_can_id=3, steer_can_id=4, absolute_can_id=11),
        ModuleIndex.BACK_RIGHT: ModuleConfig(drive_can_id=7, steer_can_id=8, absolute_can_id=12),
    }


@dataclass
class DriveConfig:
    """Drive base tuning constants shared by all modules"""
    # Drive motor (MAXSwerve, 14T pinion)
    drive_motor_reduction: float = (45.0 * 22.0) / (14.0 * 15.0)
    drive_current_limit: int = 50
    drive_kp: float = 0.0
    drive_kd: float = 0.0
    drive_ks: float = 0.0
    drive_kv: float = 0.1

    # Steer motor
    steer_motor_reduction: float = 9424.0 / 203.0
    steer_current_limit: int = 20
    steer_kp: float = 2.0
    steer_kd: float = 0.0
    steer_pid_min_input: float = 0.0
    steer_pid_max_input: float = 2.0 * math.pi

    voltage_compensation: float = 12.0
    absolute_discontinuity_point: float = 0.5  # Sensor reports [point - 1, point)

    control_rate_hz: float = 50.0
    odometry_frequency_hz: float = 100.0
    odometry_queue_capacity: int = 20
    signal_period_ms: int = 20

    configure_attempts: int = 5
    connection_debounce_s: float = 0.5

    @property
    def drive_position_factor(self) -> float:
        """Rotor rotations -> wheel radians"""
        return 2.0 * math.pi / self.drive_motor_reduction

    @property
    def drive_velocity_factor(self) -> float:
        """Rotor RPM -> wheel rad/sec"""
        return 2.0 * math.pi / 60.0 / self.drive_motor_reduction

    @property
    def steer_position_factor(self) -> float:
        """Rotor rotations -> module radians"""
        return 2.0 * math.pi / self.steer_motor_reduction

    @property
    def steer_velocity_factor(self) -> float:
        """Rotor RPM -> module rad/sec"""
        return 2.0 * math.pi / 60.0 / self.steer_motor_reduction

    @property
    def odometry_period_ms(self) -> int:
        return int(1000.0 / self.odometry_frequency_hz)

    def validate(self):
        """
        Check values that would otherwise fail deep inside the control path

        Raises:
            ValueError: If a value is out of range
        """
        if self.steer_pid_max_input <= self.steer_pid_min_input:
            raise ValueError(
                f"steer_pid_max_input ({self.steer_pid_max_input}) must be greater than "
                f"steer_pid_min_input ({self.steer_pid_min_input})"
            )
        if self.odometry_frequency_hz <= 0 or self.control_rate_hz <= 0:
            raise ValueError("odometry_frequency_hz and control_rate_hz must be positive")
        if self.odometry_frequency_hz <= self.control_rate_hz:
            logger.warning(
                f"Odometry frequency ({self.odometry_frequency_hz}Hz) is not above the "
                f"control rate ({self.control_rate_hz}Hz)"
            )
        if self.configure_attempts < 1:
            raise ValueError("configure_attempts must be at least 1")
        if self.odometry_queue_capacity < 1:
            raise ValueError("odometry_queue_capacity must be at least 1")


@dataclass
class LoggingConfig:
    """Logging configuration"""
    console_level: str = "INFO"
    file_enabled: bool = False
    file_level: str = "DEBUG"
    file_path: str = "logs/swerveio.log"
    file_max_bytes: int = 10485760
    file_backup_count: int = 5


@dataclass
class Config:
    """Main configuration class"""
    simulation_mode: bool = True
    drive: DriveConfig = field(default_factory=DriveConfig)
    modules: Dict[ModuleIndex, ModuleConfig] = field(default_factory=_default_modules)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def module(self, index: ModuleIndex) -> ModuleConfig:
        """Get the configuration record for one wheel position"""
        return self.modules[index]


def _dict_to_dataclass(cls, data: Dict):
    """Convert dictionary to dataclass, skipping unknown keys"""
    if not isinstance(data, dict):
        return data

    field_names = set(cls.__dataclass_fields__)
    kwargs = {}

    for key, value in data.items():
        if key not in field_names:
            logger.warning(f"Unknown config key in {cls.__name__}: {key}")
            continue
        kwargs[key] = value

    return cls(**kwargs)


def _parse_modules(modules_data: Dict) -> Dict[ModuleIndex, ModuleConfig]:
    """Parse the per-module section, keyed by wheel position name"""
    modules = _default_modules()

    for name, module_data in modules_data.items():
        try:
            index = ModuleIndex(name)
        except ValueError:
            logger.warning(f"Unknown module name: {name}")
            continue
        modules[index] = _dict_to_dataclass(ModuleConfig, module_data or {})

    return modules


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from YAML file

    Args:
        config_path: Path to configuration file. If None, searches for config.yaml
                     in standard locations.

    Returns:
        Config object with loaded settings

    Raises:
        FileNotFoundError: If an explicit configuration file is not found
        yaml.YAMLError: If configuration file is invalid
        ValueError: If drive constants are inconsistent
    """
    if config_path is None:
        search_paths = [
            Path('config/config.yaml'),
            Path('config.yaml'),
            Path('/etc/swerveio/config.yaml'),
        ]

        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break
        else:
            logger.warning("No config file found, using defaults")
            return Config()

    logger.info(f"Loading configuration from: {config_path}")

    with open(config_path, 'r') as f:
        config_data = yaml.safe_load(f)

    if config_data is None:
        logger.warning("Empty config file, using defaults")
        return Config()

    config = Config()

    for key in config_data:
        if key not in ('simulation_mode', 'drive', 'modules', 'logging'):
            logger.warning(f"Unknown config section: {key}")

    if 'simulation_mode' in config_data:
        config.simulation_mode = bool(config_data['simulation_mode'])

    if 'drive' in config_data:
        config.drive = _dict_to_dataclass(DriveConfig, config_data['drive'] or {})

    if 'modules' in config_data:
        config.modules = _parse_modules(config_data['modules'] or {})

    if 'logging' in config_data:
        config.logging = _dict_to_dataclass(LoggingConfig, config_data['logging'] or {})

    config.drive.validate()

    logger.info("Configuration loaded successfully")
    return config


def save_config(config: Config, config_path: str):
    """
    Save configuration to YAML file

    Args:
        config: Config object to save
        config_path: Path to save configuration file
    """
    from dataclasses import asdict

    config_dict = {
        'simulation_mode': config.simulation_mode,
        'drive': asdict(config.drive),
        'modules': {index.value: asdict(module) for index, module in config.modules.items()},
        'logging': asdict(config.logging),
    }

    config_dir = os.path.dirname(config_path)
    if config_dir:
        os.makedirs(config_dir, exist_ok=True)

    with open(config_path, 'w') as f:
        yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)

    logger.info(f"Configuration saved to: {config_path}")
