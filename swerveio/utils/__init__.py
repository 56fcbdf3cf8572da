"""
Utilities for swerveio
Configuration, logging, timing, and unit conversion
"""

from .config_loader import (
    Config,
    DriveConfig,
    LoggingConfig,
    ModuleConfig,
    ModuleIndex,
    load_config,
    save_config,
)
from .logger import setup_logging
from .timing_monitor import LoopTimingMonitor
from .units import input_modulus, input_modulus_array, rotations_to_radians, radians_to_rotations

__all__ = [
    'Config',
    'DriveConfig',
    'LoggingConfig',
    'ModuleConfig',
    'ModuleIndex',
    'load_config',
    'save_config',
    'setup_logging',
    'LoopTimingMonitor',
    'input_modulus',
    'input_modulus_array',
    'rotations_to_radians',
    'radians_to_rotations',
]
