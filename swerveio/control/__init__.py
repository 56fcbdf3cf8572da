"""
Control layer for swerveio
Module controllers and odometry sampling
"""

from .pid import PIDController
from .odometry_sampler import SampleGroup, SampleTap, SamplingEngine
from .module_controller import (
    ModuleController,
    ModuleState,
    OdometrySampleBurst,
    create_module_controllers,
)

__all__ = [
    'PIDController',
    'SampleGroup',
    'SampleTap',
    'SamplingEngine',
    'ModuleController',
    'ModuleState',
    'OdometrySampleBurst',
    'create_module_controllers',
]
