"""
Swerve module IO
Per-wheel hardware abstraction and high-rate odometry sampling for a swerve drive base
"""

__version__ = '1.0.0'
