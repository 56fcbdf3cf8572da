"""
Unit conversion helpers for swerveio
Rotations/radians conversion and wrap-around reduction
"""

import math

import numpy as np
import wpimath

TWO_PI = 2.0 * math.pi


def rotations_to_radians(rotations: float) -> float:
    """Convert mechanism rotations to radians"""
    return rotations * TWO_PI


def radians_to_rotations(radians: float) -> float:
    """Convert radians to mechanism rotations"""
    return radians / TWO_PI


def input_modulus(value: float, minimum: float, maximum: float) -> float:
    """
    Reduce a value into the half-open range [minimum, maximum)

    Args:
        value: Value to reduce (e.g. an angle in radians)
        minimum: Lower bound of the range (inclusive)
        maximum: Upper bound of the range (exclusive)

    Returns:
        Equivalent value inside [minimum, maximum)
    """
    if maximum <= minimum:
        raise ValueError(f"Empty wrap range [{minimum}, {maximum})")

    result = wpimath.inputModulus(value, minimum, maximum)
    # inputModulus can return either bound for inputs on a boundary
    if result >= maximum:
        result = minimum
    return result


def input_modulus_array(values, minimum: float, maximum: float) -> np.ndarray:
    """Vectorised input_modulus for sample bursts"""
    modulus = maximum - minimum
    if modulus <= 0:
        raise ValueError(f"Empty wrap range [{minimum}, {maximum})")

    values = np.asarray(values, dtype=np.float64)
    result = minimum + np.mod(values - minimum, modulus)
    return np.where(result >= maximum, minimum, result)


def sign(value: float) -> float:
    """Signum returning -1.0, 0.0 or 1.0"""
    if value > 0:
        return 1.0
    if value < 0:
        return -1.0
    return 0.0
