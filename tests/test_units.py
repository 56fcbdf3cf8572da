"""
Tests for unit conversion and wrap-around reduction
"""

import math

import numpy as np
import pytest

from swerveio.utils.units import (
    TWO_PI,
    input_modulus,
    input_modulus_array,
    radians_to_rotations,
    rotations_to_radians,
    sign,
)


def test_rotation_conversion():
    assert rotations_to_radians(0.25) == pytest.approx(math.pi / 2)
    assert rotations_to_radians(-1.0) == pytest.approx(-TWO_PI)
    assert radians_to_rotations(math.pi) == pytest.approx(0.5)


@pytest.mark.parametrize("value, expected", [
    (0.0, 0.0),
    (math.pi, math.pi),
    (-math.pi / 2, 1.5 * math.pi),
    (5 * math.pi, math.pi),
    (-7 * math.pi, math.pi),
    (TWO_PI, 0.0),
])
def test_input_modulus_zero_to_two_pi(value, expected):
    assert input_modulus(value, 0.0, TWO_PI) == pytest.approx(expected)


def test_input_modulus_symmetric_range():
    assert input_modulus(0.75, -0.5, 0.5) == pytest.approx(-0.25)
    assert input_modulus(0.5, -0.5, 0.5) == pytest.approx(-0.5)
    assert input_modulus(-0.5, -0.5, 0.5) == pytest.approx(-0.5)
    assert input_modulus(-1.25, -0.5, 0.5) == pytest.approx(-0.25)


def test_input_modulus_result_never_reaches_upper_bound():
    for value in np.linspace(-20.0, 20.0, 2001):
        result = input_modulus(float(value), 0.0, TWO_PI)
        assert 0.0 <= result < TWO_PI


def test_input_modulus_rejects_empty_range():
    with pytest.raises(ValueError):
        input_modulus(1.0, 1.0, 1.0)
    with pytest.raises(ValueError):
        input_modulus_array([1.0], 2.0, 1.0)


def test_input_modulus_array_matches_scalar():
    values = np.array([-7.0, -1.0, 0.0, 1.0, 3.5, 6.3, 12.0])
    result = input_modulus_array(values, 0.0, TWO_PI)

    assert result.shape == values.shape
    for value, wrapped in zip(values, result):
        assert wrapped == pytest.approx(input_modulus(float(value), 0.0, TWO_PI))


def test_input_modulus_array_empty():
    result = input_modulus_array(np.zeros(0), 0.0, TWO_PI)
    assert result.shape == (0,)


def test_sign():
    assert sign(3.2) == 1.0
    assert sign(-0.1) == -1.0
    assert sign(0.0) == 0.0
