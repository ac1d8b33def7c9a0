"""Tests for math_utils module."""

import math

import numpy as np
import pytest

from poseforge.core.math_utils import (
    vec2, as_vec2, mat3_identity, mat3_translation, mat3_rotation, mat3_scale,
    mat3_inverse, transform_point,
    length, normalize, dot, cross, polar, rotate_vec2, decompose,
    project_on_segment, normalize_angle, angle_difference,
    clamp, deg_to_rad, rad_to_deg,
)


def test_vec2():
    v = vec2(1, 2)
    assert v.shape == (2,)
    assert v.dtype == np.float64
    np.testing.assert_array_equal(v, [1, 2])


def test_as_vec2_copies():
    src = np.array([3.0, 4.0])
    v = as_vec2(src)
    v[0] = 0.0
    assert src[0] == 3.0
    np.testing.assert_array_equal(as_vec2((1, 2)), [1.0, 2.0])


def test_mat3_identity():
    np.testing.assert_array_equal(mat3_identity(), np.eye(3))


def test_mat3_translation():
    p = transform_point(mat3_translation(1, 2), vec2(0, 0))
    np.testing.assert_array_almost_equal(p, [1, 2])


def test_mat3_scale():
    p = transform_point(mat3_scale(2, 3), vec2(1, 1))
    np.testing.assert_array_almost_equal(p, [2, 3])


def test_mat3_rotation():
    p = transform_point(mat3_rotation(math.pi / 2), vec2(1, 0))
    np.testing.assert_array_almost_equal(p, [0, 1])


def test_mat3_inverse():
    m = mat3_translation(5, -3) @ mat3_rotation(0.7)
    np.testing.assert_array_almost_equal(m @ mat3_inverse(m), np.eye(3), decimal=10)


def test_length_and_normalize():
    assert length(vec2(3, 4)) == pytest.approx(5.0)
    np.testing.assert_array_almost_equal(normalize(vec2(3, 0)), [1, 0])


def test_normalize_zero():
    np.testing.assert_array_equal(normalize(vec2(0, 0)), [0, 0])


def test_dot_cross():
    assert dot(vec2(1, 2), vec2(3, 4)) == 11.0
    assert cross(vec2(1, 0), vec2(0, 1)) == 1.0
    assert cross(vec2(0, 1), vec2(1, 0)) == -1.0


def test_polar():
    np.testing.assert_array_almost_equal(polar(2.0, math.pi / 2), [0, 2])


def test_rotate_vec2_counter_clockwise():
    np.testing.assert_array_almost_equal(rotate_vec2(vec2(1, 0), math.pi / 2), [0, 1])
    np.testing.assert_array_almost_equal(rotate_vec2(vec2(1, 0), -math.pi / 2), [0, -1])


def test_decompose():
    par, perp = decompose(vec2(2, 0), vec2(3, 4))
    np.testing.assert_array_almost_equal(par, [3, 0])
    np.testing.assert_array_almost_equal(perp, [0, 4])


def test_decompose_sums_to_input():
    v = vec2(-1.5, 2.25)
    par, perp = decompose(vec2(1, 1), v)
    np.testing.assert_array_almost_equal(par + perp, v)
    assert dot(par, perp) == pytest.approx(0.0, abs=1e-12)


def test_project_on_segment():
    pos, rate = project_on_segment(vec2(0, 0), vec2(10, 0), vec2(2.5, 3))
    np.testing.assert_array_almost_equal(pos, [2.5, 0])
    assert rate == pytest.approx(0.25)


def test_project_on_segment_clamps():
    pos, rate = project_on_segment(vec2(0, 0), vec2(10, 0), vec2(15, 1))
    np.testing.assert_array_almost_equal(pos, [10, 0])
    assert rate == 1.0
    _, rate = project_on_segment(vec2(0, 0), vec2(10, 0), vec2(-4, 1))
    assert rate == 0.0


def test_project_on_degenerate_segment():
    pos, rate = project_on_segment(vec2(1, 1), vec2(1, 1), vec2(5, 5))
    np.testing.assert_array_equal(pos, [1, 1])
    assert rate == 0.0


def test_normalize_angle_range():
    assert normalize_angle(math.pi) == pytest.approx(math.pi)
    assert normalize_angle(-math.pi) == pytest.approx(math.pi)
    assert normalize_angle(0.5) == pytest.approx(0.5)
    assert normalize_angle(2 * math.pi + 0.5) == pytest.approx(0.5)
    assert normalize_angle(-2 * math.pi - 0.5) == pytest.approx(-0.5)
    for a in np.linspace(-20.0, 20.0, 81):
        n = normalize_angle(float(a))
        assert -math.pi < n <= math.pi


def test_angle_difference():
    assert angle_difference(0.1, -0.1) == pytest.approx(-0.2)
    # Shortest way across the +-pi seam
    assert angle_difference(3.0, -3.0) == pytest.approx(2 * math.pi - 6.0)
    assert angle_difference(-3.0, 3.0) == pytest.approx(6.0 - 2 * math.pi)


def test_clamp():
    assert clamp(5, 0, 10) == 5
    assert clamp(-1, 0, 10) == 0
    assert clamp(15, 0, 10) == 10


def test_deg_rad_roundtrip():
    assert abs(rad_to_deg(deg_to_rad(45.0)) - 45.0) < 1e-10
