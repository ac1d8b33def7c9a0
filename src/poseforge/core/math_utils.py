"""NumPy-backed 2D math utilities: Vec2, Mat3 and angle helpers.

Vectors are plain numpy arrays of shape (2,).  Matrices are 3x3 homogeneous
transforms acting on column vectors (x, y, 1).  Angles are radians.
"""

import math

import numpy as np
from numpy.typing import NDArray

# Type aliases
Vec2 = NDArray[np.float64]
Mat3 = NDArray[np.float64]


def vec2(x: float = 0.0, y: float = 0.0) -> Vec2:
    return np.array([x, y], dtype=np.float64)


def as_vec2(v) -> Vec2:
    """Copy any 2-sequence into a fresh float64 Vec2."""
    return np.array(v, dtype=np.float64).reshape(2)


def mat3_identity() -> Mat3:
    return np.eye(3, dtype=np.float64)


def mat3_translation(x: float, y: float) -> Mat3:
    m = np.eye(3, dtype=np.float64)
    m[0, 2] = x
    m[1, 2] = y
    return m


def mat3_rotation(angle_rad: float) -> Mat3:
    c, s = math.cos(angle_rad), math.sin(angle_rad)
    m = np.eye(3, dtype=np.float64)
    m[0, 0] = c
    m[0, 1] = -s
    m[1, 0] = s
    m[1, 1] = c
    return m


def mat3_scale(sx: float, sy: float) -> Mat3:
    m = np.eye(3, dtype=np.float64)
    m[0, 0] = sx
    m[1, 1] = sy
    return m


def mat3_inverse(m: Mat3) -> Mat3:
    return np.linalg.inv(m)


def transform_point(m: Mat3, p: Vec2) -> Vec2:
    """Transform a 2D point by a 3x3 homogeneous matrix."""
    v = np.array([p[0], p[1], 1.0], dtype=np.float64)
    r = m @ v
    return r[:2]


# Vector operations

def length(v: Vec2) -> float:
    return float(math.hypot(v[0], v[1]))


def normalize(v: Vec2) -> Vec2:
    n = length(v)
    if n < 1e-10:
        return np.zeros_like(v)
    return v / n


def dot(a: Vec2, b: Vec2) -> float:
    return float(a[0] * b[0] + a[1] * b[1])


def cross(a: Vec2, b: Vec2) -> float:
    """Z component of the 3D cross product of two planar vectors."""
    return float(a[0] * b[1] - a[1] * b[0])


def polar(radius: float, angle_rad: float) -> Vec2:
    """Vector of the given length pointing along *angle_rad*."""
    return vec2(radius * math.cos(angle_rad), radius * math.sin(angle_rad))


def rotate_vec2(v: Vec2, angle_rad: float) -> Vec2:
    """Rotate a vector counter-clockwise by *angle_rad*."""
    c, s = math.cos(angle_rad), math.sin(angle_rad)
    return vec2(c * v[0] - s * v[1], s * v[0] + c * v[1])


def decompose(direction: Vec2, v: Vec2) -> tuple[Vec2, Vec2]:
    """Split *v* into components parallel and perpendicular to *direction*.

    Returns ``(parallel, perpendicular)``; their sum is *v*.
    """
    n = normalize(direction)
    parallel = n * dot(n, v)
    return parallel, v - parallel


def project_on_segment(start: Vec2, end: Vec2, point: Vec2) -> tuple[Vec2, float]:
    """Closest point to *point* on the segment start-end.

    Returns ``(position, rate)`` where rate is the segment parameter clamped
    to [0, 1].  A degenerate segment returns ``(start, 0.0)``.
    """
    seg = end - start
    denom = dot(seg, seg)
    if denom <= 1e-18:
        return start.copy(), 0.0
    t = dot(point - start, seg) / denom
    t = clamp(t, 0.0, 1.0)
    return start + seg * t, t


# Angle operations

def normalize_angle(a: float) -> float:
    """Wrap angle to (-pi, pi]."""
    a = math.fmod(a, 2.0 * math.pi)
    if a <= -math.pi:
        a += 2.0 * math.pi
    elif a > math.pi:
        a -= 2.0 * math.pi
    return a


def angle_difference(from_rad: float, to_rad: float) -> float:
    """Signed shortest turn from *from_rad* to *to_rad*, in (-pi, pi]."""
    return normalize_angle(to_rad - from_rad)


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def deg_to_rad(degrees: float) -> float:
    return degrees * math.pi / 180.0


def rad_to_deg(radians: float) -> float:
    return radians * 180.0 / math.pi
