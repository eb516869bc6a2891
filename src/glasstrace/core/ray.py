"""Ray data structure and vector utilities for recursive ray tracing.

This module provides the Ray dataclass and the small set of vector helpers
the trace engine and the shaders share. Vectors are plain NumPy float64
arrays of shape (3,).

Example:
    >>> from src.glasstrace.core.ray import Ray, vec3, refract
    >>> ray = Ray(origin=vec3(0.0, 0.0, 0.0), direction=vec3(0.0, 0.0, -1.0))
    >>> point = ray.at(5.0)  # Point 5 units along the ray
    >>> refract(ray.direction, vec3(0.0, 0.0, 1.0), 1.0 / 1.5)
    array([ 0.,  0., -1.])
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

Vec3 = npt.NDArray[np.float64]


def vec3(x: float, y: float, z: float) -> Vec3:
    """Create a 3D vector."""
    return np.array((x, y, z), dtype=np.float64)


def as_vec3(value: npt.ArrayLike) -> Vec3:
    """Convert a tuple or array to a float64 3D vector.

    Raises:
        ValueError: If the value does not have exactly three components.
    """
    v = np.asarray(value, dtype=np.float64).reshape(-1)
    if v.shape != (3,):
        raise ValueError(f"Expected 3 components, got shape {v.shape}")
    return v.copy()


@dataclass(eq=False)
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray.
        direction: The direction vector of the ray. Must be unit length
            before it takes part in refraction math; callers normalize after
            composing reflected or refracted directions.
    """

    origin: Vec3
    direction: Vec3

    def at(self, t: float) -> Vec3:
        """Compute the point along the ray at parameter t."""
        return self.origin + t * self.direction

    def __repr__(self) -> str:
        o = self.origin
        d = self.direction
        return (
            f"Ray(origin=({o[0]:.4g}, {o[1]:.4g}, {o[2]:.4g}), "
            f"direction=({d[0]:.4g}, {d[1]:.4g}, {d[2]:.4g}))"
        )


def make_ray(origin: npt.ArrayLike, direction: npt.ArrayLike) -> Ray:
    """Create a ray from array-likes, normalizing the direction."""
    return Ray(origin=as_vec3(origin), direction=normalize(as_vec3(direction)))


# =============================================================================
# Vector Utility Functions
# =============================================================================


def length(v: Vec3) -> float:
    """Compute the Euclidean length of a vector."""
    return math.sqrt(float(np.dot(v, v)))


def dot(a: Vec3, b: Vec3) -> float:
    """Compute the dot product of two vectors."""
    return float(np.dot(a, b))


def cross(a: Vec3, b: Vec3) -> Vec3:
    """Compute the cross product of two vectors."""
    return np.cross(a, b)


def normalize(v: Vec3) -> Vec3:
    """Normalize a vector to unit length.

    Returns:
        A unit vector in the same direction as v. A zero-length input yields
        a zero vector rather than NaNs.
    """
    n = length(v)
    if n == 0.0:
        return np.zeros(3, dtype=np.float64)
    return v / n


def reflect(incident: Vec3, normal: Vec3) -> Vec3:
    """Reflect an incident vector about a normal.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal (should be normalized).

    Returns:
        The mirrored direction ``v - 2 * dot(v, n) * n``.
    """
    return incident - 2.0 * dot(incident, normal) * normal


def refract(incident: Vec3, normal: Vec3, k: float) -> Vec3 | None:
    """Refract a unit incident vector through a surface.

    The normal is expected to oppose the incident direction on entry, but
    the sign of the cosine term follows ``-dot(n, v)`` so the result is also
    correct when the normal faces the other way.

    Args:
        incident: The incoming direction (unit length).
        normal: The surface normal (unit length).
        k: Ratio of refractive indices n1 / n2.

    Returns:
        The normalized refracted direction, or None on total internal
        reflection. Callers substitute :func:`reflect` in that case.
    """
    c = dot(normal, incident)
    cos_t2 = 1.0 - k * k * (1.0 - c * c)
    if cos_t2 < 0.0:
        return None

    cos_t = math.sqrt(cos_t2)
    neg_c = -c
    if neg_c >= 0.0:
        refracted = normal * (k * neg_c - cos_t) + incident * k
    else:
        refracted = normal * (k * neg_c + cos_t) + incident * k
    return normalize(refracted)


def transform_tbn(vector: Vec3, tangent: Vec3, binormal: Vec3, normal: Vec3) -> Vec3:
    """Transform a tangent-space vector into world space.

    Args:
        vector: Direction in tangent space (z along the normal).
        tangent: The x-axis of the tangent frame in world coordinates.
        binormal: The y-axis of the tangent frame in world coordinates.
        normal: The z-axis of the tangent frame in world coordinates.
    """
    return vector[0] * tangent + vector[1] * binormal + vector[2] * normal


def transform_inverse_tbn(vector: Vec3, tangent: Vec3, binormal: Vec3, normal: Vec3) -> Vec3:
    """Transform a world-space vector into tangent space."""
    return vec3(dot(vector, tangent), dot(vector, binormal), dot(vector, normal))
