"""Sphere primitive with robust ray-sphere intersection.

This module provides the Taichi-side Sphere dataclass and root solver used
by the scene intersection kernel, plus the Python-side helpers the shaders
need for spheres: bounding volume and texture frame.

The robust quadratic formula from Ray Tracing Gems avoids catastrophic
cancellation when b^2 is nearly equal to 4ac.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.glasstrace.geometry.sphere import Sphere, sphere_roots
    >>> # Use sphere_roots within a Taichi kernel
"""

import math

import numpy as np
import taichi as ti
import taichi.math as tm

from src.glasstrace.core.hit import Bounds, SurfaceFrame
from src.glasstrace.core.ray import Vec3, normalize, vec3

# Type alias for 3D vectors using Taichi's math module
tvec3 = tm.vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float).
    """

    center: tvec3
    radius: ti.f32


@ti.func
def _solve_quadratic_robust(h: ti.f32, a: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Solve a*t^2 + 2*h*t + c = 0 using a numerically stable method.

    Returns:
        Tuple of (t0, t1) where t0 <= t1.
    """
    # q = -(h + sign(h) * sqrt(discriminant))
    sign_h = ti.select(h < 0.0, -1.0, 1.0)
    q = -(h + sign_h * sqrt_d)

    t0 = 0.0
    t1 = 0.0

    if ti.abs(q) < 1e-10:
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        temp = t0
        t0 = t1
        t1 = temp

    return t0, t1


@ti.func
def sphere_roots(ray_origin: tvec3, ray_direction: tvec3, sphere: Sphere):
    """Both ray parameters at which a ray crosses a sphere.

    Solves |origin + t * direction - center|^2 = radius^2 in the half-b form
    a*t^2 + 2*h*t + c = 0 with a = dot(d, d), h = dot(d, oc),
    c = dot(oc, oc) - radius^2.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        sphere: The sphere to test.

    Returns:
        Tuple (has_roots, t0, t1) with t0 <= t1. Roots may be negative.
    """
    oc = ray_origin - sphere.center
    a = tm.dot(ray_direction, ray_direction)
    h = tm.dot(ray_direction, oc)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius
    discriminant = h * h - a * c

    has_roots = 0
    t0 = 0.0
    t1 = 0.0
    if discriminant >= 0.0:
        has_roots = 1
        t0, t1 = _solve_quadratic_robust(h, a, c, ti.sqrt(discriminant))

    return has_roots, t0, t1


@ti.func
def sphere_outward_normal(point: tvec3, sphere: Sphere) -> tvec3:
    """Unit normal pointing from the sphere center through ``point``."""
    return (point - sphere.center) / sphere.radius


# =============================================================================
# Python-side helpers
# =============================================================================


def sphere_bounds(center: Vec3, radius: float) -> Bounds:
    """Axis-aligned bounds of a sphere."""
    return Bounds(center=np.array(center, dtype=np.float64), extents=vec3(radius, radius, radius))


def sphere_surface_frame(normal: Vec3) -> SurfaceFrame:
    """Texture coordinate and tangent of a sphere at a given outward normal.

    u wraps around the vertical axis, v runs from the bottom pole (0) to the
    top pole (1). The tangent is the left perpendicular of the normal's
    projection onto the XZ plane; at the poles it falls back to +X.
    """
    n = np.clip(np.asarray(normal, dtype=np.float64), -1.0, 1.0)

    u = math.atan2(n[2], n[0])
    u = min(max((u + math.pi) / (2.0 * math.pi), 0.0), 1.0)
    v = math.asin(n[1])
    v = min(max((v + math.pi / 2.0) / math.pi, 0.0), 1.0)

    tangent = normalize(vec3(-n[2], 0.0, n[0]))
    if not tangent.any():
        tangent = vec3(1.0, 0.0, 0.0)

    return SurfaceFrame(tex_coord=(u, v), normal=n, tangent=tangent)
