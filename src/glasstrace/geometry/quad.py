"""Single-sided quad primitive and axis-aligned boxes built from quads.

A quad is defined by:
- Q: A corner point of the quad
- u: Edge vector from Q to adjacent corner
- v: Edge vector from Q to other adjacent corner

The quad spans the parallelogram from Q to Q+u+v. Its outward normal is
normalize(cross(u, v)); the scene only reports hits on the side this normal
faces, like a mesh collider would.

Ray-quad intersection uses the parametric plane test:
1. Find where the ray intersects the plane containing the quad
2. Check if the intersection point lies within the quad bounds

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.glasstrace.geometry.quad import Quad, quad_plane_hit
    >>> # Floor quad at y=0 facing up: cross(z, x) = +y
    >>> quad = Quad(
    ...     Q=ti.math.vec3(0, 0, 0),
    ...     u=ti.math.vec3(0, 0, 1),
    ...     v=ti.math.vec3(1, 0, 0)
    ... )
    >>> # Use quad_plane_hit within a Taichi kernel
"""

import numpy as np
import taichi as ti
import taichi.math as tm

from src.glasstrace.core.hit import Bounds, SurfaceFrame
from src.glasstrace.core.ray import Vec3, cross, dot, normalize, vec3

# Type alias for 3D vectors using Taichi's math module
tvec3 = tm.vec3


@ti.dataclass
class Quad:
    """A quad (parallelogram) defined by a corner point and two edge vectors.

    Attributes:
        Q: The corner point of the quad (vec3).
        u: Edge vector from Q to adjacent corner (vec3).
        v: Edge vector from Q to other adjacent corner (vec3).
    """

    Q: tvec3
    u: tvec3
    v: tvec3


@ti.func
def _compute_quad_frame(quad: Quad):
    """Compute the quad's plane normal and helper vectors.

    The intersection point P is expressed as P = Q + alpha * u + beta * v
    with alpha = dot(w_u, P - Q) and beta = dot(w_v, P - Q), where
    w_u = v x n / dot(n, n) and w_v = n x u / dot(n, n) for n = u x v.

    Returns:
        Tuple of (normal, d, w_u, w_v).
    """
    n = tm.cross(quad.u, quad.v)
    normal = tm.normalize(n)
    d = tm.dot(normal, quad.Q)
    n_dot_n = tm.dot(n, n)

    # Degenerate quad (u parallel to v) never reports a hit
    w_u = tvec3(0.0, 0.0, 0.0)
    w_v = tvec3(0.0, 0.0, 0.0)
    if n_dot_n > 1e-10:
        w_u = tm.cross(quad.v, n) / n_dot_n
        w_v = tm.cross(n, quad.u) / n_dot_n

    return normal, d, w_u, w_v


@ti.func
def quad_plane_hit(
    ray_origin: tvec3,
    ray_direction: tvec3,
    quad: Quad,
    t_min: ti.f32,
    t_max: ti.f32,
):
    """Test for ray-quad intersection from either side.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        quad: The quad to test intersection against.
        t_min: Minimum t value to consider a valid hit.
        t_max: Maximum t value to consider a valid hit.

    Returns:
        Tuple (did_hit, t, point, outward_normal). ``outward_normal`` is the
        quad's own normal regardless of the side that was hit.
    """
    normal, d, w_u, w_v = _compute_quad_frame(quad)
    denom = tm.dot(normal, ray_direction)

    did_hit = 0
    hit_t = 0.0
    hit_point = tvec3(0.0, 0.0, 0.0)

    if ti.abs(denom) > 1e-8:
        t = (d - tm.dot(normal, ray_origin)) / denom
        if t > t_min and t < t_max:
            p = ray_origin + t * ray_direction
            p_minus_q = p - quad.Q
            alpha = tm.dot(w_u, p_minus_q)
            beta = tm.dot(w_v, p_minus_q)
            if alpha >= 0.0 and alpha <= 1.0 and beta >= 0.0 and beta <= 1.0:
                did_hit = 1
                hit_t = t
                hit_point = p

    return did_hit, hit_t, hit_point, normal


# =============================================================================
# Python-side helpers
# =============================================================================


def quad_normal(edge_u: Vec3, edge_v: Vec3) -> Vec3:
    """Outward unit normal of a quad, normalize(cross(u, v))."""
    return normalize(cross(edge_u, edge_v))


def quad_bounds(corner: Vec3, edge_u: Vec3, edge_v: Vec3) -> Bounds:
    """Axis-aligned bounds of a quad's four corners."""
    corners = np.array([corner, corner + edge_u, corner + edge_v, corner + edge_u + edge_v])
    return Bounds.from_min_max(corners.min(axis=0), corners.max(axis=0))


def quad_surface_frame(corner: Vec3, edge_u: Vec3, edge_v: Vec3, point: Vec3) -> SurfaceFrame:
    """Texture coordinate and tangent of a quad at ``point``.

    The texture coordinate is the point's (alpha, beta) position along the
    two edges; the tangent follows the u edge.
    """
    n = cross(edge_u, edge_v)
    n_dot_n = dot(n, n)
    p_minus_q = point - corner
    alpha = dot(cross(edge_v, n), p_minus_q) / n_dot_n
    beta = dot(cross(n, edge_u), p_minus_q) / n_dot_n
    return SurfaceFrame(tex_coord=(alpha, beta), normal=normalize(n), tangent=normalize(edge_u))


def box_faces(center: Vec3, size: Vec3) -> list[tuple[Vec3, Vec3, Vec3]]:
    """The six outward-facing quads of an axis-aligned box.

    Returns:
        List of (corner, edge_u, edge_v) in the order +X, -X, +Y, -Y, +Z, -Z.
    """
    lo = center - size * 0.5
    hi = center + size * 0.5
    sx = vec3(size[0], 0.0, 0.0)
    sy = vec3(0.0, size[1], 0.0)
    sz = vec3(0.0, 0.0, size[2])
    return [
        (vec3(hi[0], lo[1], lo[2]), sy, sz),
        (lo.copy(), sz, sy),
        (vec3(lo[0], hi[1], lo[2]), sz, sx),
        (lo.copy(), sx, sz),
        (vec3(lo[0], lo[1], hi[2]), sx, sy),
        (lo.copy(), sy, sx),
    ]


def box_surface_frame(center: Vec3, size: Vec3, point: Vec3, normal: Vec3) -> SurfaceFrame:
    """Texture coordinate and tangent of an axis-aligned box at ``point``.

    Each face maps its full extent to [0, 1]; the side facing -Z is treated
    as the front.
    """
    local = point - center + size * 0.5
    nx, ny, nz = (int(round(c)) for c in normal)

    if nx != 0:
        sign = nx
        u, v = local[2] / size[2], local[1] / size[1]
        tangent = vec3(0.0, 0.0, float(sign))
    elif ny != 0:
        sign = ny
        u, v = local[0] / size[0], local[2] / size[2]
        tangent = vec3(float(sign), 0.0, 0.0)
    else:
        sign = -nz
        u, v = local[0] / size[0], local[1] / size[1]
        tangent = vec3(float(sign), 0.0, 0.0)

    if sign < 0:
        u = 1.0 - u

    return SurfaceFrame(tex_coord=(float(u), float(v)), normal=np.asarray(normal, dtype=np.float64), tangent=tangent)
