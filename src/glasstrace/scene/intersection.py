"""Scene-level primitive intersection queries.

The scene stores primitives in Taichi fields. Each primitive carries the id
of the surface it belongs to; several primitives may share one surface (the
six faces of a box, for instance).

Queries are single-sided: a hit is only reported where the primitive's
outward normal opposes the ray direction. A ray starting inside a sphere
therefore does not hit that sphere at all. The trace engine relies on this
and finds exits with backward traces instead.

One query kernel gathers every front-facing hit along a ray into a hit
buffer. The Python-side :func:`query_hits` reads the buffer back; nearest-hit
and all-hits queries are both built on it.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.glasstrace.scene.intersection import add_sphere, clear_scene, query_hits
    >>> clear_scene()
    >>> add_sphere((0, 0, -5), 1.0, surface_id=0)
    >>> hits = query_hits((0, 0, 0), (0, 0, -1), t_max=100.0)
    >>> hits[0].t
    4.0
"""

from typing import NamedTuple

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.glasstrace.geometry.quad import Quad, quad_plane_hit
from src.glasstrace.geometry.sphere import Sphere, sphere_outward_normal, sphere_roots

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Maximum number of primitives supported in the scene
MAX_SPHERES = 256
MAX_QUADS = 1024

# Every sphere contributes at most two crossings, every quad at most one
MAX_HITS = 2 * MAX_SPHERES + MAX_QUADS

# Upper bound used by unbounded queries
QUERY_FAR_DISTANCE = 1.0e30

# Sphere storage: Structure of Arrays layout
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
sphere_surface_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())

# Quad storage: quad_corners stores the Q (corner point) of each quad
quad_corners = ti.Vector.field(3, dtype=ti.f32, shape=MAX_QUADS)
quad_edge_u = ti.Vector.field(3, dtype=ti.f32, shape=MAX_QUADS)
quad_edge_v = ti.Vector.field(3, dtype=ti.f32, shape=MAX_QUADS)
quad_surface_ids = ti.field(dtype=ti.i32, shape=MAX_QUADS)
num_quads = ti.field(dtype=ti.i32, shape=())

# Hit buffer filled by _collect_hits
_hit_t = ti.field(dtype=ti.f32, shape=MAX_HITS)
_hit_point = ti.Vector.field(3, dtype=ti.f32, shape=MAX_HITS)
_hit_normal = ti.Vector.field(3, dtype=ti.f32, shape=MAX_HITS)
_hit_surface_id = ti.field(dtype=ti.i32, shape=MAX_HITS)
_hit_count = ti.field(dtype=ti.i32, shape=())


class PrimitiveHit(NamedTuple):
    """One front-facing crossing reported by :func:`query_hits`.

    Attributes:
        t: Distance along the (unit) query direction.
        point: World-space intersection point.
        normal: Outward unit normal at ``point``.
        surface_id: Id of the surface owning the primitive.
    """

    t: float
    point: npt.NDArray[np.float64]
    normal: npt.NDArray[np.float64]
    surface_id: int


def clear_scene() -> None:
    """Clear all primitives from the scene.

    Resets the primitive counts to zero. The actual field data is not
    cleared but will be overwritten when new primitives are added.
    """
    num_spheres[None] = 0
    num_quads[None] = 0
    _hit_count[None] = 0


def add_sphere(center, radius: float, surface_id: int) -> int:
    """Add a sphere to the scene.

    Args:
        center: The center point of the sphere.
        radius: The radius of the sphere.
        surface_id: Id of the surface the sphere belongs to.

    Returns:
        The index of the added sphere.

    Raises:
        ValueError: If the radius is not positive.
        RuntimeError: If the maximum number of spheres is exceeded.
    """
    if radius <= 0.0:
        raise ValueError(f"Sphere radius must be positive, got {radius}")
    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = vec3(center[0], center[1], center[2])
    sphere_radii[idx] = radius
    sphere_surface_ids[idx] = surface_id
    num_spheres[None] = idx + 1
    return idx


def add_quad(q, u, v, surface_id: int) -> int:
    """Add a quad to the scene.

    The quad represents a parallelogram with vertices at Q, Q+u, Q+v, Q+u+v
    and faces along cross(u, v).

    Args:
        q: The corner point of the quad.
        u: Edge vector from q to adjacent corner.
        v: Edge vector from q to other adjacent corner.
        surface_id: Id of the surface the quad belongs to.

    Returns:
        The index of the added quad.

    Raises:
        RuntimeError: If the maximum number of quads is exceeded.
    """
    idx = num_quads[None]
    if idx >= MAX_QUADS:
        raise RuntimeError(f"Maximum number of quads ({MAX_QUADS}) exceeded")
    quad_corners[idx] = vec3(q[0], q[1], q[2])
    quad_edge_u[idx] = vec3(u[0], u[1], u[2])
    quad_edge_v[idx] = vec3(v[0], v[1], v[2])
    quad_surface_ids[idx] = surface_id
    num_quads[None] = idx + 1
    return idx


def get_sphere_count() -> int:
    """Get the number of spheres in the scene."""
    return int(num_spheres[None])


def get_quad_count() -> int:
    """Get the number of quads in the scene."""
    return int(num_quads[None])


# =============================================================================
# Query kernel
# =============================================================================


@ti.func
def _emit_hit(t: ti.f32, point: vec3, normal: vec3, surface_id: ti.i32):
    """Append one hit to the hit buffer."""
    slot = ti.atomic_add(_hit_count[None], 1)
    _hit_t[slot] = t
    _hit_point[slot] = point
    _hit_normal[slot] = normal
    _hit_surface_id[slot] = surface_id


@ti.func
def _emit_sphere_crossing(
    ray_origin: vec3,
    ray_direction: vec3,
    sphere: Sphere,
    t: ti.f32,
    t_min: ti.f32,
    t_max: ti.f32,
    surface_id: ti.i32,
):
    """Append a sphere crossing when it is in range and faces the ray."""
    if t > t_min and t < t_max:
        point = ray_origin + t * ray_direction
        normal = sphere_outward_normal(point, sphere)
        if tm.dot(normal, ray_direction) < 0.0:
            _emit_hit(t, point, normal, surface_id)


@ti.kernel
def _collect_hits(ray_origin: vec3, ray_direction: vec3, t_min: ti.f32, t_max: ti.f32):
    """Gather every front-facing hit with t_min < t < t_max."""
    _hit_count[None] = 0

    for i in range(num_spheres[None]):
        sphere = Sphere(center=sphere_centers[i], radius=sphere_radii[i])
        has_roots, t0, t1 = sphere_roots(ray_origin, ray_direction, sphere)
        if has_roots == 1:
            _emit_sphere_crossing(ray_origin, ray_direction, sphere, t0, t_min, t_max, sphere_surface_ids[i])
            _emit_sphere_crossing(ray_origin, ray_direction, sphere, t1, t_min, t_max, sphere_surface_ids[i])

    for i in range(num_quads[None]):
        quad = Quad(Q=quad_corners[i], u=quad_edge_u[i], v=quad_edge_v[i])
        did_hit, t, point, normal = quad_plane_hit(ray_origin, ray_direction, quad, t_min, t_max)
        if did_hit == 1 and tm.dot(normal, ray_direction) < 0.0:
            _emit_hit(t, point, normal, quad_surface_ids[i])


def query_hits(
    origin: npt.ArrayLike,
    direction: npt.ArrayLike,
    t_max: float = QUERY_FAR_DISTANCE,
    t_min: float = 0.0,
) -> list[PrimitiveHit]:
    """Every front-facing hit along a ray, in no particular order.

    Args:
        origin: Ray origin.
        direction: Unit ray direction.
        t_max: Exclusive upper bound of hit distances.
        t_min: Exclusive lower bound of hit distances.

    Returns:
        List of :class:`PrimitiveHit` with float64 points and normals.
    """
    o = np.asarray(origin, dtype=np.float64)
    d = np.asarray(direction, dtype=np.float64)
    _collect_hits(vec3(o[0], o[1], o[2]), vec3(d[0], d[1], d[2]), t_min, min(t_max, QUERY_FAR_DISTANCE))

    count = int(_hit_count[None])
    if count == 0:
        return []

    ts = _hit_t.to_numpy()[:count].astype(np.float64)
    points = _hit_point.to_numpy()[:count].astype(np.float64)
    normals = _hit_normal.to_numpy()[:count].astype(np.float64)
    surface_ids = _hit_surface_id.to_numpy()[:count]

    return [
        PrimitiveHit(float(ts[i]), points[i], normals[i], int(surface_ids[i]))
        for i in range(count)
    ]
