"""Scene manager coordinating primitives, surfaces and lights.

This module provides the high-level scene API used by the trace engine. It
registers primitives in the Taichi intersection fields, wraps each of them
(or each group of them) in a surface object carrying bounds, a shader and a
texture frame, and answers the engine's scene queries with hit records
pointing at those surface objects.

The SceneManager maintains:
- The surfaces in insertion order; a surface's id is its index
- Point lights and the scene's ambient light
- Conversion of raw primitive hits into :class:`HitRecord` objects

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.glasstrace.scene.manager import SceneManager
    >>> from src.glasstrace.materials.compound import CompoundShader
    >>> scene = SceneManager()
    >>> glass = CompoundShader(refraction_component=1.0, diffuse_component=0.0)
    >>> scene.add_sphere(center=(0, 0, -3), radius=1.0, shader=glass)
    >>> scene.add_point_light(position=(2, 4, 0), range=20.0)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np
import numpy.typing as npt

from src.glasstrace.core.hit import Bounds, HitRecord, Shader, SurfaceFrame
from src.glasstrace.core.ray import Ray, Vec3, as_vec3, normalize
from src.glasstrace.geometry.quad import (
    box_faces,
    box_surface_frame,
    quad_bounds,
    quad_surface_frame,
)
from src.glasstrace.geometry.sphere import sphere_bounds, sphere_surface_frame
from src.glasstrace.scene.intersection import (
    MAX_QUADS,
    PrimitiveHit,
    add_quad,
    add_sphere,
    clear_scene,
    get_quad_count,
    get_sphere_count,
    query_hits,
)

logger = logging.getLogger(__name__)


@dataclass
class PointLight:
    """An omnidirectional light with a finite range.

    Attributes:
        position: World-space position of the light.
        color: RGB color of the light.
        range: Distance beyond which the light has no effect.
        intensity: Brightness multiplier.
    """

    position: npt.ArrayLike
    color: npt.ArrayLike = (1.0, 1.0, 1.0)
    range: float = 10.0
    intensity: float = 1.0

    def __post_init__(self) -> None:
        self.position = as_vec3(self.position)
        self.color = as_vec3(self.color)
        if self.range <= 0.0:
            raise ValueError(f"Light range must be positive, got {self.range}")
        if self.intensity < 0.0:
            raise ValueError(f"Light intensity must be non-negative, got {self.intensity}")


# =============================================================================
# Surfaces
# =============================================================================


@dataclass(eq=False)
class SphereSurface:
    """A sphere in the scene.

    Attributes:
        surface_id: Index of the surface in the scene.
        center: The center of the sphere.
        radius: The radius of the sphere.
        shader: Shader of the surface, or None for the tracer's default.
        bounds: Axis-aligned bounds of the sphere.
    """

    surface_id: int
    center: Vec3
    radius: float
    shader: Shader | None = None
    bounds: Bounds = field(init=False)

    def __post_init__(self) -> None:
        self.bounds = sphere_bounds(self.center, self.radius)

    def surface_frame(self, hit: HitRecord) -> SurfaceFrame:
        return sphere_surface_frame(normalize(hit.point - self.center))


@dataclass(eq=False)
class QuadSurface:
    """A single-sided quad in the scene.

    Attributes:
        surface_id: Index of the surface in the scene.
        corner: The corner point (Q) of the quad.
        edge_u: The first edge vector.
        edge_v: The second edge vector.
        shader: Shader of the surface, or None for the tracer's default.
        bounds: Axis-aligned bounds of the quad.
    """

    surface_id: int
    corner: Vec3
    edge_u: Vec3
    edge_v: Vec3
    shader: Shader | None = None
    bounds: Bounds = field(init=False)

    def __post_init__(self) -> None:
        self.bounds = quad_bounds(self.corner, self.edge_u, self.edge_v)

    def surface_frame(self, hit: HitRecord) -> SurfaceFrame:
        return quad_surface_frame(self.corner, self.edge_u, self.edge_v, hit.point)


@dataclass(eq=False)
class BoxSurface:
    """An axis-aligned box made of six outward-facing quads.

    Attributes:
        surface_id: Index of the surface in the scene.
        center: The center of the box.
        size: Full size of the box along each axis.
        shader: Shader of the surface, or None for the tracer's default.
        bounds: Axis-aligned bounds of the box.
    """

    surface_id: int
    center: Vec3
    size: Vec3
    shader: Shader | None = None
    bounds: Bounds = field(init=False)

    def __post_init__(self) -> None:
        self.bounds = Bounds(center=self.center.copy(), extents=self.size * 0.5)

    def surface_frame(self, hit: HitRecord) -> SurfaceFrame:
        return box_surface_frame(self.center, self.size, hit.point, hit.normal)


# =============================================================================
# Scene manager
# =============================================================================


class SceneManager:
    """Scene intersection service over spheres, quads and boxes.

    Implements the nearest-hit and all-hits queries the trace engine needs.
    Queries are single-sided: only surfaces facing the ray are reported.

    Attributes:
        surfaces: All surfaces, indexed by surface id.
        lights: Point lights of the scene.
        ambient_light: RGB ambient light of the scene.

    Example:
        >>> from src.glasstrace.core.ray import make_ray
        >>> scene = SceneManager(ambient_light=(0.1, 0.1, 0.1))
        >>> floor = scene.add_quad((-5, 0, -10), (0, 0, 10), (10, 0, 0))
        >>> ball = scene.add_sphere((0, 1, -5), 1.0)
        >>> hit = scene.nearest_hit(make_ray((0, 1, 0), (0, 0, -1)))
        >>> hit.surface is ball
        True
    """

    def __init__(self, ambient_light: npt.ArrayLike = (0.2, 0.2, 0.2)) -> None:
        """Initialize an empty scene."""
        self.surfaces: list[SphereSurface | QuadSurface | BoxSurface] = []
        self.lights: list[PointLight] = []
        self.ambient_light = as_vec3(ambient_light)
        self._clear_all()

    def _clear_all(self) -> None:
        """Clear all scene data including Taichi fields."""
        clear_scene()
        self.surfaces.clear()
        self.lights.clear()

    def clear(self) -> None:
        """Clear every surface and light.

        Resets the Taichi primitive fields and internal tracking structures.
        """
        self._clear_all()

    # =========================================================================
    # Surface Management
    # =========================================================================

    def add_sphere(
        self,
        center: npt.ArrayLike,
        radius: float,
        shader: Shader | None = None,
    ) -> SphereSurface:
        """Add a sphere to the scene.

        Args:
            center: The center point of the sphere as (x, y, z).
            radius: The radius of the sphere.
            shader: Shader of the sphere, or None for the tracer's default.

        Returns:
            The new surface.

        Raises:
            RuntimeError: If the maximum number of spheres is exceeded.
            ValueError: If the radius is not positive.
        """
        surface = SphereSurface(len(self.surfaces), as_vec3(center), float(radius), shader)
        add_sphere(surface.center, surface.radius, surface.surface_id)
        self.surfaces.append(surface)
        logger.debug("Added surface %d: %s", surface.surface_id, type(surface).__name__)
        return surface

    def add_quad(
        self,
        corner: npt.ArrayLike,
        edge_u: npt.ArrayLike,
        edge_v: npt.ArrayLike,
        shader: Shader | None = None,
    ) -> QuadSurface:
        """Add a single-sided quad to the scene.

        The quad is visible from the side cross(edge_u, edge_v) points to.

        Args:
            corner: The corner point (Q) of the quad.
            edge_u: The first edge vector.
            edge_v: The second edge vector.
            shader: Shader of the quad, or None for the tracer's default.

        Returns:
            The new surface.

        Raises:
            RuntimeError: If the maximum number of quads is exceeded.
        """
        surface = QuadSurface(len(self.surfaces), as_vec3(corner), as_vec3(edge_u), as_vec3(edge_v), shader)
        add_quad(surface.corner, surface.edge_u, surface.edge_v, surface.surface_id)
        self.surfaces.append(surface)
        logger.debug("Added surface %d: %s", surface.surface_id, type(surface).__name__)
        return surface

    def add_box(
        self,
        center: npt.ArrayLike,
        size: npt.ArrayLike,
        shader: Shader | None = None,
    ) -> BoxSurface:
        """Add an axis-aligned box to the scene.

        Args:
            center: The center of the box.
            size: Full size of the box along each axis.
            shader: Shader of the box, or None for the tracer's default.

        Returns:
            The new surface.

        Raises:
            ValueError: If any size component is not positive.
            RuntimeError: If the box would exceed the maximum number of quads.
        """
        size_vec = as_vec3(size)
        if np.any(size_vec <= 0.0):
            raise ValueError(f"Box size must be positive along every axis, got {tuple(size_vec)}")
        if get_quad_count() + 6 > MAX_QUADS:
            raise RuntimeError(f"Maximum number of quads ({MAX_QUADS}) exceeded")

        surface = BoxSurface(len(self.surfaces), as_vec3(center), size_vec, shader)
        for corner, edge_u, edge_v in box_faces(surface.center, surface.size):
            add_quad(corner, edge_u, edge_v, surface.surface_id)
        self.surfaces.append(surface)
        logger.debug("Added surface %d: %s", surface.surface_id, type(surface).__name__)
        return surface

    def get_surface(self, surface_id: int) -> SphereSurface | QuadSurface | BoxSurface | None:
        """Get a surface by id, or None if not found."""
        if 0 <= surface_id < len(self.surfaces):
            return self.surfaces[surface_id]
        return None

    def get_surface_count(self) -> int:
        """Get the number of surfaces in the scene."""
        return len(self.surfaces)

    def get_sphere_count(self) -> int:
        """Get the number of spheres in the scene."""
        return get_sphere_count()

    def get_quad_count(self) -> int:
        """Get the number of quads in the scene (boxes count six each)."""
        return get_quad_count()

    # =========================================================================
    # Lights
    # =========================================================================

    def add_point_light(
        self,
        position: npt.ArrayLike,
        color: npt.ArrayLike = (1.0, 1.0, 1.0),
        range: float = 10.0,
        intensity: float = 1.0,
    ) -> PointLight:
        """Add a point light to the scene.

        Raises:
            ValueError: If range is not positive or intensity is negative.
        """
        light = PointLight(position=position, color=color, range=range, intensity=intensity)
        self.lights.append(light)
        return light

    # =========================================================================
    # Queries
    # =========================================================================

    def _to_hit_record(self, primitive_hit: PrimitiveHit) -> HitRecord:
        return HitRecord(
            point=primitive_hit.point,
            normal=normalize(primitive_hit.normal),
            distance=primitive_hit.t,
            surface=self.surfaces[primitive_hit.surface_id],
        )

    def nearest_hit(self, ray: Ray) -> HitRecord | None:
        """Nearest front-facing hit along a ray, or None."""
        hits = query_hits(ray.origin, ray.direction)
        if not hits:
            return None
        return self._to_hit_record(min(hits, key=lambda h: h.t))

    def all_hits(self, ray: Ray, max_distance: float) -> list[HitRecord]:
        """Every front-facing hit closer than ``max_distance``, unordered."""
        return [self._to_hit_record(h) for h in query_hits(ray.origin, ray.direction, t_max=max_distance)]

    def __repr__(self) -> str:
        return (
            f"SceneManager(surfaces={len(self.surfaces)}, lights={len(self.lights)}, "
            f"ambient_light={tuple(self.ambient_light)})"
        )
