"""Hit records and the contracts of the trace engine's collaborators.

The trace engine never intersects geometry or computes material colors
itself. It consumes two capabilities:

- a scene query (:class:`SceneQuery`) that reports the nearest hit along a
  ray and every hit within a distance bound, and
- a shader (:class:`Shader`) that turns a resolved hit into a color and may
  call back into the tracer for reflection and refraction.

Hit records identify the surface they belong to by object identity. The
penetration stack relies on this: a backward-trace hit only counts when its
``surface`` *is* the surface on top of the stack.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, Sequence, runtime_checkable

import numpy as np

from src.glasstrace.core.ray import Ray, Vec3, length

if TYPE_CHECKING:
    from src.glasstrace.core.record import TraceRecord
    from src.glasstrace.core.tracer import Raytracer


@dataclass(frozen=True)
class Bounds:
    """Axis-aligned bounding volume of a surface.

    Attributes:
        center: Center of the box.
        extents: Half-size of the box along each axis.
    """

    center: Vec3
    extents: Vec3

    @property
    def bounding_sphere_radius(self) -> float:
        """Radius of the sphere around ``center`` enclosing the box."""
        return length(self.extents)

    @classmethod
    def from_min_max(cls, minimum: Vec3, maximum: Vec3) -> Bounds:
        """Build bounds from two opposite corners."""
        lo = np.minimum(minimum, maximum)
        hi = np.maximum(minimum, maximum)
        return cls(center=(lo + hi) * 0.5, extents=(hi - lo) * 0.5)


@dataclass(frozen=True)
class SurfaceFrame:
    """Texture coordinate and local frame at a hit point.

    Attributes:
        tex_coord: (u, v) texture coordinate.
        normal: Interpolated shading normal (outward).
        tangent: Unit tangent, perpendicular to ``normal``.
    """

    tex_coord: tuple[float, float]
    normal: Vec3
    tangent: Vec3


@runtime_checkable
class Surface(Protocol):
    """A hittable surface as seen by the trace engine and the shaders."""

    bounds: Bounds
    shader: Shader | None

    def surface_frame(self, hit: HitRecord) -> SurfaceFrame:
        """Texture coordinate and tangent frame for a hit on this surface."""
        ...


@dataclass(eq=False)
class HitRecord:
    """Result of a scene intersection query.

    Attributes:
        point: World-space intersection point.
        normal: Geometric outward normal of the surface at ``point``. It is
            *not* flipped toward the ray; ``dot(normal, direction) < 0``
            means the ray is entering the surface.
        distance: Distance along the querying ray.
        surface: The owning surface, compared by identity.
    """

    point: Vec3
    normal: Vec3
    distance: float
    surface: Any = field(repr=False)

    @property
    def bounds(self) -> Bounds:
        """Bounding volume of the owning surface."""
        return self.surface.bounds

    def surface_frame(self) -> SurfaceFrame:
        """Texture coordinate and tangent supplied by the owning surface."""
        return self.surface.surface_frame(self)


class SceneQuery(Protocol):
    """Scene intersection service consumed by the tracer."""

    def nearest_hit(self, ray: Ray) -> HitRecord | None:
        """Nearest forward intersection, or None."""
        ...

    def all_hits(self, ray: Ray, max_distance: float) -> Sequence[HitRecord]:
        """Every intersection closer than ``max_distance``, unordered."""
        ...


class Shader(Protocol):
    """Material shading capability.

    ``shade`` is invoked exactly once per resolved hit. It may read and
    mutate ``record`` (counters, recursion counts, penetration stack) and may
    call ``tracer.trace`` to obtain reflection or refraction contributions.
    Its return value is the authoritative color of the hit.
    """

    enabled: bool

    def shade(
        self,
        tracer: Raytracer,
        ray: Ray,
        hit: HitRecord,
        record: TraceRecord,
    ) -> Vec3:
        """Compute the RGB color of ``hit`` seen along ``ray``."""
        ...
