"""Recursive trace engine with backward-trace resolution.

The :class:`Raytracer` turns a ray into a color. It queries the scene for the
nearest hit, hands the hit to a shader, and lets the shader recurse back into
:meth:`Raytracer.trace` for reflection and refraction.

Rays travelling inside transparent volumes need extra work. The scene query
only reports surfaces that face the ray, so a ray inside a glass sphere never
"sees" the inside of the sphere it has to leave through. While the
penetration stack of the trace record is non-empty the tracer therefore runs
a *backward trace*: it starts a ray just beyond the forward hit (or beyond
the bounding sphere of the innermost volume when nothing was hit), points it
back along the original ray, and asks the scene for every hit within that
range. Hits on the innermost surface are exit candidates; the one farthest
along the backward ray is the first exit the forward ray meets.

Termination is guaranteed by the recursion budgets in :class:`TracerConfig`,
which shaders check before recursing.

Example:
    >>> from src.glasstrace.core.tracer import Raytracer, TracerConfig
    >>> from src.glasstrace.core.record import RaytraceCounters, TraceRecord
    >>> from src.glasstrace.core.ray import vec3
    >>> tracer = Raytracer(scene, TracerConfig(max_reflections=4), default_shader=shader)
    >>> record = TraceRecord(background_color=vec3(0.2, 0.2, 0.2), counters=RaytraceCounters())
    >>> color = tracer.trace(ray, record)
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from src.glasstrace.core.hit import HitRecord, SceneQuery, Shader
from src.glasstrace.core.record import RaytraceCounters, TraceRecord
from src.glasstrace.core.ray import Ray, Vec3, as_vec3, dot, length

logger = logging.getLogger(__name__)

# Offset applied to secondary ray origins to step off the surface they leave.
PUSH_OUT_MAGNITUDE = 1e-4

# Lower bound of backward-trace search distances. Precision loss can make the
# computed distance zero or negative; origin and direction are still valid.
MIN_RAYCAST_DISTANCE = 0.01


@dataclass
class TracerConfig:
    """Configuration of the trace engine.

    Attributes:
        max_reflections: Maximum reflections of rays arriving from outside a
            surface, per path.
        max_refractions: Maximum refractions per path.
        max_inner_reflections: Maximum reflections of rays travelling inside a
            medium, per path.
        stop_on_overwhite: Terminate a path as soon as its accumulated color
            is at least 1.0 in every channel.
        override_ambient_light: Use ``ambient_light`` instead of the scene's
            ambient light.
        ambient_light: Ambient light used when overriding.
    """

    max_reflections: int = 10
    max_refractions: int = 10
    max_inner_reflections: int = 1
    stop_on_overwhite: bool = True
    override_ambient_light: bool = False
    ambient_light: tuple[float, float, float] = (0.2, 0.2, 0.2)

    def __post_init__(self) -> None:
        for name in ("max_reflections", "max_refractions", "max_inner_reflections"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")
        if len(self.ambient_light) != 3:
            raise ValueError(f"ambient_light must have 3 components, got {self.ambient_light}")

    @property
    def max_path_depth(self) -> int:
        """Worst-case recursion depth of a single path."""
        return self.max_reflections + self.max_inner_reflections + self.max_refractions


class Raytracer:
    """Recursive ray tracer driving scene queries and shaders.

    Attributes:
        scene: The scene intersection service.
        config: Recursion budgets and interrupt policy.
        default_shader: Shader used for surfaces without an enabled shader.
        lights: Lights visible to shaders.
        counters: Counters of the most recent render, replaced by the
            renderer at the start of each render.
    """

    def __init__(
        self,
        scene: SceneQuery,
        config: TracerConfig | None = None,
        default_shader: Shader | None = None,
        lights: Sequence = (),
        scene_ambient_light: npt.ArrayLike = (0.2, 0.2, 0.2),
    ) -> None:
        self.scene = scene
        self.config = config if config is not None else TracerConfig()
        self.default_shader = default_shader
        self.lights = list(lights)
        self.scene_ambient_light = as_vec3(scene_ambient_light)
        self.counters = RaytraceCounters()

        logger.debug(
            "Raytracer created: max_reflections=%d max_inner_reflections=%d "
            "max_refractions=%d stop_on_overwhite=%s",
            self.config.max_reflections,
            self.config.max_inner_reflections,
            self.config.max_refractions,
            self.config.stop_on_overwhite,
        )

    @classmethod
    def from_scene(
        cls,
        scene,
        config: TracerConfig | None = None,
        default_shader: Shader | None = None,
    ) -> Raytracer:
        """Create a tracer taking lights and ambient light from a scene manager."""
        return cls(
            scene,
            config=config,
            default_shader=default_shader,
            lights=scene.lights,
            scene_ambient_light=scene.ambient_light,
        )

    @property
    def ambient_light(self) -> Vec3:
        """Ambient light shaders should use."""
        if self.config.override_ambient_light:
            return as_vec3(self.config.ambient_light)
        return self.scene_ambient_light

    def new_record(
        self,
        background_color: npt.ArrayLike,
        record_history: bool = False,
    ) -> TraceRecord:
        """Create a trace record sharing this tracer's current counters."""
        return TraceRecord(as_vec3(background_color), self.counters, record_history)

    # =========================================================================
    # Tracing
    # =========================================================================

    def trace(self, ray: Ray, record: TraceRecord) -> Vec3:
        """Trace a ray and return its color.

        Args:
            ray: The ray to trace; its direction must be unit length.
            record: State of the path the ray belongs to.

        Returns:
            RGB color as a float64 array of shape (3,).
        """
        record.counters.raycasts += 1
        forward_hit = self.scene.nearest_hit(ray)

        if forward_hit is not None:
            hit = forward_hit
            if record.penetration_stack:
                pushed_out_origin = forward_hit.point + forward_hit.normal * PUSH_OUT_MAGNITUDE
                backward_ray = Ray(pushed_out_origin, -ray.direction)
                resolved = self.resolve_backward(backward_ray, forward_hit.distance, record)
                if resolved is not None:
                    hit = resolved

            return self._shade_and_record(ray, hit, record)

        if record.penetration_stack:
            bounds = record.peek().bounds
            to_center = bounds.center - ray.origin
            proj_len = dot(to_center, ray.direction)
            reach = proj_len + bounds.bounding_sphere_radius + PUSH_OUT_MAGNITUDE
            pushed_out_origin = ray.origin + ray.direction * reach
            backward_ray = Ray(pushed_out_origin, -ray.direction)

            resolved = self.resolve_backward(
                backward_ray, length(pushed_out_origin - ray.origin), record
            )
            if resolved is not None:
                return self._shade_and_record(ray, resolved, record)

        color = record.background_color.copy()
        record.add_history_item(ray, None, color)
        return color

    def resolve_backward(
        self,
        backward_ray: Ray,
        max_distance: float,
        record: TraceRecord,
    ) -> HitRecord | None:
        """Find where the innermost volume of ``record`` is exited.

        Args:
            backward_ray: Ray starting beyond the forward bound and pointing
                back along the forward ray.
            max_distance: Forward bound; the backward search covers this
                distance.
            record: Path state; its penetration stack must be non-empty.

        Returns:
            The exit hit re-expressed in forward-ray distance, or None when
            no hit on the innermost surface lies within the bound.
        """
        sought_surface = record.peek().surface
        record.counters.backtraces += 1

        if max_distance < MIN_RAYCAST_DISTANCE:
            max_distance = MIN_RAYCAST_DISTANCE

        candidates = [
            h
            for h in self.scene.all_hits(backward_ray, max_distance)
            if h.surface is sought_surface and h.distance < max_distance
        ]
        if not candidates:
            return None

        backward_hit = max(candidates, key=lambda h: h.distance)
        return dataclasses.replace(backward_hit, distance=max_distance - backward_hit.distance)

    def _shade_and_record(self, ray: Ray, hit: HitRecord, record: TraceRecord) -> Vec3:
        color = self.get_color(ray, hit, record)
        record.add_history_item(ray, hit, color)
        return color

    def get_color(self, ray: Ray, hit: HitRecord, record: TraceRecord) -> Vec3:
        """Invoke the shader responsible for ``hit``.

        Raises:
            RuntimeError: If neither the surface nor the tracer provides an
                enabled shader.
        """
        shader = getattr(hit.surface, "shader", None)
        if shader is None or not shader.enabled:
            shader = self.default_shader
        if shader is None:
            raise RuntimeError(f"No shader available for surface {hit.surface!r}")

        color = np.asarray(shader.shade(self, ray, hit, record), dtype=np.float64)
        return color[:3].copy()

    # =========================================================================
    # Interrupt policy
    # =========================================================================

    @staticmethod
    def is_overwhite(color: Vec3) -> bool:
        """Whether every RGB channel is at least 1.0."""
        return bool(color[0] >= 1.0 and color[1] >= 1.0 and color[2] >= 1.0)

    def must_interrupt(self, color: Vec3, record: TraceRecord) -> bool:
        """Check the overwhite interrupt for a path.

        Increments the overwhite counter when the path is terminated.
        """
        if self.config.stop_on_overwhite and self.is_overwhite(color):
            record.counters.overwhites += 1
            return True
        return False
