"""Core trace engine.

Components:
    ray: Ray data structure and vector helpers (reflection, refraction, TBN)
    hit: Hit records, bounds and the scene/shader contracts
    record: Per-path trace state, forking, history and shared counters
    tracer: The recursive tracer with backward-trace resolution
    renderer: Image rendering over a camera and diagnostic path collection

The core is pure Python and numpy; it never touches Taichi fields directly.
Scenes plug in through the SceneQuery protocol.
"""

from .hit import Bounds, HitRecord, SceneQuery, Shader, Surface, SurfaceFrame
from .ray import (
    Ray,
    as_vec3,
    cross,
    dot,
    length,
    make_ray,
    normalize,
    reflect,
    refract,
    transform_inverse_tbn,
    transform_tbn,
    vec3,
)
from .record import RaytraceCounters, TraceHistoryItem, TraceRecord
from .tracer import MIN_RAYCAST_DISTANCE, PUSH_OUT_MAGNITUDE, Raytracer, TracerConfig

# Note: renderer is NOT imported here; it depends on the preview package.
# Import it directly from src.glasstrace.core.renderer when needed.

__all__ = [
    "Ray",
    "make_ray",
    "vec3",
    "as_vec3",
    "length",
    "dot",
    "cross",
    "normalize",
    "reflect",
    "refract",
    "transform_tbn",
    "transform_inverse_tbn",
    "Bounds",
    "SurfaceFrame",
    "Surface",
    "HitRecord",
    "SceneQuery",
    "Shader",
    "RaytraceCounters",
    "TraceHistoryItem",
    "TraceRecord",
    "Raytracer",
    "TracerConfig",
    "PUSH_OUT_MAGNITUDE",
    "MIN_RAYCAST_DISTANCE",
]
