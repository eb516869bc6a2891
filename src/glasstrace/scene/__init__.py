"""Scene module for scene storage and intersection queries.

Components:
    intersection: Taichi fields holding primitives and the hit-gathering kernel
    manager: Scene manager wrapping primitives in surfaces, plus point lights
    glass_spheres: Demo scene of nested glass volumes

Scene data is organized for efficient kernel access:
    - Structure-of-Arrays layout for geometric data
    - One surface id per primitive; boxes share one id over six quads
"""

from .glass_spheres import GlassSceneParams, create_glass_spheres_scene, make_checkerboard
from .intersection import (
    MAX_HITS,
    MAX_QUADS,
    MAX_SPHERES,
    PrimitiveHit,
    add_quad,
    add_sphere,
    clear_scene,
    get_quad_count,
    get_sphere_count,
    query_hits,
)
from .manager import BoxSurface, PointLight, QuadSurface, SceneManager, SphereSurface

__all__ = [
    # Intersection module
    "PrimitiveHit",
    "add_sphere",
    "add_quad",
    "clear_scene",
    "get_sphere_count",
    "get_quad_count",
    "query_hits",
    "MAX_SPHERES",
    "MAX_QUADS",
    "MAX_HITS",
    # Manager module
    "SceneManager",
    "SphereSurface",
    "QuadSurface",
    "BoxSurface",
    "PointLight",
    # Demo scene
    "GlassSceneParams",
    "create_glass_spheres_scene",
    "make_checkerboard",
]
