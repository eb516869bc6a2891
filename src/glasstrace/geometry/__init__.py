"""Geometry module for shape primitives.

Components:
    sphere: Sphere primitive with robust root solving
    quad: Single-sided quads and axis-aligned boxes built from them

Intersection routines are Taichi functions (@ti.func) evaluated by the
scene intersection kernel. The Python-side helpers compute bounding volumes
and texture frames for the shaders.
"""

from .quad import (
    Quad,
    box_faces,
    box_surface_frame,
    quad_bounds,
    quad_normal,
    quad_plane_hit,
    quad_surface_frame,
)
from .sphere import Sphere, sphere_bounds, sphere_outward_normal, sphere_roots, sphere_surface_frame

__all__ = [
    "Sphere",
    "sphere_roots",
    "sphere_outward_normal",
    "sphere_bounds",
    "sphere_surface_frame",
    "Quad",
    "quad_plane_hit",
    "quad_normal",
    "quad_bounds",
    "quad_surface_frame",
    "box_faces",
    "box_surface_frame",
]
