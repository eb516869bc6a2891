"""Recursive Whitted-style ray tracer with correct handling of nested media.

This package turns camera rays into colors by chaining mirror reflections
and refractions through transparent volumes. Rays travelling inside a volume
find their exit with a backward trace, because the scene only reports
surfaces facing the ray.

Subpackages:
    core: Rays, hit records, trace records, the recursive tracer and renderer
    geometry: Shape primitives and intersection algorithms
    scene: Taichi-backed scene storage, scene manager and demo scenes
    materials: Diffuse and compound (reflective/refractive) shaders
    textures: Mipmapped texture sampling and the texture cache
    camera: Pinhole camera with ray generation
    preview: Tone mapping and image export
"""

__version__ = "0.1.0"
