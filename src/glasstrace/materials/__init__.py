"""Shaders turning resolved hits into colors.

Components:
    diffuse: Ambient plus point-light diffuse shading with selectable falloff
    compound: Diffuse, specular, reflection and refraction with texture maps
    hsv: Hue rotation used for chromatic aberration

Shaders implement the Shader protocol of the core package and are plain
Python objects; the compound shader recurses back into the tracer.
"""

from .compound import WATER_REFRACTION_INDEX, CompoundShader
from .diffuse import AttenuationKind, DiffuseShader, attenuate
from .hsv import change_hue

__all__ = [
    "CompoundShader",
    "WATER_REFRACTION_INDEX",
    "DiffuseShader",
    "AttenuationKind",
    "attenuate",
    "change_hue",
]
