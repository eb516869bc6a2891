"""Plain diffuse shader lit by ambient and point lights.

The shader never recurses: its color is the ambient light plus, for every
point light in range whose direction lies above the surface, a diffuse term
``dot(L, n) ** 1.5`` scaled by the light's color, intensity and a distance
attenuation, all multiplied by the surface color.

Example:
    >>> from src.glasstrace.materials.diffuse import AttenuationKind, DiffuseShader
    >>> shader = DiffuseShader(color=(0.8, 0.2, 0.2), attenuation=AttenuationKind.LINEAR)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt

from src.glasstrace.core.hit import HitRecord
from src.glasstrace.core.ray import Ray, Vec3, as_vec3, dot, length, normalize

if TYPE_CHECKING:
    from src.glasstrace.core.record import TraceRecord
    from src.glasstrace.core.tracer import Raytracer

# Brightness multiplier applied to every point light
LIGHT_INTENSITY_FACTOR = 2.0

# Exponent applied to dot(L, n)
DIFFUSE_EXPONENT = 1.5

# Base of the logarithmic falloff
LOGARITHMIC_ATTENUATION_BASE = 2.7

# Share of the light distance treated as the light's own volume
LIGHT_VOLUME_FRACTION = 0.2


class AttenuationKind(IntEnum):
    """Falloff of a point light's contribution with distance."""

    LOGARITHMIC = 0
    QUADRATIC = 1
    LINEAR = 2


def attenuate(distance: float, light_range: float, kind: AttenuationKind) -> float:
    """Attenuation factor of a light at ``distance`` for a given falloff."""
    if kind == AttenuationKind.LOGARITHMIC:
        return 1.0 / math.log(distance + LOGARITHMIC_ATTENUATION_BASE, LOGARITHMIC_ATTENUATION_BASE)
    falloff = 1.0 - distance / light_range
    if kind == AttenuationKind.QUADRATIC:
        return falloff * falloff
    return falloff


@dataclass
class DiffuseShader:
    """Lambert-style diffuse shading without reflection or refraction.

    Attributes:
        color: RGB surface color.
        attenuation: Light falloff with distance.
        enabled: Disabled shaders are replaced by the tracer's default.
    """

    color: npt.ArrayLike = (0.5, 0.5, 0.5)
    attenuation: AttenuationKind = AttenuationKind.QUADRATIC
    enabled: bool = True

    def __post_init__(self) -> None:
        self.color = as_vec3(self.color)
        self.attenuation = AttenuationKind(self.attenuation)

    def shade(self, tracer: Raytracer, ray: Ray, hit: HitRecord, record: TraceRecord) -> Vec3:
        light_sum = np.array(tracer.ambient_light, dtype=np.float64)

        for light in tracer.lights:
            to_light = light.position - hit.point
            distance = length(to_light)
            if distance >= light.range:
                continue

            distance = abs(distance - distance * LIGHT_VOLUME_FRACTION)
            intensity = dot(normalize(to_light), hit.normal)
            if intensity <= 0.0:
                continue

            intensity = intensity**DIFFUSE_EXPONENT
            attenuation = attenuate(distance, light.range, self.attenuation)
            light_sum += light.color * (attenuation * intensity * light.intensity * LIGHT_INTENSITY_FACTOR)

        return light_sum * self.color
