"""General-purpose shader combining diffuse, specular, reflection and refraction.

The compound shader is the only shader that recurses into the tracer. At a
hit it:

1. Builds the shading frame: texture coordinate, shading normal (flipped
   toward the ray when the ray leaves the surface) and tangent basis,
   optionally perturbed by a normal map.
2. Sums ambient, diffuse and Phong specular light from the point lights and
   multiplies the diffuse sum by the (optionally textured) diffuse color.
3. Stops if the path is already overwhite.
4. Traces a reflection when the reflection budget for the current side of
   the surface allows it.
5. Traces a refraction when the refraction budget allows it. Entering rays
   push the hit onto the penetration stack and exiting rays pop it; total
   internal reflection substitutes a mirror direction and leaves the stack
   alone. When both reflection and refraction are traced, the refraction
   continues on a forked record.

Whether a ray enters or exits is decided from the geometric hit normal, not
from the normal-mapped shading normal, so a normal map never changes which
side of the surface a ray is on.

Example:
    >>> from src.glasstrace.materials.compound import CompoundShader
    >>> glass = CompoundShader(
    ...     diffuse_component=0.0,
    ...     reflection_component=0.1,
    ...     inner_reflection_component=0.1,
    ...     refraction_component=0.9,
    ...     refraction_index=1.5,
    ... )
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt

from src.glasstrace.core.hit import HitRecord
from src.glasstrace.core.ray import (
    Ray,
    Vec3,
    as_vec3,
    cross,
    dot,
    length,
    normalize,
    reflect,
    refract,
    transform_tbn,
)
from src.glasstrace.core.tracer import PUSH_OUT_MAGNITUDE
from src.glasstrace.materials.hsv import change_hue
from src.glasstrace.textures.cache import ImageAssetProvider, get_texture
from src.glasstrace.textures.sampler import grayscale

if TYPE_CHECKING:
    from src.glasstrace.core.record import TraceRecord
    from src.glasstrace.core.tracer import Raytracer

# Index of refraction of water
WATER_REFRACTION_INDEX = 1.34312

# Brightness multiplier applied to every point light
LIGHT_INTENSITY_FACTOR = 2.0

# Exponent applied to dot(L, n)
DIFFUSE_EXPONENT = 1.5

# Share of a light's range treated as the light's own volume
LIGHT_VOLUME_RANGE_FRACTION = 0.00625

BLACK = np.zeros(3)


def _lerp(a, b, t: float):
    return a + (b - a) * t


def _clamp01(x: float) -> float:
    return min(max(x, 0.0), 1.0)


@dataclass
class CompoundShader:
    """Diffuse/specular shader with mirror reflection and refraction.

    Texture maps are given as image asset providers and sampled through the
    process-wide texture cache.

    Attributes:
        diffuse_color: RGB diffuse color.
        diffuse_component: Weight of the diffuse term.
        diffuse_texture: Optional RGBA diffuse texture.
        diffuse_color_is_background: Blend translucent texels over
            ``diffuse_color`` instead of black.
        specular_component: Weight of the Phong specular term.
        specular_power: Phong exponent.
        specular_map: Optional map scaling the specular weight.
        specular_map_influence: Blend between unmapped and mapped weight.
        normal_map: Optional tangent-space normal map.
        normal_map_influence: Blend between geometric and mapped normal.
        reflection_component: Weight of reflections of rays arriving from
            outside the surface.
        inner_reflection_component: Weight of reflections of rays travelling
            inside the medium.
        reflection_map: Optional map scaling the reflection weight.
        reflection_map_influence: Blend between unmapped and mapped weight.
        refraction_component: Weight of the refracted contribution.
        refraction_index: Index of refraction of the medium behind the
            surface relative to the medium in front of it.
        refract_where_translucent: Scale refraction by the diffuse
            texture's transparency.
        color_aberration: Hue shift applied to refracted light on entry,
            scaled by how oblique the incidence is.
        enabled: Disabled shaders are replaced by the tracer's default.
    """

    diffuse_color: npt.ArrayLike = (0.5, 0.5, 0.5)
    diffuse_component: float = 1.0
    diffuse_texture: ImageAssetProvider | None = None
    diffuse_color_is_background: bool = True
    specular_component: float = 0.0
    specular_power: float = 5.0
    specular_map: ImageAssetProvider | None = None
    specular_map_influence: float = 1.0
    normal_map: ImageAssetProvider | None = None
    normal_map_influence: float = 1.0
    reflection_component: float = 0.0
    inner_reflection_component: float = 0.0
    reflection_map: ImageAssetProvider | None = None
    reflection_map_influence: float = 1.0
    refraction_component: float = 0.0
    refraction_index: float = WATER_REFRACTION_INDEX
    refract_where_translucent: bool = False
    color_aberration: float = 0.0
    enabled: bool = True

    def __post_init__(self) -> None:
        self.diffuse_color = as_vec3(self.diffuse_color)
        if self.refraction_index <= 0.0:
            raise ValueError(f"Refraction index must be positive, got {self.refraction_index}")

    @property
    def needs_surface_frame(self) -> bool:
        """Whether any texture requires texture coordinates and tangents."""
        return any(
            provider is not None
            for provider in (self.diffuse_texture, self.specular_map, self.normal_map, self.reflection_map)
        )

    # =========================================================================
    # Shading
    # =========================================================================

    def shade(self, tracer: Raytracer, ray: Ray, hit: HitRecord, record: TraceRecord) -> Vec3:
        """Compute the color of a hit, recursing for reflection and refraction."""
        if self.needs_surface_frame:
            frame = hit.surface_frame()
            tex_coord = frame.tex_coord
            surface_normal = np.asarray(frame.normal, dtype=np.float64)
            tangent = np.asarray(frame.tangent, dtype=np.float64)
            binormal = cross(tangent, surface_normal)
        else:
            tex_coord = (0.0, 0.0)
            surface_normal = hit.normal
            tangent = BLACK
            binormal = BLACK

        entering = dot(hit.normal, ray.direction) < 0.0
        if not entering:
            surface_normal = -surface_normal

        if self.normal_map is not None and self.normal_map_influence > 0.0:
            surface_normal = self._apply_normal_map(tex_coord, surface_normal, tangent, binormal)

        specular_intensity = self._specular_intensity(tex_coord)
        diffuse_color, diffuse_alpha = self._diffuse_color(tex_coord)
        diffuse_light, specular_light = self._light_sums(tracer, ray, hit, surface_normal, specular_intensity)

        total_color = diffuse_light * diffuse_color * self.diffuse_component + specular_light * specular_intensity

        if tracer.must_interrupt(total_color, record):
            return total_color

        config = tracer.config
        if entering:
            will_reflect = self.reflection_component > 0.0 and record.num_reflections < config.max_reflections
            reflection_intensity = self.reflection_component
        else:
            will_reflect = (
                self.inner_reflection_component > 0.0
                and record.num_inner_reflections < config.max_inner_reflections
            )
            reflection_intensity = self.inner_reflection_component

        if will_reflect and self.reflection_map is not None and self.reflection_map_influence > 0.0:
            map_color = get_texture(self.reflection_map).filtered_pixel(*tex_coord)
            map_intensity = grayscale(map_color) * map_color[3]
            reflection_intensity = _lerp(
                reflection_intensity,
                map_intensity * reflection_intensity,
                _clamp01(self.reflection_map_influence),
            )
            will_reflect = reflection_intensity > 0.0

        refraction_intensity = self.refraction_component
        if self.refract_where_translucent:
            refraction_intensity *= 1.0 - diffuse_alpha * self.diffuse_component

        will_refract = refraction_intensity > 0.0 and record.num_refractions < config.max_refractions
        refraction_record = record.fork() if will_reflect and will_refract else record

        if will_reflect:
            if entering:
                record.num_reflections += 1
                record.counters.reflections += 1
            else:
                record.num_inner_reflections += 1
                record.counters.inner_reflections += 1

            reflection_dir = reflect(ray.direction, surface_normal)
            reflection_ray = Ray(hit.point + reflection_dir * PUSH_OUT_MAGNITUDE, reflection_dir)
            total_color = total_color + tracer.trace(reflection_ray, record) * reflection_intensity

            if tracer.must_interrupt(total_color, record):
                return total_color

        if will_refract:
            refraction_record.num_refractions += 1
            refraction_record.counters.refractions += 1

            k = 1.0 / self.refraction_index if entering else self.refraction_index
            n_dot_ray = dot(surface_normal, ray.direction)
            refraction_dir = refract(ray.direction, surface_normal, k)

            if refraction_dir is None:
                refraction_dir = reflect(ray.direction, surface_normal)
            elif entering:
                refraction_record.enter(hit)
            else:
                refraction_record.exit()

            refraction_ray = Ray(hit.point + refraction_dir * PUSH_OUT_MAGNITUDE, refraction_dir)
            refraction_color = tracer.trace(refraction_ray, refraction_record)

            if self.color_aberration != 0.0 and entering:
                refraction_color = change_hue(refraction_color, (1.0 + n_dot_ray) * self.color_aberration)

            total_color = total_color + refraction_color * refraction_intensity

            if tracer.must_interrupt(total_color, refraction_record):
                return total_color

        return total_color

    # =========================================================================
    # Shading terms
    # =========================================================================

    def _apply_normal_map(self, tex_coord, surface_normal: Vec3, tangent: Vec3, binormal: Vec3) -> Vec3:
        color = get_texture(self.normal_map).filtered_pixel(*tex_coord)
        tex_normal = normalize(2.0 * color[:3] - 1.0)
        world_normal = transform_tbn(tex_normal, tangent, binormal, surface_normal)
        return normalize(_lerp(surface_normal, world_normal, _clamp01(self.normal_map_influence)))

    def _specular_intensity(self, tex_coord) -> float:
        intensity = self.specular_component
        if self.specular_map is not None and self.specular_map_influence > 0.0 and intensity > 0.0:
            color = get_texture(self.specular_map).filtered_pixel(*tex_coord)
            mapped = intensity * grayscale(color) * color[3]
            intensity = _lerp(self.specular_component, mapped, _clamp01(self.specular_map_influence))
        return intensity

    def _diffuse_color(self, tex_coord) -> tuple[Vec3, float]:
        """Diffuse RGB color and its alpha at a texture coordinate."""
        if self.diffuse_texture is None:
            return self.diffuse_color, 1.0

        tex_color = get_texture(self.diffuse_texture).filtered_pixel(*tex_coord)
        alpha = float(tex_color[3])
        background = self.diffuse_color if alpha < 1.0 and self.diffuse_color_is_background else BLACK
        return _lerp(background, tex_color[:3], alpha), alpha

    def _light_sums(
        self,
        tracer: Raytracer,
        ray: Ray,
        hit: HitRecord,
        surface_normal: Vec3,
        specular_intensity: float,
    ) -> tuple[Vec3, Vec3]:
        """Accumulated diffuse (including ambient) and specular light."""
        diffuse_sum = np.array(tracer.ambient_light, dtype=np.float64) * self.diffuse_component
        specular_sum = np.zeros(3)
        to_view = -ray.direction

        for light in tracer.lights:
            to_light = light.position - hit.point
            distance = length(to_light) - light.range * LIGHT_VOLUME_RANGE_FRACTION
            if distance < 0.0:
                distance = 0.0
            elif distance >= light.range:
                continue

            dir_to_light = normalize(to_light)
            attenuation = (1.0 - distance / light.range) ** 2
            light_intensity = light.intensity * LIGHT_INTENSITY_FACTOR

            if self.diffuse_component > 0.0:
                diffuse = dot(dir_to_light, surface_normal)
                if diffuse > 0.0:
                    diffuse_sum += light.color * (attenuation * diffuse**DIFFUSE_EXPONENT * light_intensity)

            if specular_intensity > 0.0:
                specularity = dot(reflect(-dir_to_light, surface_normal), to_view)
                if specularity > 0.0:
                    specular_sum += light.color * (attenuation * specularity**self.specular_power * light_intensity)

        return diffuse_sum, specular_sum
