"""Demo scene of glass volumes over a checkered floor.

The scene exercises every part of the trace engine:

- A glass sphere with a colored diffuse core (a volume inside a volume)
- A glass box with chromatic aberration
- A mirror sphere
- A water sphere entirely enclosed by a larger glass sphere (nested media)
- A checkered floor sampled through the texture cache
- Two point lights

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.glasstrace.scene.glass_spheres import create_glass_spheres_scene
    >>> scene, camera = create_glass_spheres_scene()
"""

from dataclasses import dataclass

import numpy as np

from src.glasstrace.camera.pinhole import PinholeCamera
from src.glasstrace.materials.compound import WATER_REFRACTION_INDEX, CompoundShader
from src.glasstrace.scene.manager import SceneManager
from src.glasstrace.textures.cache import ArrayImageProvider
from src.glasstrace.textures.sampler import FilterMode, WrapMode

# =============================================================================
# Scene Parameters
# =============================================================================


@dataclass
class GlassSceneParams:
    """Parameters for configuring the glass spheres scene.

    Attributes:
        glass_index: Refraction index of the glass volumes.
        color_aberration: Hue shift of light refracted into the glass box.
        light_intensity: Intensity of both point lights.
        ambient_light: RGB ambient light of the scene.
        background_color: RGB color of rays leaving the scene.
        floor_squares: Number of checker squares along each floor edge.
    """

    glass_index: float = 1.5
    color_aberration: float = 0.05
    light_intensity: float = 1.0
    ambient_light: tuple[float, float, float] = (0.15, 0.15, 0.15)
    background_color: tuple[float, float, float] = (0.35, 0.45, 0.6)
    floor_squares: int = 8


# Size of the square floor
FLOOR_SIZE = 20.0

# Resolution of the floor texture per checker square
TEXELS_PER_SQUARE = 8

LIGHT_CHECKER_COLOR = (0.9, 0.9, 0.85)
DARK_CHECKER_COLOR = (0.2, 0.2, 0.25)


def make_checkerboard(squares: int, texels_per_square: int = TEXELS_PER_SQUARE) -> ArrayImageProvider:
    """Checkerboard texture with a full mip chain.

    Raises:
        ValueError: If either count is not positive.
    """
    if squares <= 0 or texels_per_square <= 0:
        raise ValueError(f"Checkerboard counts must be positive, got {squares}, {texels_per_square}")

    size = squares * texels_per_square
    yy, xx = np.mgrid[0:size, 0:size] // texels_per_square
    light = ((xx + yy) % 2 == 0)[..., np.newaxis]
    pixels = np.where(light, LIGHT_CHECKER_COLOR, DARK_CHECKER_COLOR).astype(np.float32)
    return ArrayImageProvider.with_mipmaps(pixels, wrap_mode=WrapMode.REPEAT, filter_mode=FilterMode.BILINEAR)


def create_glass_spheres_scene(
    params: GlassSceneParams | None = None,
) -> tuple[SceneManager, PinholeCamera]:
    """Create the glass spheres scene and a camera looking at it.

    Args:
        params: Scene parameters; defaults when None.

    Returns:
        Tuple of (scene, camera).
    """
    if params is None:
        params = GlassSceneParams()

    scene = SceneManager(ambient_light=params.ambient_light)

    floor = CompoundShader(
        diffuse_color=(0.5, 0.5, 0.5),
        diffuse_texture=make_checkerboard(params.floor_squares),
        reflection_component=0.15,
    )
    half = FLOOR_SIZE / 2.0
    # cross(z, x) = +y, the floor faces up
    scene.add_quad((-half, 0.0, -half), (0.0, 0.0, FLOOR_SIZE), (FLOOR_SIZE, 0.0, 0.0), shader=floor)

    glass = CompoundShader(
        diffuse_component=0.0,
        specular_component=0.6,
        specular_power=40.0,
        reflection_component=0.1,
        inner_reflection_component=0.1,
        refraction_component=0.9,
        refraction_index=params.glass_index,
    )
    core = CompoundShader(diffuse_color=(0.8, 0.15, 0.1), specular_component=0.3)
    scene.add_sphere((-2.2, 1.2, -1.0), 1.2, shader=glass)
    scene.add_sphere((-2.2, 1.2, -1.0), 0.45, shader=core)

    prism = CompoundShader(
        diffuse_component=0.0,
        reflection_component=0.05,
        refraction_component=0.95,
        refraction_index=params.glass_index,
        color_aberration=params.color_aberration,
    )
    scene.add_box((0.3, 0.95, 0.5), (1.4, 1.8, 1.4), shader=prism)

    mirror = CompoundShader(
        diffuse_color=(0.9, 0.9, 0.9),
        diffuse_component=0.1,
        reflection_component=0.85,
        specular_component=0.8,
        specular_power=60.0,
    )
    scene.add_sphere((2.6, 1.0, -2.0), 1.0, shader=mirror)

    water = CompoundShader(
        diffuse_component=0.0,
        refraction_component=1.0,
        refraction_index=WATER_REFRACTION_INDEX / params.glass_index,
    )
    scene.add_sphere((2.0, 1.65, 3.0), 1.6, shader=glass)
    scene.add_sphere((2.0, 1.65, 3.0), 0.7, shader=water)

    scene.add_point_light((-4.0, 7.0, 5.0), range=25.0, intensity=params.light_intensity)
    scene.add_point_light((5.0, 4.0, 3.0), color=(1.0, 0.9, 0.8), range=15.0, intensity=params.light_intensity * 0.6)

    camera = PinholeCamera(
        lookfrom=(0.0, 3.5, 9.0),
        lookat=(0.0, 1.0, 0.0),
        vup=(0.0, 1.0, 0.0),
        vfov=45.0,
        aspect_ratio=4.0 / 3.0,
        background_color=params.background_color,
    )
    return scene, camera
