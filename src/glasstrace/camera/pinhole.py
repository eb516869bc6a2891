"""Pinhole camera model for perspective projection ray generation.

This module implements a pinhole camera that generates primary rays for the
renderer. The camera supports:
- Look-at positioning (lookfrom, lookat, vup)
- Vertical field of view in degrees
- Arbitrary aspect ratios
- A background color returned by rays that hit nothing

The camera builds an orthonormal basis (u, v, w) from the view parameters:
- w: points from lookat toward lookfrom (opposite view direction)
- u: points right in the image plane
- v: points up in the image plane

Example:
    >>> from src.glasstrace.camera.pinhole import PinholeCamera
    >>>
    >>> # Create camera looking at origin from z=3
    >>> camera = PinholeCamera(
    ...     lookfrom=(0.0, 0.0, 3.0),
    ...     lookat=(0.0, 0.0, 0.0),
    ...     vup=(0.0, 1.0, 0.0),
    ...     vfov=60.0,
    ...     aspect_ratio=16.0/9.0
    ... )
    >>> ray = camera.viewport_point_to_ray(0.5, 0.5)  # Ray through image center
"""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass, field

from src.glasstrace.core.ray import Ray, Vec3, as_vec3, cross, length, normalize

# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class PinholeCamera:
    """Configuration for a pinhole (perspective) camera.

    Attributes:
        lookfrom: Camera position in world space (x, y, z).
        lookat: Point the camera is looking at in world space (x, y, z).
        vup: Up direction vector for camera orientation (typically (0, 1, 0)).
        vfov: Vertical field of view in degrees, in (0, 180).
        aspect_ratio: Width divided by height of the output image.
        background_color: RGB color of rays that hit nothing.
    """

    lookfrom: tuple[float, float, float]
    lookat: tuple[float, float, float]
    vup: tuple[float, float, float] = (0.0, 1.0, 0.0)
    vfov: float = 60.0
    aspect_ratio: float = 1.0
    background_color: tuple[float, float, float] = (0.0, 0.0, 0.0)

    _origin: Vec3 = field(init=False, repr=False, compare=False)
    _horizontal: Vec3 = field(init=False, repr=False, compare=False)
    _vertical: Vec3 = field(init=False, repr=False, compare=False)
    _lower_left: Vec3 = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        """Validate the parameters and compute the viewport geometry.

        The viewport is a virtual image plane at unit distance from the
        camera. Ray directions are computed by interpolating across it.

        Raises:
            ValueError: If the FOV or aspect ratio is out of range, or the
                view direction is degenerate or parallel to vup.
        """
        if not 0.0 < self.vfov < 180.0:
            raise ValueError(f"Vertical FOV must be in (0, 180) degrees, got {self.vfov}")
        if self.aspect_ratio <= 0.0:
            raise ValueError(f"Aspect ratio must be positive, got {self.aspect_ratio}")

        lookfrom = as_vec3(self.lookfrom)
        lookat = as_vec3(self.lookat)
        vup = as_vec3(self.vup)

        # w points from lookat toward lookfrom (backward)
        w = lookfrom - lookat
        if length(w) == 0.0:
            raise ValueError("lookfrom and lookat must be different points")
        w = normalize(w)

        # u points right (perpendicular to w and vup)
        u = cross(vup, w)
        if length(u) == 0.0:
            raise ValueError("vup must not be parallel to the view direction")
        u = normalize(u)

        # v points up in the camera's frame
        v = cross(w, u)

        viewport_height = 2.0 * math.tan(math.radians(self.vfov) / 2.0)
        viewport_width = self.aspect_ratio * viewport_height

        self._origin = lookfrom
        self._horizontal = viewport_width * u
        self._vertical = viewport_height * v
        self._lower_left = lookfrom - w - self._horizontal / 2.0 - self._vertical / 2.0

    @property
    def position(self) -> Vec3:
        """Camera position as a float64 array."""
        return self._origin.copy()

    def viewport_point_to_ray(self, x: float, y: float) -> Ray:
        """Generate a ray through normalized viewport coordinates (x, y).

        The coordinates are normalized:
        - x = 0: left edge of image, x = 1: right edge
        - y = 0: bottom edge of image, y = 1: top edge

        Args:
            x: Horizontal coordinate in [0, 1] (left to right).
            y: Vertical coordinate in [0, 1] (bottom to top).

        Returns:
            A Ray from the camera position with a unit direction toward the
            specified point on the image plane.
        """
        point_on_viewport = self._lower_left + x * self._horizontal + y * self._vertical
        return Ray(self._origin.copy(), normalize(point_on_viewport - self._origin))

    def with_aspect(self, aspect_ratio: float) -> PinholeCamera:
        """Copy of this camera with another aspect ratio."""
        return dataclasses.replace(self, aspect_ratio=aspect_ratio)

    def with_resolution(self, width: int, height: int) -> PinholeCamera:
        """Copy of this camera matching an image resolution."""
        return self.with_aspect(width / height)

