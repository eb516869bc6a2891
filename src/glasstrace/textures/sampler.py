"""Mipmapped texture sampling with nearest, bilinear and trilinear filtering.

A :class:`TextureSampler` holds an RGBA float image and, for the top level,
the chain of its mip layers (each half the linear resolution of the previous
one, down to 1x1). Mip generation itself happens elsewhere; samplers are
built from ready-made levels with :meth:`TextureSampler.from_mip_levels`.

Texture coordinates are normalized: u runs along the width and v along the
height, with row 0 of the pixel array at v = 0. Texel (x, y) covers
``[x / width, (x + 1) / width) x [y / height, (y + 1) / height)`` and its
center is at ``((x + 0.5) / width, (y + 0.5) / height)``.

Example:
    >>> import numpy as np
    >>> from src.glasstrace.textures.sampler import FilterMode, TextureSampler, WrapMode
    >>> pixels = np.random.rand(4, 4, 4).astype(np.float32)
    >>> tex = TextureSampler(pixels, wrap_mode=WrapMode.REPEAT, filter_mode=FilterMode.BILINEAR)
    >>> tex.get_pixel_bilinear(0.125, 0.125)  # Texel center of (0, 0)
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from enum import IntEnum

import numpy as np
import numpy.typing as npt

Color4 = npt.NDArray[np.float64]

# Distances below this (in texels) from a texel center snap onto the center.
TEXEL_SNAP_EPSILON = 1e-6


class WrapMode(IntEnum):
    """How coordinates outside [0, 1) are mapped back into the texture."""

    CLAMP = 0
    REPEAT = 1


class FilterMode(IntEnum):
    """Texture filtering method used by :meth:`TextureSampler.filtered_pixel`."""

    NEAREST = 0
    BILINEAR = 1
    TRILINEAR = 2


def grayscale(color: npt.ArrayLike) -> float:
    """Perceptual luminance of an RGB(A) color."""
    c = np.asarray(color, dtype=np.float64)
    return float(0.299 * c[0] + 0.587 * c[1] + 0.114 * c[2])


def _lerp(a: Color4, b: Color4, t: float) -> Color4:
    return a + (b - a) * t


def _to_rgba(pixels: npt.ArrayLike) -> npt.NDArray[np.float32]:
    data = np.asarray(pixels, dtype=np.float32)
    if data.ndim != 3:
        raise ValueError(f"Pixel grid must have shape (height, width, channels), got {data.shape}")

    height, width, channels = data.shape
    if width <= 0:
        raise ValueError(f"Texture width must be greater than zero, got {width}")
    if height <= 0:
        raise ValueError(f"Texture height must be greater than zero, got {height}")

    if channels == 4:
        return data.copy()
    if channels == 3:
        alpha = np.ones((height, width, 1), dtype=np.float32)
        return np.concatenate([data, alpha], axis=2)
    raise ValueError(f"Pixels must have 3 or 4 channels, got {channels}")


class TextureSampler:
    """A 2D RGBA texture with an optional mip chain.

    Attributes:
        wrap_mode: Coordinate wrapping applied before sampling.
        filter_mode: Filtering used by :meth:`filtered_pixel`.
    """

    def __init__(
        self,
        pixels: npt.ArrayLike,
        wrap_mode: WrapMode = WrapMode.CLAMP,
        filter_mode: FilterMode = FilterMode.BILINEAR,
    ) -> None:
        """Create a single-level texture from a pixel grid.

        Args:
            pixels: Array of shape (height, width, 3 or 4). RGB input gets an
                opaque alpha channel.
            wrap_mode: Coordinate wrapping mode.
            filter_mode: Filtering mode.

        Raises:
            ValueError: If the grid is empty or not RGB/RGBA.
        """
        self._pixels = _to_rgba(pixels)
        self._height, self._width = self._pixels.shape[:2]
        self._width_inv = 1.0 / self._width
        self._height_inv = 1.0 / self._height
        self._mip_layers: tuple[TextureSampler, ...] = (self,)
        self.wrap_mode = WrapMode(wrap_mode)
        self.filter_mode = FilterMode(filter_mode)

    @classmethod
    def blank(cls, width: int, height: int, **kwargs) -> TextureSampler:
        """Create a transparent black texture of the given size.

        Raises:
            ValueError: If width or height is not positive.
        """
        if width <= 0:
            raise ValueError(f"Texture width must be greater than zero, got {width}")
        if height <= 0:
            raise ValueError(f"Texture height must be greater than zero, got {height}")
        return cls(np.zeros((height, width, 4), dtype=np.float32), **kwargs)

    @classmethod
    def from_mip_levels(
        cls,
        levels: Sequence[npt.ArrayLike],
        wrap_mode: WrapMode = WrapMode.CLAMP,
        filter_mode: FilterMode = FilterMode.BILINEAR,
    ) -> TextureSampler:
        """Create a texture whose top level owns the given mip chain.

        Args:
            levels: Pixel grids from the full-resolution level down.
            wrap_mode: Wrapping mode shared by every level.
            filter_mode: Filtering mode shared by every level.

        Raises:
            ValueError: If no level is given or a level is invalid.
        """
        if len(levels) == 0:
            raise ValueError("At least one mip level is required")

        layers = tuple(cls(level, wrap_mode=wrap_mode, filter_mode=filter_mode) for level in levels)
        top = layers[0]
        top._mip_layers = layers
        return top

    @property
    def width(self) -> int:
        """Width of this level in texels."""
        return self._width

    @property
    def height(self) -> int:
        """Height of this level in texels."""
        return self._height

    @property
    def pixels(self) -> npt.NDArray[np.float32]:
        """The (height, width, 4) RGBA pixel grid of this level."""
        return self._pixels

    @property
    def mip_layers(self) -> tuple[TextureSampler, ...]:
        """Mip levels, starting with this texture."""
        return self._mip_layers

    @property
    def mip_count(self) -> int:
        """Number of mip levels."""
        return len(self._mip_layers)

    def layer(self, mip_level: int) -> TextureSampler:
        """Return the texture of a mip level.

        Raises:
            ValueError: If the level is outside ``[0, mip_count - 1]``.
        """
        if mip_level < 0 or mip_level >= self.mip_count:
            raise ValueError(
                f"Mip level for this texture must be in range from 0 to "
                f"{self.mip_count - 1} inclusively, got {mip_level}"
            )
        return self._mip_layers[mip_level]

    def clamp_mip_level(self, mip_level: float) -> float:
        """Clamp a (fractional) mip level into the valid range."""
        return min(max(mip_level, 0.0), float(self.mip_count - 1))

    # =========================================================================
    # Coordinates
    # =========================================================================

    def normalize_tex_coord(self, u: float, v: float) -> tuple[float, float]:
        """Map texture coordinates into [0, 1) according to the wrap mode."""
        if self.wrap_mode == WrapMode.CLAMP:
            u = min(max(u, 0.0), 1.0) % 1.0
            v = min(max(v, 0.0), 1.0) % 1.0
        else:
            u = u % 1.0
            v = v % 1.0
        return u, v

    def get_pixel_coord(self, u: float, v: float) -> tuple[int, int]:
        """Texel containing the wrapped coordinate (u, v)."""
        u, v = self.normalize_tex_coord(u, v)
        x = min(int(u * self._width), self._width - 1)
        y = min(int(v * self._height), self._height - 1)
        return x, y

    def _wrap_index(self, i: int, size: int) -> int:
        if self.wrap_mode == WrapMode.CLAMP:
            return min(max(i, 0), size - 1)
        return i % size

    # =========================================================================
    # Sampling
    # =========================================================================

    def get_pixel(self, x: int, y: int) -> Color4:
        """Stored texel (x, y) of this level as a float64 RGBA color."""
        return self._pixels[y, x].astype(np.float64)

    def get_pixel_nearest(self, u: float, v: float, mip_level: int | None = None) -> Color4:
        """Sample the texel containing (u, v).

        Args:
            u: Horizontal texture coordinate.
            v: Vertical texture coordinate.
            mip_level: Mip level to sample; this level when None.
        """
        if mip_level is not None:
            return self.layer(mip_level).get_pixel_nearest(u, v)

        x, y = self.get_pixel_coord(u, v)
        return self.get_pixel(x, y)

    def get_pixel_bilinear(self, u: float, v: float, mip_level: int | None = None) -> Color4:
        """Blend the 2x2 texels around (u, v) by their distance to it.

        Exact texel centers return the stored texel unchanged.

        Args:
            u: Horizontal texture coordinate.
            v: Vertical texture coordinate.
            mip_level: Mip level to sample; this level when None.
        """
        if mip_level is not None:
            return self.layer(mip_level).get_pixel_bilinear(u, v)

        u, v = self.normalize_tex_coord(u, v)
        fx = u * self._width - 0.5
        fy = v * self._height - 0.5

        rounded_x = round(fx)
        if abs(fx - rounded_x) < TEXEL_SNAP_EPSILON:
            fx = float(rounded_x)
        rounded_y = round(fy)
        if abs(fy - rounded_y) < TEXEL_SNAP_EPSILON:
            fy = float(rounded_y)

        x0 = math.floor(fx)
        y0 = math.floor(fy)
        weight_x = fx - x0
        weight_y = fy - y0

        lx = self._wrap_index(x0, self._width)
        rx = self._wrap_index(x0 + 1, self._width)
        ty = self._wrap_index(y0, self._height)
        by = self._wrap_index(y0 + 1, self._height)

        p = self._pixels
        top = _lerp(p[ty, lx].astype(np.float64), p[ty, rx].astype(np.float64), weight_x)
        bottom = _lerp(p[by, lx].astype(np.float64), p[by, rx].astype(np.float64), weight_x)
        return _lerp(top, bottom, weight_y)

    def get_pixel_trilinear(self, u: float, v: float, mip_level: float) -> Color4:
        """Blend bilinear samples of the two mip levels around ``mip_level``.

        The level is clamped into the valid range first; when it lands on an
        integer only one level is sampled.
        """
        mip_level = self.clamp_mip_level(mip_level)
        lower = math.floor(mip_level)
        higher = math.ceil(mip_level)
        lower_color = self.get_pixel_bilinear(u, v, lower)

        if lower == higher:
            return lower_color

        higher_color = self.get_pixel_bilinear(u, v, higher)
        return _lerp(lower_color, higher_color, mip_level - lower)

    def filtered_pixel(self, u: float, v: float, mip_level: float = 0.0) -> Color4:
        """Sample using this texture's filter mode.

        Nearest and bilinear filtering round the (clamped) mip level;
        trilinear filtering blends across levels.
        """
        mip_level = self.clamp_mip_level(mip_level)

        if self.filter_mode == FilterMode.NEAREST:
            return self.get_pixel_nearest(u, v, int(mip_level + 0.5))
        if self.filter_mode == FilterMode.BILINEAR:
            return self.get_pixel_bilinear(u, v, int(mip_level + 0.5))
        return self.get_pixel_trilinear(u, v, mip_level)

    def __repr__(self) -> str:
        return (
            f"TextureSampler(width={self._width}, height={self._height}, "
            f"mips={self.mip_count}, wrap={self.wrap_mode.name}, filter={self.filter_mode.name})"
        )
