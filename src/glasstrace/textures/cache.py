"""Image asset providers and the process-wide texture cache.

Shaders refer to textures through *providers*: objects that know where an
image comes from and can hand over its ready-made mip levels. The first time
a provider is sampled its levels are decoded into a :class:`TextureSampler`
and cached; later lookups reuse that sampler. The cache is never invalidated
during a render and is safe to share read-only once populated.

Two providers are included:

- :class:`ImageFileProvider` reads an image file with Pillow and lets Pillow
  downsample the mip levels.
- :class:`ArrayImageProvider` wraps pixel grids that already live in memory.

Example:
    >>> from src.glasstrace.textures.cache import ImageFileProvider, get_texture
    >>> provider = ImageFileProvider("textures/bricks.png")
    >>> texture = get_texture(provider)
    >>> texture.filtered_pixel(0.5, 0.5)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from src.glasstrace.textures.sampler import FilterMode, TextureSampler, WrapMode

logger = logging.getLogger(__name__)


class ImageAssetProvider(Protocol):
    """Source of the raw mip levels of one texture."""

    wrap_mode: WrapMode
    filter_mode: FilterMode

    def mip_levels(self) -> Sequence[npt.NDArray[np.float32]]:
        """Pixel grids from the full-resolution level down to 1x1."""
        ...


@dataclass(frozen=True)
class ImageFileProvider:
    """Provider reading an image file through Pillow.

    Rows are flipped so that row 0 (v = 0) is the bottom of the image.

    Attributes:
        path: Path of the image file.
        wrap_mode: Wrapping mode of the resulting texture.
        filter_mode: Filtering mode of the resulting texture.
        mipmaps: Whether to build a full mip chain or only the top level.
    """

    path: str
    wrap_mode: WrapMode = WrapMode.CLAMP
    filter_mode: FilterMode = FilterMode.BILINEAR
    mipmaps: bool = True

    def mip_levels(self) -> list[npt.NDArray[np.float32]]:
        """Decode the file and its downsampled levels.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        if not Path(self.path).exists():
            raise FileNotFoundError(f"Texture file not found: {self.path}")

        with PILImage.open(self.path) as img:
            image = img.convert("RGBA")

        levels = [_image_to_array(image)]
        while self.mipmaps and (image.width > 1 or image.height > 1):
            size = (max(1, image.width // 2), max(1, image.height // 2))
            image = image.resize(size, resample=PILImage.Resampling.BOX)
            levels.append(_image_to_array(image))
        return levels


@dataclass(eq=False)
class ArrayImageProvider:
    """Provider wrapping pixel grids already in memory.

    Identity of the provider object is the cache key.

    Attributes:
        levels: Pixel grids, full resolution first.
        wrap_mode: Wrapping mode of the resulting texture.
        filter_mode: Filtering mode of the resulting texture.
    """

    levels: Sequence[npt.ArrayLike]
    wrap_mode: WrapMode = WrapMode.CLAMP
    filter_mode: FilterMode = FilterMode.BILINEAR

    @classmethod
    def with_mipmaps(cls, pixels: npt.ArrayLike, **kwargs) -> ArrayImageProvider:
        """Wrap a pixel grid together with its box-filtered mip chain."""
        level = np.asarray(pixels, dtype=np.float32)
        levels = [level]
        while level.shape[0] > 1 or level.shape[1] > 1:
            level = _downsample(level)
            levels.append(level)
        return cls(levels, **kwargs)

    def mip_levels(self) -> list[npt.NDArray[np.float32]]:
        """Return the wrapped pixel grids as float32 arrays."""
        return [np.asarray(level, dtype=np.float32) for level in self.levels]


def _downsample(level: npt.NDArray[np.float32]) -> npt.NDArray[np.float32]:
    """Halve a pixel grid by averaging 2x2 blocks; odd edges are dropped."""
    height = max(1, level.shape[0] // 2)
    width = max(1, level.shape[1] // 2)
    rows = level[: height * 2] if level.shape[0] > 1 else np.concatenate([level, level])
    block = rows[:, : width * 2] if level.shape[1] > 1 else np.concatenate([rows, rows], axis=1)
    return block.reshape(height, 2, width, 2, -1).mean(axis=(1, 3)).astype(np.float32)


def _image_to_array(image: PILImage.Image) -> npt.NDArray[np.float32]:
    data = np.asarray(image, dtype=np.float32) / 255.0
    return np.flipud(data).copy()


# Maps a provider (source image identity) to its decoded texture.
_texture_cache: dict[ImageAssetProvider, TextureSampler] = {}


def get_texture(provider: ImageAssetProvider) -> TextureSampler:
    """Return the texture for a provider, decoding it on first use."""
    texture = _texture_cache.get(provider)
    if texture is None:
        texture = TextureSampler.from_mip_levels(
            provider.mip_levels(),
            wrap_mode=provider.wrap_mode,
            filter_mode=provider.filter_mode,
        )
        _texture_cache[provider] = texture
        logger.debug("Cached texture %r (%d mip levels)", provider, texture.mip_count)
    return texture


def clear_texture_cache() -> None:
    """Drop every cached texture."""
    _texture_cache.clear()


def get_cached_texture_count() -> int:
    """Number of textures currently cached."""
    return len(_texture_cache)
