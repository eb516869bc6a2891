"""Texture sampling module.

Components:
    sampler: Mipmapped RGBA textures with nearest, bilinear and trilinear filtering
    cache: Image asset providers and the process-wide texture cache
"""

from .cache import (
    ArrayImageProvider,
    ImageAssetProvider,
    ImageFileProvider,
    clear_texture_cache,
    get_cached_texture_count,
    get_texture,
)
from .sampler import FilterMode, TextureSampler, WrapMode, grayscale

__all__ = [
    "TextureSampler",
    "WrapMode",
    "FilterMode",
    "grayscale",
    "ImageAssetProvider",
    "ImageFileProvider",
    "ArrayImageProvider",
    "get_texture",
    "clear_texture_cache",
    "get_cached_texture_count",
]
