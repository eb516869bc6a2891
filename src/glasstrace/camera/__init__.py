"""Camera module for primary ray generation.

Components:
    pinhole: Look-at pinhole camera with vertical field of view
"""

from .pinhole import PinholeCamera

__all__ = ["PinholeCamera"]
