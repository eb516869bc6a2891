"""Hue manipulation of linear RGB colors.

Colors are converted with matplotlib's HSV routines. Those expect channels in
[0, 1], so HDR colors are scaled down by their brightest channel before the
conversion and scaled back afterwards; hue and saturation do not depend on
that scale.
"""

import numpy as np
import numpy.typing as npt
from matplotlib.colors import hsv_to_rgb, rgb_to_hsv


def change_hue(color: npt.ArrayLike, hue_delta: float) -> npt.NDArray[np.float64]:
    """Rotate the hue of an RGB color.

    Args:
        color: RGB color; channels may exceed 1.0.
        hue_delta: Hue offset in turns (1.0 is a full rotation).

    Returns:
        The rotated RGB color with the original brightness.

    Example:
        >>> change_hue((1.0, 0.0, 0.0), 1.0 / 3.0)  # red to green
        array([0., 1., 0.])
    """
    rgb = np.clip(np.asarray(color, dtype=np.float64)[:3], 0.0, None)
    scale = float(rgb.max())
    if scale == 0.0:
        return rgb

    hsv = rgb_to_hsv(rgb / scale)
    hsv[0] = (hsv[0] + hue_delta) % 1.0
    return hsv_to_rgb(hsv) * scale
