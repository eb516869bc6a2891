"""Display pipeline and Matplotlib previews for rendered images.

Rendered images are linear RGB and may exceed 1.0 where reflections and
refractions add up. Before display or export they go through:

1. Optional tone mapping (Reinhard or exposure)
2. Gamma encoding
3. Clamping to [0, 1]

The Matplotlib helpers show a render with its trace statistics, and draw the
diagnostic trace paths collected by the renderer in 3D.

Example:
    >>> from src.glasstrace.preview.display import show_render
    >>> image = renderer.render(camera, 320, 240)
    >>> show_render(image, counters=renderer.tracer.counters, tone_map="reinhard")
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Literal

import numpy as np
import numpy.typing as npt

if TYPE_CHECKING:
    from src.glasstrace.core.record import RaytraceCounters
    from src.glasstrace.core.renderer import PathSegment


# Type alias for tone mapping options
ToneMapMethod = Literal["none", "reinhard", "exposure"]


def tone_map_reinhard(image: npt.NDArray[np.float32]) -> npt.NDArray[np.float32]:
    """Compress HDR values with the Reinhard operator c / (1 + c)."""
    clamped = np.maximum(image, 0.0)
    return (clamped / (1.0 + clamped)).astype(np.float32)


def tone_map_exposure(
    image: npt.NDArray[np.float32],
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Compress HDR values with 1 - exp(-c * exposure).

    Args:
        image: Linear HDR image array of shape (H, W, 3).
        exposure: Higher values brighten the image.
    """
    clamped = np.maximum(image, 0.0)
    return (1.0 - np.exp(-clamped * exposure)).astype(np.float32)


def apply_gamma(
    image: npt.NDArray[np.float32],
    gamma: float = 2.2,
) -> npt.NDArray[np.float32]:
    """Gamma-encode a linear image, out = in ** (1 / gamma).

    Values are clamped to [0, 1] first; a gamma of 1.0 leaves the image
    untouched.
    """
    if gamma == 1.0:
        return image
    if gamma <= 0.0:
        raise ValueError(f"Gamma must be positive, got {gamma}")
    return np.power(np.clip(image, 0.0, 1.0), 1.0 / gamma).astype(np.float32)


def process_image_for_display(
    image: npt.NDArray[np.float32],
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Run the display pipeline on a linear image.

    Args:
        image: Linear HDR image array of shape (H, W, 3).
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma correction value (default 2.2 for sRGB).
        exposure: Exposure value for exposure tone mapping (default 1.0).

    Returns:
        Processed float32 image in [0, 1].

    Raises:
        ValueError: If the tone mapping method is unknown.
    """
    if tone_map == "reinhard":
        result = tone_map_reinhard(image)
    elif tone_map == "exposure":
        result = tone_map_exposure(image, exposure)
    elif tone_map == "none":
        result = np.asarray(image, dtype=np.float32).copy()
    else:
        raise ValueError(f"Unknown tone mapping method: {tone_map}")

    return np.clip(apply_gamma(result, gamma), 0.0, 1.0).astype(np.float32)


def format_counters(counters: RaytraceCounters, render_time: float | None = None) -> str:
    """One-line summary of trace statistics."""
    text = (
        f"rays {counters.initial_rays}, raycasts {counters.raycasts} "
        f"(+{counters.backtraces} backward), reflections {counters.reflections} "
        f"(+{counters.inner_reflections} inner), refractions {counters.refractions}, "
        f"overwhites {counters.overwhites}"
    )
    if render_time is not None:
        text += f", {render_time:.2f}s"
    return text


def show_render(
    image: npt.NDArray[np.float32],
    *,
    counters: RaytraceCounters | None = None,
    render_time: float | None = None,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
    figsize: tuple[float, float] = (8, 8),
    block: bool = True,
) -> None:
    """Display a rendered image in a Matplotlib window.

    Args:
        image: Linear image of shape (H, W, 3), row 0 at the top.
        counters: Trace statistics shown under the image.
        render_time: Render wall time in seconds shown with the statistics.
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma correction value.
        exposure: Exposure value for exposure tone mapping.
        figsize: Figure size in inches (width, height).
        block: Whether to block execution until figure is closed.
    """
    import matplotlib.pyplot as plt

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(process_image_for_display(image, tone_map=tone_map, gamma=gamma, exposure=exposure))
    ax.axis("off")
    ax.set_title(f"{image.shape[1]}x{image.shape[0]}")
    if counters is not None:
        fig.text(0.5, 0.02, format_counters(counters, render_time), ha="center", fontsize=9)

    plt.tight_layout()
    plt.show(block=block)


def plot_trace_paths(segments: Sequence[PathSegment], ax=None):
    """Draw diagnostic trace path segments in 3D.

    Each segment is drawn in its traced color, clamped to [0, 1].

    Args:
        segments: Segments from ``Renderer.collect_trace_paths``.
        ax: Existing 3D axes; a new figure is created when None.

    Returns:
        The axes drawn on.
    """
    import matplotlib.pyplot as plt

    if ax is None:
        fig = plt.figure()
        ax = fig.add_subplot(projection="3d")

    for segment in segments:
        xs, ys, zs = zip(segment.start, segment.end)
        ax.plot(xs, ys, zs, color=tuple(np.clip(segment.color, 0.0, 1.0)), linewidth=0.8)

    ax.set_xlabel("x")
    ax.set_ylabel("y")
    ax.set_zlabel("z")
    return ax
