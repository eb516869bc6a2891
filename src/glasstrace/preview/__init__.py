"""Preview module for displaying and saving rendered images.

Components:
    display: Tone mapping, gamma correction and Matplotlib previews
    export: PNG export through Pillow
"""

from .display import (
    ToneMapMethod,
    apply_gamma,
    format_counters,
    plot_trace_paths,
    process_image_for_display,
    show_render,
    tone_map_exposure,
    tone_map_reinhard,
)
from .export import image_to_uint8, save_png

__all__ = [
    "ToneMapMethod",
    "tone_map_reinhard",
    "tone_map_exposure",
    "apply_gamma",
    "process_image_for_display",
    "format_counters",
    "show_render",
    "plot_trace_paths",
    "image_to_uint8",
    "save_png",
]
