"""Image rendering and diagnostic path collection over a camera.

The :class:`Renderer` drives a :class:`Raytracer` across an image: one
primary ray through the center of every pixel, one fresh trace record per
ray, all sharing the counters of the current render.

For debugging it can also trace a coarse grid of rays with history enabled
and reconstruct every segment of every branch of their paths
(:meth:`Renderer.collect_trace_paths`), and render numbered frame sequences
to PNG files (:meth:`Renderer.render_frames`).

Example:
    >>> from src.glasstrace.core.renderer import IntRect, Renderer
    >>> renderer = Renderer(tracer)
    >>> image = renderer.render(camera, 640, 480)
    >>> crop = renderer.render(camera, 640, 480, rect=IntRect(100, 100, 64, 64))
    >>> renderer.tracer.counters.initial_rays
    4096
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import numpy.typing as npt

from src.glasstrace.camera.pinhole import PinholeCamera
from src.glasstrace.core.ray import Vec3, as_vec3
from src.glasstrace.core.record import RaytraceCounters, TraceRecord
from src.glasstrace.core.tracer import Raytracer
from src.glasstrace.preview.export import save_png

logger = logging.getLogger(__name__)

# Length drawn for path segments that hit nothing
NO_HIT_SEGMENT_LENGTH = 10.0

# Range of the number of diagnostic paths per axis
MIN_PATHS_PER_AXIS = 1
MAX_PATHS_PER_AXIS = 60


@dataclass
class IntRect:
    """Integer pixel rectangle.

    A negative width or height extends the rectangle to the image edge.

    Attributes:
        x: Left column.
        y: Bottom row (rows count upward from the bottom of the image).
        width: Number of columns.
        height: Number of rows.
    """

    x: int = 0
    y: int = 0
    width: int = -1
    height: int = -1

    @property
    def right(self) -> int:
        """Column just past the rectangle."""
        return self.x + self.width

    @property
    def bottom(self) -> int:
        """Row just past the rectangle."""
        return self.y + self.height


@dataclass
class PathSegment:
    """One straight piece of a diagnostic trace path.

    Attributes:
        start: World-space start point.
        end: World-space end point.
        color: Color the traced ray returned.
        start_distance: Path length travelled before the segment.
        end_distance: Path length travelled after the segment.
    """

    start: Vec3
    end: Vec3
    color: Vec3
    start_distance: float
    end_distance: float


def resolve_rect(rect: IntRect | None, width: int, height: int) -> IntRect:
    """Validate a render rectangle and clip it to the resolution.

    Raises:
        ValueError: If the resolution is not positive or the rectangle's
            origin lies outside the image.
    """
    if width <= 0:
        raise ValueError(f"Width must be greater than zero, got {width}")
    if height <= 0:
        raise ValueError(f"Height must be greater than zero, got {height}")

    if rect is None:
        return IntRect(0, 0, width, height)

    if rect.x < 0 or rect.x >= width:
        raise ValueError(f"rect.x must be in range from 0 to {width - 1}, got {rect.x}")
    if rect.y < 0 or rect.y >= height:
        raise ValueError(f"rect.y must be in range from 0 to {height - 1}, got {rect.y}")

    rect_width = width - rect.x if rect.width < 0 else min(rect.width, width - rect.x)
    rect_height = height - rect.y if rect.height < 0 else min(rect.height, height - rect.y)
    return IntRect(rect.x, rect.y, rect_width, rect_height)


def frame_path(output_dir: str | Path, index: int, total: int) -> Path:
    """Path of frame ``index`` out of ``total``, zero-padded to a common width."""
    digits = max(1, math.ceil(math.log10(total))) if total > 0 else 1
    return Path(output_dir) / f"frame_{str(index).zfill(digits)}.png"


class Renderer:
    """Renders images by tracing one primary ray per pixel.

    Attributes:
        tracer: The tracer used for every ray.
        last_render_time: Wall time of the most recent render, in seconds.
    """

    def __init__(self, tracer: Raytracer) -> None:
        self.tracer = tracer
        self.last_render_time = 0.0

    def render(
        self,
        camera: PinholeCamera,
        width: int,
        height: int,
        rect: IntRect | None = None,
    ) -> npt.NDArray[np.float32]:
        """Render an image, or a rectangle of it.

        The camera's aspect ratio is matched to the resolution for the
        duration of the render. Counters are reset at the start.

        Args:
            camera: Camera generating primary rays.
            width: Horizontal resolution of the full image.
            height: Vertical resolution of the full image.
            rect: Portion of the image to render; the full image when None.

        Returns:
            Linear RGB float32 array of shape (rect height, rect width, 3)
            with row 0 at the top.

        Raises:
            ValueError: If the resolution or rectangle is invalid.
        """
        area = resolve_rect(rect, width, height)
        camera = camera.with_resolution(width, height)
        background = as_vec3(camera.background_color)

        counters = RaytraceCounters()
        self.tracer.counters = counters
        image = np.zeros((area.height, area.width, 3), dtype=np.float32)
        half_pixel_width = 0.5 / width
        half_pixel_height = 0.5 / height

        logger.debug(
            "Rendering %dx%d rect at (%d, %d) of a %dx%d image",
            area.width,
            area.height,
            area.x,
            area.y,
            width,
            height,
        )
        time_start = time.perf_counter()

        for sy in range(area.y, area.bottom):
            row = area.bottom - 1 - sy
            for sx in range(area.x, area.right):
                counters.initial_rays += 1
                ray = camera.viewport_point_to_ray(sx / width + half_pixel_width, sy / height + half_pixel_height)
                record = TraceRecord(background, counters)
                image[row, sx - area.x] = self.tracer.trace(ray, record)

        self.last_render_time = time.perf_counter() - time_start
        logger.info(
            "Rendered %dx%d in %.3fs: %d raycasts, %d backtraces, %d overwhites",
            area.width,
            area.height,
            self.last_render_time,
            counters.raycasts,
            counters.backtraces,
            counters.overwhites,
        )
        return image

    def collect_trace_paths(
        self,
        camera: PinholeCamera,
        num_x: int,
        num_y: int,
        no_hit_segment_length: float = NO_HIT_SEGMENT_LENGTH,
    ) -> list[PathSegment]:
        """Trace a coarse grid of rays and reconstruct their full paths.

        Rays go through the centers of a ``num_x`` by ``num_y`` grid over the
        viewport. History is recorded on every branch; each branch's segments
        start at the path length its fork point was reached at. Segments that
        hit nothing are drawn ``no_hit_segment_length`` long.

        The tracer's render counters are left untouched.

        Args:
            camera: Camera generating the rays.
            num_x: Paths per row, clamped to [1, 60].
            num_y: Paths per column, clamped to [1, 60].
            no_hit_segment_length: Length of segments that hit nothing.

        Returns:
            Segments of all paths, in trace order.
        """
        num_x = min(max(num_x, MIN_PATHS_PER_AXIS), MAX_PATHS_PER_AXIS)
        num_y = min(max(num_y, MIN_PATHS_PER_AXIS), MAX_PATHS_PER_AXIS)
        background = as_vec3(camera.background_color)
        counters = RaytraceCounters()
        segments: list[PathSegment] = []

        for y in range(num_y):
            for x in range(num_x):
                counters.initial_rays += 1
                ray = camera.viewport_point_to_ray((x + 0.5) / num_x, (y + 0.5) / num_y)
                record = TraceRecord(background, counters, record_history=True)
                self.tracer.trace(ray, record)
                segments.extend(_record_segments(record, no_hit_segment_length))

        logger.debug("Collected %d path segments from %d rays", len(segments), counters.initial_rays)
        return segments

    def render_frames(
        self,
        camera: PinholeCamera,
        width: int,
        height: int,
        num_frames: int,
        output_dir: str | Path,
        *,
        rect: IntRect | None = None,
        before_frame: Callable[[int], None] | None = None,
        on_frame: Callable[[int, npt.NDArray[np.float32]], None] | None = None,
        **export_options,
    ) -> list[Path]:
        """Render a numbered sequence of frames to PNG files.

        Args:
            camera: Camera generating primary rays.
            width: Horizontal resolution.
            height: Vertical resolution.
            num_frames: Number of frames to render.
            output_dir: Directory receiving ``frame_N.png`` files.
            rect: Portion of each frame to render.
            before_frame: Called with the frame index before rendering it,
                e.g. to animate the scene.
            on_frame: Called with the frame index and image after saving it.
            **export_options: Passed to :func:`save_png`.

        Returns:
            Paths of the written files.

        Raises:
            ValueError: If ``num_frames`` is not positive.
        """
        if num_frames <= 0:
            raise ValueError(f"Number of frames must be greater than zero, got {num_frames}")

        paths = []
        for index in range(num_frames):
            if before_frame is not None:
                before_frame(index)
            image = self.render(camera, width, height, rect)
            path = frame_path(output_dir, index, num_frames)
            save_png(image, path, **export_options)
            paths.append(path)
            if on_frame is not None:
                on_frame(index, image)

        logger.info("Rendered %d frames to %s", num_frames, output_dir)
        return paths


def _record_segments(record: TraceRecord, no_hit_segment_length: float) -> list[PathSegment]:
    """Segments of a trace record and all of its branches.

    History items are appended as shading returns, deepest segment first, so
    each branch is walked in reverse to lay segments out in travel order.
    """
    segments = []
    for branch in record.flatten_branches():
        start_distance = branch.start_distance
        for item in reversed(branch.history):
            if item.hit is None:
                end = item.ray.at(no_hit_segment_length)
                end_distance = start_distance + no_hit_segment_length
            else:
                end = item.hit.point
                end_distance = start_distance + item.hit.distance
            segments.append(PathSegment(item.ray.origin, end, item.color, start_distance, end_distance))
            start_distance = end_distance
    return segments
