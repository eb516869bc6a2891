"""Per-path trace state: counters, recursion budgets, penetration stack.

A :class:`TraceRecord` is created once per camera ray and threaded through
the recursive trace. When a shading point needs both a reflection and a
refraction contribution, the shader forks the record so the refraction path
gets its own recursion counts and its own copy of the penetration stack.
Every record in a render shares one :class:`RaytraceCounters` object.

History recording is optional and exists for diagnostics: with it enabled,
each record keeps the ordered list of segments it traced, and
:meth:`TraceRecord.flatten_branches` walks the whole branch tree of a camera
ray so its paths can be reconstructed.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

import numpy as np

from src.glasstrace.core.hit import HitRecord
from src.glasstrace.core.ray import Ray, Vec3


@dataclass(eq=False)
class RaytraceCounters:
    """Aggregate statistics of one render.

    A single instance is shared by reference by every TraceRecord of a
    render, forked branches included. The trace is sequential, so plain
    increments are safe; rendering initial rays in parallel would require
    these increments to become atomic.

    Attributes:
        raycasts: Forward nearest-hit queries (one per ``trace`` call).
        backtraces: Backward-trace resolution attempts.
        initial_rays: Camera rays.
        reflections: Reflections of rays arriving from outside a surface.
        inner_reflections: Reflections of rays travelling inside a medium.
        refractions: Refraction events.
        overwhites: Paths cut short by the overwhite interrupt.
    """

    raycasts: int = 0
    backtraces: int = 0
    initial_rays: int = 0
    reflections: int = 0
    inner_reflections: int = 0
    refractions: int = 0
    overwhites: int = 0

    @property
    def total_raycasts(self) -> int:
        """Forward and backward scene queries combined."""
        return self.raycasts + self.backtraces

    @property
    def total_reflections(self) -> int:
        """Outer and inner reflections combined."""
        return self.reflections + self.inner_reflections


@dataclass(eq=False)
class TraceHistoryItem:
    """One traced segment of a path.

    Attributes:
        ray: The ray that was traced.
        hit: The resolved hit, or None for a miss.
        color: The color the segment produced.
        step: Sequence number of the segment within its record.
    """

    ray: Ray
    hit: HitRecord | None
    color: Vec3
    step: int

    @property
    def is_miss(self) -> bool:
        """Whether the segment left the scene without hitting anything."""
        return self.hit is None


class TraceRecord:
    """Mutable state of one trace path.

    Attributes:
        background_color: Color returned for rays that leave the scene.
        counters: Render-wide counters, shared with every fork.
        record_history: Whether :meth:`add_history_item` keeps segments.
        num_reflections: Outer reflections taken on this path.
        num_inner_reflections: Inner reflections taken on this path.
        num_refractions: Refractions taken on this path.
        step: Index the next history item receives.
        start_distance: Path length already travelled when this record was
            forked, used to lay out branch segments after the fork point.
        penetration_stack: Surfaces entered but not yet exited; the last
            element is the surface currently being traversed.
        history: Traced segments, when ``record_history`` is set.
        branches: Records forked from this one.
    """

    def __init__(
        self,
        background_color: Vec3,
        counters: RaytraceCounters,
        record_history: bool = False,
    ) -> None:
        self.background_color = np.asarray(background_color, dtype=np.float64)
        self.counters = counters
        self.record_history = record_history
        self.num_reflections = 0
        self.num_inner_reflections = 0
        self.num_refractions = 0
        self.step = 0
        self.start_distance = 0.0
        self.penetration_stack: list[HitRecord] = []
        self.history: list[TraceHistoryItem] = []
        self.branches: list[TraceRecord] = []

    # =========================================================================
    # Penetration stack
    # =========================================================================

    @property
    def is_inside(self) -> bool:
        """Whether the path is currently inside at least one volume."""
        return bool(self.penetration_stack)

    def peek(self) -> HitRecord | None:
        """The hit that entered the innermost volume, if any."""
        return self.penetration_stack[-1] if self.penetration_stack else None

    def enter(self, hit: HitRecord) -> None:
        """Record that the path entered the surface of ``hit``."""
        self.penetration_stack.append(hit)

    def exit(self) -> HitRecord | None:
        """Record that the path left the innermost volume.

        Returns:
            The hit that entered the volume, or None when the stack was
            already empty (a path that started inside a volume never pushed
            the entry it is now leaving).
        """
        if not self.penetration_stack:
            return None
        return self.penetration_stack.pop()

    # =========================================================================
    # History and branching
    # =========================================================================

    def add_history_item(self, ray: Ray, hit: HitRecord | None, color: Vec3) -> None:
        """Append a traced segment when history recording is enabled."""
        if not self.record_history:
            return

        self.history.append(TraceHistoryItem(ray, hit, np.array(color, dtype=np.float64), self.step))
        self.step += 1

    def calculate_history_distance(self, no_hit_segment_length: float = 0.0) -> float:
        """Total length of the recorded segments.

        Args:
            no_hit_segment_length: Nominal length assigned to misses.
        """
        return sum(
            item.hit.distance if item.hit is not None else no_hit_segment_length
            for item in self.history
        )

    def fork(self, no_hit_segment_length: float = 0.0) -> TraceRecord:
        """Create an independent continuation of this path.

        The child shares the counters and background color, copies the
        recursion counts, and owns a copy of the penetration stack in the
        same order. It is appended to :attr:`branches`.

        Args:
            no_hit_segment_length: Nominal miss length used when computing
                the child's start distance.

        Returns:
            The new child record.
        """
        child = TraceRecord(self.background_color, self.counters, self.record_history)
        child.num_reflections = self.num_reflections
        child.num_inner_reflections = self.num_inner_reflections
        child.num_refractions = self.num_refractions
        child.step = self.step + 1
        child.start_distance = self.calculate_history_distance(no_hit_segment_length)
        child.penetration_stack = list(self.penetration_stack)

        self.branches.append(child)
        return child

    def flatten_branches(self) -> Iterator[TraceRecord]:
        """Yield this record and all descendants, depth-first, parent first."""
        yield self
        for branch in self.branches:
            yield from branch.flatten_branches()

    def __repr__(self) -> str:
        return (
            f"TraceRecord(reflections={self.num_reflections}, "
            f"inner_reflections={self.num_inner_reflections}, "
            f"refractions={self.num_refractions}, "
            f"depth={len(self.penetration_stack)}, branches={len(self.branches)})"
        )
