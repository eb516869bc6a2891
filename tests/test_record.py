"""Unit tests for trace records.

Tests cover:
- Shared counters and their derived totals
- Penetration stack discipline (enter/exit/peek)
- History recording and history distance
- Forking: copied budgets, independent stacks, shared counters
- Branch flattening
"""

import numpy as np
import pytest

from conftest import FakeSurface, make_hit


def _record(counters, record_history=False):
    from src.glasstrace.core.record import TraceRecord

    return TraceRecord(np.array([0.1, 0.2, 0.3]), counters, record_history)


class TestRaytraceCounters:
    """Tests for the render-wide counters."""

    def test_defaults_are_zero(self, counters):
        """Test a fresh counters object starts at zero."""
        assert counters.raycasts == 0
        assert counters.backtraces == 0
        assert counters.initial_rays == 0
        assert counters.reflections == 0
        assert counters.inner_reflections == 0
        assert counters.refractions == 0
        assert counters.overwhites == 0

    def test_totals(self, counters):
        """Test derived totals add forward/backward and outer/inner counts."""
        counters.raycasts = 5
        counters.backtraces = 2
        counters.reflections = 3
        counters.inner_reflections = 1
        assert counters.total_raycasts == 7
        assert counters.total_reflections == 4


class TestPenetrationStack:
    """Tests for entering and leaving volumes."""

    def test_new_record_is_outside(self, counters):
        """Test a new record has an empty stack."""
        record = _record(counters)
        assert not record.is_inside
        assert record.peek() is None

    def test_enter_then_exit_is_lifo(self, counters):
        """Test nested volumes are left in reverse order of entry."""
        record = _record(counters)
        outer = make_hit(FakeSurface("outer"), 1.0)
        inner = make_hit(FakeSurface("inner"), 2.0)

        record.enter(outer)
        record.enter(inner)
        assert record.peek() is inner

        assert record.exit() is inner
        assert record.peek() is outer
        assert record.exit() is outer
        assert not record.is_inside

    def test_exit_on_empty_stack_returns_none(self, counters):
        """Test exiting with nothing entered is tolerated."""
        record = _record(counters)
        assert record.exit() is None
        assert record.penetration_stack == []


class TestHistory:
    """Tests for diagnostic history recording."""

    def test_history_disabled_by_default(self, counters):
        """Test segments are not kept unless requested."""
        from src.glasstrace.core.ray import make_ray

        record = _record(counters)
        record.add_history_item(make_ray((0, 0, 0), (0, 0, -1)), None, np.ones(3))
        assert record.history == []
        assert record.step == 0

    def test_history_items_are_numbered(self, counters):
        """Test each recorded segment gets the next step number."""
        from src.glasstrace.core.ray import make_ray

        record = _record(counters, record_history=True)
        ray = make_ray((0, 0, 0), (0, 0, -1))
        record.add_history_item(ray, make_hit(FakeSurface("a"), 2.0), np.ones(3))
        record.add_history_item(ray, None, np.zeros(3))

        assert [item.step for item in record.history] == [0, 1]
        assert record.history[1].is_miss
        assert not record.history[0].is_miss

    def test_history_color_is_copied(self, counters):
        """Test later changes to a color do not alter recorded history."""
        from src.glasstrace.core.ray import make_ray

        record = _record(counters, record_history=True)
        color = np.array([0.5, 0.5, 0.5])
        record.add_history_item(make_ray((0, 0, 0), (0, 0, -1)), None, color)
        color[0] = 9.0
        assert record.history[0].color[0] == 0.5

    def test_history_distance(self, counters):
        """Test history distance sums hits and nominal miss lengths."""
        from src.glasstrace.core.ray import make_ray

        record = _record(counters, record_history=True)
        ray = make_ray((0, 0, 0), (0, 0, -1))
        record.add_history_item(ray, make_hit(FakeSurface("a"), 2.0), np.ones(3))
        record.add_history_item(ray, make_hit(FakeSurface("b"), 3.5), np.ones(3))
        record.add_history_item(ray, None, np.ones(3))

        assert record.calculate_history_distance() == pytest.approx(5.5)
        assert record.calculate_history_distance(10.0) == pytest.approx(15.5)


class TestFork:
    """Tests for forking a record into a branch."""

    def test_fork_copies_budgets(self, counters):
        """Test the child starts from the parent's recursion counts."""
        record = _record(counters)
        record.num_reflections = 2
        record.num_inner_reflections = 1
        record.num_refractions = 3

        child = record.fork()
        assert child.num_reflections == 2
        assert child.num_inner_reflections == 1
        assert child.num_refractions == 3
        assert child.record_history == record.record_history
        assert np.allclose(child.background_color, record.background_color)

    def test_fork_shares_counters(self, counters):
        """Test increments on a branch are visible through the root."""
        record = _record(counters)
        child = record.fork()
        grandchild = child.fork()

        grandchild.counters.refractions += 1
        assert child.counters is counters
        assert record.counters.refractions == 1

    def test_fork_stack_is_independent(self, counters):
        """Test the child's stack is an ordered copy, not an alias."""
        record = _record(counters)
        outer = make_hit(FakeSurface("outer"), 1.0)
        inner = make_hit(FakeSurface("inner"), 2.0)
        record.enter(outer)
        record.enter(inner)

        child = record.fork()
        assert child.penetration_stack == [outer, inner]

        child.exit()
        child.enter(make_hit(FakeSurface("other"), 3.0))
        assert record.penetration_stack == [outer, inner]

    def test_fork_budgets_are_independent(self, counters):
        """Test incrementing a branch's counts leaves the parent alone."""
        record = _record(counters)
        child = record.fork()
        child.num_refractions += 1
        assert record.num_refractions == 0

    def test_fork_start_step_and_distance(self, counters):
        """Test the child continues numbering and distance after the parent."""
        from src.glasstrace.core.ray import make_ray

        record = _record(counters, record_history=True)
        ray = make_ray((0, 0, 0), (0, 0, -1))
        record.add_history_item(ray, make_hit(FakeSurface("a"), 2.0), np.ones(3))
        record.add_history_item(ray, None, np.ones(3))

        child = record.fork(no_hit_segment_length=10.0)
        assert child.step == 3
        assert child.start_distance == pytest.approx(12.0)
        assert child.history == []

    def test_fork_registers_branch(self, counters):
        """Test forks are appended to the parent's branches in order."""
        record = _record(counters)
        first = record.fork()
        second = record.fork()
        assert record.branches == [first, second]


class TestFlattenBranches:
    """Tests for walking a branch tree."""

    def test_single_record(self, counters):
        """Test a record without forks yields only itself."""
        record = _record(counters)
        assert list(record.flatten_branches()) == [record]

    def test_depth_first_parent_first(self, counters):
        """Test the walk visits each record before its descendants."""
        root = _record(counters)
        a = root.fork()
        a1 = a.fork()
        b = root.fork()

        assert list(root.flatten_branches()) == [root, a, a1, b]
