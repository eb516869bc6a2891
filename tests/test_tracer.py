"""Unit tests for the recursive tracer.

The tracer is exercised against scripted scenes, so these tests run without
Taichi kernels.

Tests cover:
- Tracer configuration validation
- Misses and forward hits, shader selection
- Backward-trace resolution with a forward bound and with a bounding-volume bound
- Clamping of degenerate search distances
- The overwhite interrupt
"""

import math

import numpy as np
import pytest

from conftest import ConstantShader, FakeSurface, ScriptedScene, make_hit

BACKGROUND = (0.1, 0.2, 0.3)


def _tracer(scene, shader=None, **config):
    from src.glasstrace.core.tracer import Raytracer, TracerConfig

    return Raytracer(scene, TracerConfig(**config), default_shader=shader)


def _record(counters, record_history=False):
    from src.glasstrace.core.record import TraceRecord

    return TraceRecord(np.array(BACKGROUND), counters, record_history)


def _forward_ray():
    from src.glasstrace.core.ray import make_ray

    return make_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))


class TestTracerConfig:
    """Tests for tracer configuration."""

    def test_defaults(self):
        """Test default budgets and interrupt policy."""
        from src.glasstrace.core.tracer import TracerConfig

        config = TracerConfig()
        assert config.max_reflections == 10
        assert config.max_refractions == 10
        assert config.max_inner_reflections == 1
        assert config.stop_on_overwhite is True
        assert config.max_path_depth == 21

    def test_negative_budget_rejected(self):
        """Test negative recursion budgets raise ValueError."""
        from src.glasstrace.core.tracer import TracerConfig

        with pytest.raises(ValueError, match="max_refractions"):
            TracerConfig(max_refractions=-1)

    def test_ambient_override(self):
        """Test the configured ambient light replaces the scene's when enabled."""
        from src.glasstrace.core.tracer import Raytracer, TracerConfig

        scene = ScriptedScene()
        tracer = Raytracer(scene, scene_ambient_light=(0.3, 0.3, 0.3))
        assert np.allclose(tracer.ambient_light, 0.3)

        config = TracerConfig(override_ambient_light=True, ambient_light=(0.0, 1.0, 0.0))
        tracer = Raytracer(scene, config, scene_ambient_light=(0.3, 0.3, 0.3))
        assert np.allclose(tracer.ambient_light, [0.0, 1.0, 0.0])

    def test_from_scene_takes_lights_and_ambient(self):
        """Test from_scene reads lights and ambient light off the scene."""
        from src.glasstrace.core.tracer import Raytracer

        scene = ScriptedScene()
        scene.lights = ["light"]
        scene.ambient_light = np.array([0.4, 0.5, 0.6])

        tracer = Raytracer.from_scene(scene)
        assert tracer.lights == ["light"]
        assert np.allclose(tracer.ambient_light, [0.4, 0.5, 0.6])


class TestForwardTrace:
    """Tests for rays outside of any volume."""

    def test_miss_returns_background(self, counters):
        """Test a ray through empty space returns the background color."""
        tracer = _tracer(ScriptedScene(), ConstantShader())
        record = _record(counters, record_history=True)

        color = tracer.trace(_forward_ray(), record)

        assert np.allclose(color, BACKGROUND)
        assert counters.raycasts == 1
        assert counters.backtraces == 0
        assert len(record.history) == 1
        assert record.history[0].is_miss

    def test_miss_color_is_a_copy(self, counters):
        """Test mutating a returned color leaves the record's background alone."""
        tracer = _tracer(ScriptedScene(), ConstantShader())
        record = _record(counters)

        color = tracer.trace(_forward_ray(), record)
        color[0] = 5.0
        assert record.background_color[0] == pytest.approx(BACKGROUND[0])

    def test_hit_uses_surface_shader(self, counters):
        """Test a hit is shaded once by the surface's own shader."""
        surface_shader = ConstantShader((1.0, 0.0, 0.0))
        default_shader = ConstantShader((0.0, 1.0, 0.0))
        hit = make_hit(FakeSurface("ball", shader=surface_shader), 4.0)
        tracer = _tracer(ScriptedScene(nearest=[hit]), default_shader)
        record = _record(counters, record_history=True)

        color = tracer.trace(_forward_ray(), record)

        assert np.allclose(color, [1.0, 0.0, 0.0])
        assert len(surface_shader.calls) == 1
        assert surface_shader.calls[0][1] is hit
        assert default_shader.calls == []
        assert record.history[0].hit is hit

    def test_disabled_shader_falls_back_to_default(self, counters):
        """Test a disabled surface shader is replaced by the tracer default."""
        surface_shader = ConstantShader((1.0, 0.0, 0.0), enabled=False)
        default_shader = ConstantShader((0.0, 1.0, 0.0))
        hit = make_hit(FakeSurface("ball", shader=surface_shader), 4.0)
        tracer = _tracer(ScriptedScene(nearest=[hit]), default_shader)

        color = tracer.trace(_forward_ray(), _record(counters))

        assert np.allclose(color, [0.0, 1.0, 0.0])
        assert surface_shader.calls == []

    def test_missing_shader_raises(self, counters):
        """Test a hit without any available shader is an error."""
        hit = make_hit(FakeSurface("ball"), 4.0)
        tracer = _tracer(ScriptedScene(nearest=[hit]))

        with pytest.raises(RuntimeError, match="No shader"):
            tracer.trace(_forward_ray(), _record(counters))

    def test_rgba_shader_output_is_truncated(self, counters):
        """Test only the RGB part of a shader's result is returned."""
        hit = make_hit(FakeSurface("ball"), 4.0)
        tracer = _tracer(ScriptedScene(nearest=[hit]), ConstantShader((0.1, 0.2, 0.3, 0.4)))

        color = tracer.trace(_forward_ray(), _record(counters))
        assert color.shape == (3,)


class TestBackwardTrace:
    """Tests for rays travelling inside a volume."""

    def test_resolves_exit_before_forward_hit(self, counters):
        """Test the exit of the current volume replaces a farther forward hit."""
        glass = FakeSurface("glass", center=(0.0, 0.0, -2.0))
        floor = FakeSurface("floor")
        forward = make_hit(floor, 5.0, point=(0.0, 0.0, -5.0), normal=(0.0, 0.0, 1.0))
        far_exit = make_hit(glass, 1.0, point=(0.0, 0.0, -4.0), normal=(0.0, 0.0, -1.0))
        near_exit = make_hit(glass, 3.0, point=(0.0, 0.0, -2.0), normal=(0.0, 0.0, -1.0))
        other = make_hit(floor, 4.0, point=(0.0, 0.0, -1.0))
        scene = ScriptedScene(nearest=[forward], backward=[[far_exit, other, near_exit]])
        shader = ConstantShader()
        tracer = _tracer(scene, shader)
        record = _record(counters)
        record.enter(make_hit(glass, 1.0))

        tracer.trace(_forward_ray(), record)

        shaded_hit = shader.calls[0][1]
        assert shaded_hit.surface is glass
        assert shaded_hit.distance == pytest.approx(2.0)
        assert np.allclose(shaded_hit.point, [0.0, 0.0, -2.0])
        assert counters.raycasts == 1
        assert counters.backtraces == 1

    def test_backward_ray_starts_beyond_forward_hit(self, counters):
        """Test the backward ray is pushed out of the forward hit and reversed."""
        from src.glasstrace.core.tracer import PUSH_OUT_MAGNITUDE

        glass = FakeSurface("glass")
        forward = make_hit(FakeSurface("floor"), 5.0, point=(0.0, 0.0, -5.0), normal=(0.0, 0.0, 1.0))
        scene = ScriptedScene(nearest=[forward])
        tracer = _tracer(scene, ConstantShader())
        record = _record(counters)
        record.enter(make_hit(glass, 1.0))

        tracer.trace(_forward_ray(), record)

        backward_ray, max_distance = scene.all_hits_calls[0]
        assert np.allclose(backward_ray.origin, [0.0, 0.0, -5.0 + PUSH_OUT_MAGNITUDE])
        assert np.allclose(backward_ray.direction, [0.0, 0.0, 1.0])
        assert max_distance == pytest.approx(5.0)

    def test_failed_resolution_shades_forward_hit(self, counters):
        """Test the forward hit is used when no exit of the volume is found."""
        glass = FakeSurface("glass")
        forward = make_hit(FakeSurface("floor"), 5.0)
        shader = ConstantShader()
        tracer = _tracer(ScriptedScene(nearest=[forward], backward=[[]]), shader)
        record = _record(counters)
        record.enter(make_hit(glass, 1.0))

        tracer.trace(_forward_ray(), record)

        assert shader.calls[0][1] is forward
        assert counters.backtraces == 1

    def test_candidates_at_bound_are_ignored(self, counters):
        """Test hits at or beyond the search distance do not count as exits."""
        glass = FakeSurface("glass")
        forward = make_hit(FakeSurface("floor"), 5.0)
        at_bound = make_hit(glass, 5.0)
        shader = ConstantShader()
        tracer = _tracer(ScriptedScene(nearest=[forward], backward=[[at_bound]]), shader)
        record = _record(counters)
        record.enter(make_hit(glass, 1.0))

        tracer.trace(_forward_ray(), record)

        assert shader.calls[0][1] is forward

    def test_only_innermost_volume_counts(self, counters):
        """Test exits of an enclosing volume are skipped while inside a nested one."""
        outer = FakeSurface("outer")
        inner = FakeSurface("inner")
        forward = make_hit(FakeSurface("floor"), 5.0)
        outer_exit = make_hit(outer, 4.0)
        shader = ConstantShader()
        tracer = _tracer(ScriptedScene(nearest=[forward], backward=[[outer_exit]]), shader)
        record = _record(counters)
        record.enter(make_hit(outer, 1.0))
        record.enter(make_hit(inner, 2.0))

        tracer.trace(_forward_ray(), record)

        assert shader.calls[0][1] is forward

    def test_forward_miss_uses_bounding_volume(self, counters):
        """Test a ray leaving a volume into empty space finds its exit from the bounds."""
        from src.glasstrace.core.tracer import PUSH_OUT_MAGNITUDE

        glass = FakeSurface("glass", center=(0.0, 0.0, -2.0), extents=(1.0, 1.0, 1.0))
        reach = 2.0 + math.sqrt(3.0) + PUSH_OUT_MAGNITUDE
        exit_hit = make_hit(glass, reach - 3.0, point=(0.0, 0.0, -3.0), normal=(0.0, 0.0, -1.0))
        scene = ScriptedScene(backward=[[exit_hit]])
        shader = ConstantShader((0.9, 0.9, 0.9))
        tracer = _tracer(scene, shader)
        record = _record(counters)
        record.enter(make_hit(glass, 1.0))

        color = tracer.trace(_forward_ray(), record)

        backward_ray, max_distance = scene.all_hits_calls[0]
        assert max_distance == pytest.approx(reach)
        assert np.allclose(backward_ray.origin, [0.0, 0.0, -reach])
        assert np.allclose(backward_ray.direction, [0.0, 0.0, 1.0])
        assert shader.calls[0][1].distance == pytest.approx(3.0)
        assert np.allclose(color, 0.9)

    def test_forward_miss_without_exit_returns_background(self, counters):
        """Test a failed resolution after a miss falls back to the background."""
        glass = FakeSurface("glass")
        shader = ConstantShader()
        tracer = _tracer(ScriptedScene(), shader)
        record = _record(counters, record_history=True)
        record.enter(make_hit(glass, 1.0))

        color = tracer.trace(_forward_ray(), record)

        assert np.allclose(color, BACKGROUND)
        assert shader.calls == []
        assert counters.raycasts == 1
        assert counters.backtraces == 1
        assert record.history[0].is_miss

    def test_degenerate_distance_is_clamped(self, counters):
        """Test a zero or tiny forward distance is raised to the minimum search distance."""
        from src.glasstrace.core.tracer import MIN_RAYCAST_DISTANCE

        glass = FakeSurface("glass")
        forward = make_hit(FakeSurface("floor"), 0.0)
        scene = ScriptedScene(nearest=[forward])
        tracer = _tracer(scene, ConstantShader())
        record = _record(counters)
        record.enter(make_hit(glass, 1.0))

        tracer.trace(_forward_ray(), record)

        assert scene.all_hits_calls[0][1] == pytest.approx(MIN_RAYCAST_DISTANCE)


class TestOverwhite:
    """Tests for the overwhite interrupt."""

    def test_is_overwhite(self):
        """Test overwhite requires every channel at or above one."""
        from src.glasstrace.core.tracer import Raytracer

        assert Raytracer.is_overwhite(np.array([1.0, 1.0, 1.0]))
        assert Raytracer.is_overwhite(np.array([3.0, 1.5, 1.0]))
        assert not Raytracer.is_overwhite(np.array([5.0, 5.0, 0.99]))

    def test_interrupt_counts_once(self, counters):
        """Test an interrupt increments the overwhite counter once."""
        tracer = _tracer(ScriptedScene())
        record = _record(counters)

        assert tracer.must_interrupt(np.array([1.0, 1.0, 1.0]), record)
        assert counters.overwhites == 1
        assert not tracer.must_interrupt(np.array([0.5, 1.0, 1.0]), record)
        assert counters.overwhites == 1

    def test_interrupt_disabled(self, counters):
        """Test nothing is interrupted when the policy is off."""
        tracer = _tracer(ScriptedScene(), stop_on_overwhite=False)
        record = _record(counters)

        assert not tracer.must_interrupt(np.array([2.0, 2.0, 2.0]), record)
        assert counters.overwhites == 0
