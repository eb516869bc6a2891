"""Pytest configuration for glasstrace tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session, and fake scene
and shader collaborators for exercising the tracer without Taichi.
"""

import numpy as np
import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear scene primitives and cached textures before and after each test.

    This ensures tests are isolated from each other.
    """
    # Import here to ensure Taichi is initialized before fields are created
    from src.glasstrace.scene.intersection import clear_scene
    from src.glasstrace.textures.cache import clear_texture_cache

    def _clear_all():
        clear_scene()
        clear_texture_cache()

    _clear_all()
    yield
    _clear_all()


# =============================================================================
# Fake collaborators
# =============================================================================


class FakeSurface:
    """Surface with fixed bounds for scripted scenes."""

    def __init__(self, name, center=(0.0, 0.0, 0.0), extents=(1.0, 1.0, 1.0), shader=None):
        from src.glasstrace.core.hit import Bounds

        self.name = name
        self.bounds = Bounds(np.array(center, dtype=np.float64), np.array(extents, dtype=np.float64))
        self.shader = shader

    def surface_frame(self, hit):
        from src.glasstrace.core.hit import SurfaceFrame

        return SurfaceFrame((0.0, 0.0), hit.normal, np.array([1.0, 0.0, 0.0]))

    def __repr__(self):
        return f"FakeSurface({self.name})"


class ScriptedScene:
    """Scene query answering from queues of prepared results.

    ``nearest`` holds the results of successive ``nearest_hit`` calls and
    ``backward`` the results of successive ``all_hits`` calls. An exhausted
    queue answers with a miss.
    """

    def __init__(self, nearest=(), backward=()):
        self.nearest = list(nearest)
        self.backward = list(backward)
        self.nearest_calls = []
        self.all_hits_calls = []

    def nearest_hit(self, ray):
        self.nearest_calls.append(ray)
        return self.nearest.pop(0) if self.nearest else None

    def all_hits(self, ray, max_distance):
        self.all_hits_calls.append((ray, max_distance))
        return self.backward.pop(0) if self.backward else []


class ConstantShader:
    """Shader returning a fixed color and recording its calls."""

    def __init__(self, color=(0.5, 0.5, 0.5), enabled=True):
        self.color = np.array(color, dtype=np.float64)
        self.enabled = enabled
        self.calls = []

    def shade(self, tracer, ray, hit, record):
        self.calls.append((ray, hit, len(record.penetration_stack)))
        return self.color.copy()


def make_hit(surface, distance, point=(0.0, 0.0, 0.0), normal=(0.0, 0.0, 1.0)):
    """Build a HitRecord for scripted scenes."""
    from src.glasstrace.core.hit import HitRecord

    return HitRecord(
        point=np.array(point, dtype=np.float64),
        normal=np.array(normal, dtype=np.float64),
        distance=float(distance),
        surface=surface,
    )


@pytest.fixture
def counters():
    """Fresh render counters."""
    from src.glasstrace.core.record import RaytraceCounters

    return RaytraceCounters()
