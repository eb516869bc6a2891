"""Unit tests for the ray module.

Tests cover:
- Ray dataclass and Ray.at
- Vector utility functions (dot, cross, normalize, length, reflect)
- Refraction including total internal reflection
- Tangent-space transforms
"""

import math

import numpy as np
import pytest


class TestRayBasics:
    """Tests for Ray dataclass and basic operations."""

    def test_ray_at_origin(self):
        """Test Ray.at returns origin when t=0."""
        from src.glasstrace.core.ray import Ray, vec3

        ray = Ray(vec3(1.0, 2.0, 3.0), vec3(0.0, 0.0, -1.0))
        assert np.allclose(ray.at(0.0), [1.0, 2.0, 3.0])

    def test_ray_at_positive_t(self):
        """Test Ray.at computes correct point along ray."""
        from src.glasstrace.core.ray import Ray, vec3

        ray = Ray(vec3(0.0, 0.0, 0.0), vec3(1.0, 0.0, 0.0))
        assert np.allclose(ray.at(5.0), [5.0, 0.0, 0.0])

    def test_make_ray_normalizes_direction(self):
        """Test make_ray accepts tuples and normalizes the direction."""
        from src.glasstrace.core.ray import make_ray

        ray = make_ray((0, 0, 0), (0, 3, 4))
        assert np.allclose(ray.direction, [0.0, 0.6, 0.8])
        assert ray.origin.dtype == np.float64

    def test_as_vec3_rejects_wrong_length(self):
        """Test as_vec3 raises for anything but three components."""
        from src.glasstrace.core.ray import as_vec3

        with pytest.raises(ValueError, match="3 components"):
            as_vec3((1.0, 2.0))

    def test_as_vec3_copies(self):
        """Test as_vec3 never aliases its input array."""
        from src.glasstrace.core.ray import as_vec3

        source = np.array([1.0, 2.0, 3.0])
        result = as_vec3(source)
        result[0] = 9.0
        assert source[0] == 1.0


class TestVectorUtilities:
    """Tests for the vector helper functions."""

    def test_dot_and_cross(self):
        """Test dot and cross products of basis vectors."""
        from src.glasstrace.core.ray import cross, dot, vec3

        x = vec3(1.0, 0.0, 0.0)
        y = vec3(0.0, 1.0, 0.0)
        assert dot(x, y) == 0.0
        assert np.allclose(cross(x, y), [0.0, 0.0, 1.0])

    def test_length(self):
        """Test Euclidean length."""
        from src.glasstrace.core.ray import length, vec3

        assert length(vec3(3.0, 4.0, 0.0)) == pytest.approx(5.0)

    def test_normalize(self):
        """Test normalize produces a unit vector."""
        from src.glasstrace.core.ray import length, normalize, vec3

        assert length(normalize(vec3(2.0, -3.0, 6.0))) == pytest.approx(1.0)

    def test_normalize_zero_vector(self):
        """Test normalizing a zero vector yields zeros instead of NaNs."""
        from src.glasstrace.core.ray import normalize, vec3

        result = normalize(vec3(0.0, 0.0, 0.0))
        assert not np.any(np.isnan(result))
        assert np.allclose(result, 0.0)

    def test_reflect_45_degrees(self):
        """Test reflection of a 45-degree ray off a horizontal surface."""
        from src.glasstrace.core.ray import normalize, reflect, vec3

        incident = normalize(vec3(1.0, -1.0, 0.0))
        result = reflect(incident, vec3(0.0, 1.0, 0.0))
        assert np.allclose(result, normalize(vec3(1.0, 1.0, 0.0)))

    def test_reflect_head_on(self):
        """Test head-on reflection reverses the direction."""
        from src.glasstrace.core.ray import reflect, vec3

        result = reflect(vec3(0.0, 0.0, -1.0), vec3(0.0, 0.0, 1.0))
        assert np.allclose(result, [0.0, 0.0, 1.0])


class TestRefract:
    """Tests for refraction through a surface."""

    def test_identity_ratio_keeps_direction(self):
        """Test k = 1 leaves the direction unchanged."""
        from src.glasstrace.core.ray import normalize, refract, vec3

        incident = normalize(vec3(0.3, -0.8, 0.2))
        result = refract(incident, vec3(0.0, 1.0, 0.0), 1.0)
        assert np.allclose(result, incident)

    def test_normal_incidence_passes_straight(self):
        """Test a ray along the normal is not bent."""
        from src.glasstrace.core.ray import refract, vec3

        result = refract(vec3(0.0, 0.0, -1.0), vec3(0.0, 0.0, 1.0), 1.0 / 1.5)
        assert np.allclose(result, [0.0, 0.0, -1.0])

    def test_snell_law_on_entry(self):
        """Test entering glass bends the ray toward the normal per Snell's law."""
        from src.glasstrace.core.ray import refract, vec3

        angle = math.radians(45.0)
        incident = vec3(math.sin(angle), -math.cos(angle), 0.0)
        result = refract(incident, vec3(0.0, 1.0, 0.0), 1.0 / 1.5)

        sin_t = math.sin(angle) / 1.5
        assert result[0] == pytest.approx(sin_t, abs=1e-9)
        assert result[1] == pytest.approx(-math.sqrt(1.0 - sin_t * sin_t), abs=1e-9)

    def test_result_is_unit_length(self):
        """Test the refracted direction is normalized."""
        from src.glasstrace.core.ray import length, normalize, refract, vec3

        result = refract(normalize(vec3(0.5, -1.0, 0.1)), vec3(0.0, 1.0, 0.0), 1.0 / 1.33)
        assert length(result) == pytest.approx(1.0)

    def test_total_internal_reflection_returns_none(self):
        """Test a grazing ray leaving glass has no refracted direction."""
        from src.glasstrace.core.ray import refract, vec3

        angle = math.radians(60.0)
        # Leaving glass: the normal faces against the ray, k = 1.5
        incident = vec3(math.sin(angle), math.cos(angle), 0.0)
        assert refract(incident, vec3(0.0, -1.0, 0.0), 1.5) is None

    def test_below_critical_angle_refracts(self):
        """Test a steep ray leaving glass still refracts."""
        from src.glasstrace.core.ray import refract, vec3

        angle = math.radians(30.0)
        incident = vec3(math.sin(angle), math.cos(angle), 0.0)
        result = refract(incident, vec3(0.0, -1.0, 0.0), 1.5)

        assert result is not None
        assert result[0] == pytest.approx(1.5 * math.sin(angle), abs=1e-9)
        assert result[1] > 0.0

    def test_normal_on_same_side_as_ray(self):
        """Test refraction keeps the ray going forward when the normal faces along it."""
        from src.glasstrace.core.ray import normalize, refract, vec3

        incident = normalize(vec3(0.2, -1.0, 0.0))
        result = refract(incident, vec3(0.0, -1.0, 0.0), 1.0 / 1.5)
        assert result[1] < 0.0


class TestTangentSpace:
    """Tests for TBN transforms."""

    def test_tangent_space_normal_maps_to_normal(self):
        """Test the tangent-space +Z axis maps to the world normal."""
        from src.glasstrace.core.ray import transform_tbn, vec3

        tangent = vec3(1.0, 0.0, 0.0)
        binormal = vec3(0.0, 0.0, -1.0)
        normal = vec3(0.0, 1.0, 0.0)
        assert np.allclose(transform_tbn(vec3(0.0, 0.0, 1.0), tangent, binormal, normal), normal)

    def test_inverse_round_trip(self):
        """Test inverse TBN undoes TBN for an orthonormal frame."""
        from src.glasstrace.core.ray import transform_inverse_tbn, transform_tbn, vec3

        tangent = vec3(0.0, 0.0, 1.0)
        binormal = vec3(1.0, 0.0, 0.0)
        normal = vec3(0.0, 1.0, 0.0)
        v = vec3(0.3, -0.4, 0.5)
        world = transform_tbn(v, tangent, binormal, normal)
        assert np.allclose(transform_inverse_tbn(world, tangent, binormal, normal), v)
