"""Unit tests for the sphere primitive.

Tests cover:
- Near and far roots of the ray-sphere quadratic
- Misses, tangent rays and spheres behind the ray
- The self-intersection bias
- Outward normals
"""

import pytest
import taichi as ti


def _distance(origin, direction, center, radius):
    from lenstrace.geometry.sphere import Sphere, intersection_distance, vec3

    result = ti.field(dtype=ti.f32, shape=())

    @ti.kernel
    def test_kernel(o: vec3, d: vec3, c: vec3, r: ti.f32):
        result[None] = intersection_distance(o, ti.math.normalize(d), Sphere(center=c, radius=r))

    test_kernel(ti.math.vec3(*origin), ti.math.vec3(*direction), ti.math.vec3(*center), radius)
    return result[None]


class TestSphereIntersection:
    """Tests for intersection_distance."""

    def test_hit_from_outside_returns_near_root(self):
        """Test a ray from outside hits the near surface."""
        t = _distance((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), (0.0, 0.0, -5.0), 1.0)
        assert t == pytest.approx(4.0, abs=1e-5)

    def test_hit_from_inside_returns_far_root(self):
        """Test a ray starting inside the sphere hits the far surface."""
        t = _distance((0.0, 0.0, -5.0), (0.0, 0.0, -1.0), (0.0, 0.0, -5.0), 2.0)
        assert t == pytest.approx(2.0, abs=1e-5)

    def test_miss(self):
        """Test a ray passing beside the sphere misses."""
        from lenstrace.geometry.sphere import NO_HIT

        t = _distance((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), (3.0, 0.0, -5.0), 1.0)
        assert t == pytest.approx(NO_HIT)

    def test_sphere_behind_ray_misses(self):
        """Test both roots behind the origin count as a miss."""
        from lenstrace.geometry.sphere import NO_HIT

        t = _distance((0.0, 0.0, 0.0), (0.0, 0.0, 1.0), (0.0, 0.0, -5.0), 1.0)
        assert t == pytest.approx(NO_HIT)

    def test_root_within_bias_is_ignored(self):
        """Test a ray leaving the surface does not hit its own starting point."""
        # Origin on the surface, pointing outward: near root is 0, far root negative
        from lenstrace.geometry.sphere import NO_HIT

        t = _distance((0.0, 0.0, -4.0), (0.0, 0.0, 1.0), (0.0, 0.0, -5.0), 1.0)
        assert t == pytest.approx(NO_HIT)

    def test_root_within_bias_falls_back_to_far_root(self):
        """Test a ray entering from the surface finds the opposite side."""
        t = _distance((0.0, 0.0, -4.0), (0.0, 0.0, -1.0), (0.0, 0.0, -5.0), 1.0)
        assert t == pytest.approx(2.0, abs=1e-5)

    def test_tangent_ray_hits(self):
        """Test a ray grazing the sphere counts as a hit."""
        t = _distance((1.0, 0.0, 0.0), (0.0, 0.0, -1.0), (0.0, 0.0, -5.0), 1.0)
        assert t == pytest.approx(5.0, abs=1e-2)


class TestSphereNormal:
    """Tests for outward_normal."""

    def test_outward_normal(self):
        """Test the normal points from the center to the surface point."""
        from lenstrace.geometry.sphere import Sphere, outward_normal, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            sphere = Sphere(center=vec3(1.0, 1.0, 1.0), radius=2.0)
            result[None] = outward_normal(sphere, vec3(1.0, 3.0, 1.0))

        test_kernel()
        n = result[None]
        assert n[0] == pytest.approx(0.0)
        assert n[1] == pytest.approx(1.0)
        assert n[2] == pytest.approx(0.0)
