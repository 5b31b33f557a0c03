"""Unit tests for the ray module.

Tests cover:
- Ray dataclass and ray_at function
- Vector helpers (reflect, refraction, Schlick reflectance, rotation)
- Sampling routines for Monte Carlo
"""

import math

import pytest
import taichi as ti

N_SAMPLES = 4096


class TestRayBasics:
    """Tests for Ray dataclass and basic operations."""

    def test_ray_at_origin(self):
        """Test ray_at returns origin when t=0."""
        from lenstrace.core.ray import Ray, ray_at, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            ray = Ray(origin=vec3(1.0, 2.0, 3.0), direction=vec3(0.0, 0.0, -1.0))
            result[None] = ray_at(ray, 0.0)

        test_kernel()
        r = result[None]
        assert r[0] == pytest.approx(1.0)
        assert r[1] == pytest.approx(2.0)
        assert r[2] == pytest.approx(3.0)

    def test_make_ray_positive_t(self):
        """Test ray_at computes the correct point along a ray from make_ray."""
        from lenstrace.core.ray import make_ray, ray_at, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(0.0, 1.0, 0.0), vec3(1.0, 0.0, 0.0))
            result[None] = ray_at(ray, 5.0)

        test_kernel()
        r = result[None]
        assert r[0] == pytest.approx(5.0)
        assert r[1] == pytest.approx(1.0)
        assert r[2] == pytest.approx(0.0)


class TestVectorUtilities:
    """Tests for vector helper functions."""

    def test_component_average_and_max(self):
        """Test channel mean and largest channel."""
        from lenstrace.core.ray import component_average, max_component, vec3

        result = ti.field(dtype=ti.f32, shape=2)

        @ti.kernel
        def test_kernel():
            v = vec3(0.3, 0.9, 0.6)
            result[0] = component_average(v)
            result[1] = max_component(v)

        test_kernel()
        assert result[0] == pytest.approx(0.6, abs=1e-6)
        assert result[1] == pytest.approx(0.9, abs=1e-6)

    def test_reflect(self):
        """Test mirror reflection about a normal."""
        from lenstrace.core.ray import reflect, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = reflect(vec3(1.0, -1.0, 0.0), vec3(0.0, 1.0, 0.0))

        test_kernel()
        r = result[None]
        assert r[0] == pytest.approx(1.0)
        assert r[1] == pytest.approx(1.0)
        assert r[2] == pytest.approx(0.0)

    def test_refraction_normal_incidence(self):
        """Test a ray hitting head-on passes straight through."""
        from lenstrace.core.ray import refraction, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())
        ok = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            d, k = refraction(vec3(0.0, 0.0, -1.0), vec3(0.0, 0.0, 1.0), 1.0, 1.5)
            result[None] = d
            ok[None] = k

        test_kernel()
        assert ok[None] == 1
        r = result[None]
        assert r[0] == pytest.approx(0.0, abs=1e-6)
        assert r[1] == pytest.approx(0.0, abs=1e-6)
        assert r[2] == pytest.approx(-1.0, abs=1e-6)

    def test_refraction_obeys_snell(self):
        """Test sin(theta_t) = sin(theta_i) * n1 / n2 for an oblique ray."""
        from lenstrace.core.ray import refraction, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        angle = math.radians(45.0)

        @ti.kernel
        def test_kernel(s: ti.f32, c: ti.f32):
            d, _ = refraction(vec3(s, 0.0, -c), vec3(0.0, 0.0, 1.0), 1.0, 1.5)
            result[None] = d

        test_kernel(math.sin(angle), math.cos(angle))
        r = result[None]
        assert math.sqrt(r[0] ** 2 + r[1] ** 2 + r[2] ** 2) == pytest.approx(1.0, abs=1e-5)
        assert r[0] == pytest.approx(math.sin(angle) / 1.5, abs=1e-5)
        assert r[2] < 0.0

    def test_refraction_total_internal_reflection(self):
        """Test leaving glass at a steep angle reports total internal reflection."""
        from lenstrace.core.ray import refraction, vec3

        ok = ti.field(dtype=ti.i32, shape=())

        angle = math.radians(60.0)

        @ti.kernel
        def test_kernel(s: ti.f32, c: ti.f32):
            _, k = refraction(vec3(s, 0.0, -c), vec3(0.0, 0.0, 1.0), 1.5, 1.0)
            ok[None] = k

        test_kernel(math.sin(angle), math.cos(angle))
        assert ok[None] == 0

    def test_schlick_reflectance_golden_value(self):
        """Test Schlick reflectance against a precomputed value."""
        from lenstrace.core.ray import schlick_reflectance, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            incident = vec3(0.99999, 0.00207, 0.00451)
            normal = vec3(-0.42430, 0.17527, -0.88840)
            result[None] = schlick_reflectance(incident, normal, vec3(0.04, 0.04, 0.04))

        test_kernel()
        for c in range(3):
            assert result[None][c] == pytest.approx(0.098815, abs=1e-4)

    def test_schlick_reflectance_normal_incidence_is_f0(self):
        """Test reflectance equals F0 when looking straight at the surface."""
        from lenstrace.core.ray import schlick_reflectance, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = schlick_reflectance(
                vec3(0.0, 0.0, -1.0), vec3(0.0, 0.0, 1.0), vec3(0.04, 0.5, 1.0)
            )

        test_kernel()
        r = result[None]
        assert r[0] == pytest.approx(0.04, abs=1e-6)
        assert r[1] == pytest.approx(0.5, abs=1e-6)
        assert r[2] == pytest.approx(1.0, abs=1e-6)

    def test_rotate_axis_angle(self):
        """Test a quarter turn about -y takes -z to +x."""
        from lenstrace.core.ray import rotate_axis_angle, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = rotate_axis_angle(vec3(0.0, 0.0, -1.0), 90.0, vec3(0.0, -1.0, 0.0))

        test_kernel()
        r = result[None]
        assert r[0] == pytest.approx(1.0, abs=1e-6)
        assert r[1] == pytest.approx(0.0, abs=1e-6)
        assert r[2] == pytest.approx(0.0, abs=1e-6)

    def test_build_onb_orthogonality(self):
        """Test the basis built from a normal is orthonormal."""
        from lenstrace.core.ray import build_onb_from_normal, vec3

        result = ti.field(dtype=ti.f32, shape=3)

        @ti.kernel
        def test_kernel():
            t, b, n = build_onb_from_normal(ti.math.normalize(vec3(0.95, 0.3, 0.1)))
            result[0] = ti.math.dot(t, b)
            result[1] = ti.math.dot(t, n)
            result[2] = ti.math.dot(b, n)

        test_kernel()
        for i in range(3):
            assert result[i] == pytest.approx(0.0, abs=1e-5)


class TestSampling:
    """Tests for the Monte Carlo sampling routines."""

    def test_cosine_hemisphere_mean_cosine(self):
        """Test samples stay above the surface with E[cos] = 2/3."""
        from lenstrace.core.ray import sample_cosine_hemisphere, vec3

        cosines = ti.field(dtype=ti.f32, shape=N_SAMPLES)
        lengths = ti.field(dtype=ti.f32, shape=N_SAMPLES)

        @ti.kernel
        def test_kernel():
            normal = ti.math.normalize(vec3(1.0, 2.0, -0.5))
            for i in range(N_SAMPLES):
                d = sample_cosine_hemisphere(normal, ti.random(ti.f32), ti.random(ti.f32))
                cosines[i] = ti.math.dot(d, normal)
                lengths[i] = ti.math.length(d)

        test_kernel()
        c = cosines.to_numpy()
        assert c.min() >= 0.0
        assert abs(lengths.to_numpy() - 1.0).max() < 1e-4
        assert c.mean() == pytest.approx(2.0 / 3.0, abs=0.02)

    def test_cosine_hemisphere_pdf(self):
        """Test the density is cos/pi above the surface and 0 below."""
        from lenstrace.core.ray import cosine_hemisphere_pdf, vec3

        result = ti.field(dtype=ti.f32, shape=2)

        @ti.kernel
        def test_kernel():
            normal = vec3(0.0, 1.0, 0.0)
            result[0] = cosine_hemisphere_pdf(normal, vec3(0.0, 1.0, 0.0))
            result[1] = cosine_hemisphere_pdf(normal, vec3(0.0, -1.0, 0.0))

        test_kernel()
        assert result[0] == pytest.approx(1.0 / math.pi, abs=1e-6)
        assert result[1] == 0.0

    def test_cone_width_zero_returns_axis(self):
        """Test a zero-width cone always returns its axis."""
        from lenstrace.core.ray import sample_cone, vec3

        result = ti.field(dtype=ti.f32, shape=N_SAMPLES)

        @ti.kernel
        def test_kernel():
            axis = ti.math.normalize(vec3(0.2, 0.5, 0.8))
            for i in range(N_SAMPLES):
                d = sample_cone(axis, 0.0, ti.random(ti.f32), ti.random(ti.f32))
                result[i] = ti.math.dot(d, axis)

        test_kernel()
        assert result.to_numpy().min() == pytest.approx(1.0, abs=1e-5)

    def test_cone_full_width_stays_in_hemisphere(self):
        """Test the widest cone never leaves the hemisphere about its axis."""
        from lenstrace.core.ray import sample_cone, vec3

        result = ti.field(dtype=ti.f32, shape=N_SAMPLES)

        @ti.kernel
        def test_kernel():
            axis = vec3(0.0, 0.0, 1.0)
            for i in range(N_SAMPLES):
                d = sample_cone(axis, 1.0, ti.random(ti.f32), ti.random(ti.f32))
                result[i] = d.z

        test_kernel()
        z = result.to_numpy()
        assert z.min() >= -1e-6
        assert z.max() <= 1.0 + 1e-6

    def test_sample_disk_within_radius(self):
        """Test disk samples lie in the xy-plane within the radius."""
        from lenstrace.core.ray import sample_disk

        radii = ti.field(dtype=ti.f32, shape=N_SAMPLES)
        heights = ti.field(dtype=ti.f32, shape=N_SAMPLES)

        @ti.kernel
        def test_kernel():
            for i in range(N_SAMPLES):
                p = sample_disk(0.25, ti.random(ti.f32), ti.random(ti.f32))
                radii[i] = ti.math.length(p)
                heights[i] = p.z

        test_kernel()
        assert radii.to_numpy().max() <= 0.25 + 1e-6
        assert abs(heights.to_numpy()).max() == 0.0

    def test_sphere_cap_within_cone(self):
        """Test sphere cap samples stay inside the cone and cover it evenly."""
        from lenstrace.core.ray import sample_sphere_cap, vec3

        result = ti.field(dtype=ti.f32, shape=N_SAMPLES)
        cos_max = 0.9

        @ti.kernel
        def test_kernel():
            axis = ti.math.normalize(vec3(-1.0, 1.0, 0.0))
            for i in range(N_SAMPLES):
                d = sample_sphere_cap(axis, cos_max, ti.random(ti.f32), ti.random(ti.f32))
                result[i] = ti.math.dot(d, axis)

        test_kernel()
        c = result.to_numpy()
        assert c.min() >= cos_max - 1e-5
        # cos(theta) is uniform on [cos_max, 1]
        assert c.mean() == pytest.approx((1.0 + cos_max) / 2.0, abs=0.005)
