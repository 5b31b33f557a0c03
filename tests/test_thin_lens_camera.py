"""Unit tests for the thin-lens camera.

Tests cover:
- Configuration validation and derived lens quantities
- Primary ray directions for known pixels
- The pinhole limit of an infinite f-number
- Depth of field: lens samples converge on the focus plane
"""

import dataclasses
import math

import numpy as np
import pytest
import taichi as ti

N_LENS_SAMPLES = 64


def _rays(camera, x, y, width, height, jitter=(0.5, 0.5), lens_draws=((0.5, 0.5),)):
    """Generate one ray per lens draw for a pixel and return (origins, directions)."""
    from lenstrace.camera.thin_lens import get_ray, setup_camera

    setup_camera(camera)
    n = len(lens_draws)
    draws = ti.Vector.field(2, dtype=ti.f32, shape=n)
    origins = ti.Vector.field(3, dtype=ti.f32, shape=n)
    directions = ti.Vector.field(3, dtype=ti.f32, shape=n)
    for i, draw in enumerate(lens_draws):
        draws[i] = list(draw)

    @ti.kernel
    def test_kernel(x: ti.f32, y: ti.f32, w: ti.f32, h: ti.f32, jx: ti.f32, jy: ti.f32):
        for i in range(n):
            ray = get_ray(x, y, w, h, jx, jy, draws[i][0], draws[i][1])
            origins[i] = ray.origin
            directions[i] = ray.direction

    test_kernel(x, y, width, height, jitter[0], jitter[1])
    return origins.to_numpy(), directions.to_numpy()


class TestThinLensConfiguration:
    """Tests for ThinLensCamera construction."""

    def test_defaults(self):
        """Test default lens values and derived quantities."""
        from lenstrace.camera.thin_lens import ThinLensCamera

        camera = ThinLensCamera(position=(0.0, 0.0, 7.0))

        assert camera.aperture_diameter == pytest.approx(0.040 / 1.4)
        assert camera.image_distance == pytest.approx(1.0 / (1.0 / 0.040 - 1.0 / 15.0))
        assert camera.object_distance == -15.0
        assert not camera.is_pinhole

    def test_infinite_fstop_is_pinhole(self):
        """Test an infinite f-number closes the aperture."""
        from lenstrace.camera.thin_lens import ThinLensCamera

        camera = ThinLensCamera(position=(0.0, 0.0, 0.0), fstop=math.inf)
        assert camera.aperture_diameter == 0.0
        assert camera.is_pinhole

    def test_focal_length_equal_to_focus_distance_rejected(self):
        """Test an undefined image distance is a configuration error."""
        from lenstrace.camera.thin_lens import CameraConfigurationError, ThinLensCamera

        with pytest.raises(CameraConfigurationError, match="image distance"):
            ThinLensCamera(position=(0.0, 0.0, 0.0), focal_length=1.0, focus_distance=1.0)

    @pytest.mark.parametrize("field", ["sensor_size", "focal_length", "focus_distance", "fstop"])
    def test_non_positive_values_rejected(self, field):
        """Test lengths and the f-number must be positive."""
        from lenstrace.camera.thin_lens import CameraConfigurationError, ThinLensCamera

        with pytest.raises(CameraConfigurationError):
            ThinLensCamera(position=(0.0, 0.0, 0.0), **{field: 0.0})

    def test_configuration_error_is_value_error(self):
        """Test callers can catch configuration errors as ValueError."""
        from lenstrace.camera.thin_lens import ThinLensCamera

        with pytest.raises(ValueError):
            ThinLensCamera(position=(0.0, 0.0, 0.0), fstop=-2.0)

    def test_camera_is_immutable(self):
        """Test camera fields cannot be reassigned."""
        from lenstrace.camera.thin_lens import ThinLensCamera

        camera = ThinLensCamera(position=(0.0, 0.0, 0.0))
        with pytest.raises(dataclasses.FrozenInstanceError):
            camera.fstop = 2.8

    def test_setup_camera_uploads_state(self):
        """Test setup_camera stores the derived values."""
        from lenstrace.camera.thin_lens import (
            ThinLensCamera,
            get_camera_info,
            is_camera_configured,
            setup_camera,
        )

        camera = ThinLensCamera(position=(1.0, 2.0, 3.0), fstop=2.0)
        setup_camera(camera)
        info = get_camera_info()

        assert is_camera_configured()
        assert info["position"] == pytest.approx((1.0, 2.0, 3.0))
        assert info["aperture_diameter"] == pytest.approx(0.02)
        assert info["image_distance"] == pytest.approx(camera.image_distance, rel=1e-5)
        assert info["object_distance"] == pytest.approx(-15.0)


class TestRayGeneration:
    """Tests for get_ray directions."""

    def test_center_pixel_looks_down_negative_z(self):
        """Test the image center maps to the optical axis."""
        from lenstrace.camera.thin_lens import ThinLensCamera

        camera = ThinLensCamera(position=(0.0, 0.0, 7.0), fstop=math.inf)
        origins, directions = _rays(camera, 1.0, 1.0, 2.0, 2.0, jitter=(0.0, 0.0))

        assert tuple(origins[0]) == pytest.approx((0.0, 0.0, 7.0))
        assert tuple(directions[0]) == pytest.approx((0.0, 0.0, -1.0), abs=1e-6)

    def test_top_left_pixel_looks_up_and_left(self):
        """Test row 0 is the top of the image and column 0 the left."""
        from lenstrace.camera.thin_lens import ThinLensCamera

        camera = ThinLensCamera(position=(0.0, 0.0, 0.0), fstop=math.inf)
        _, directions = _rays(camera, 0.0, 0.0, 64.0, 48.0)
        d = directions[0]

        assert d[0] < 0.0
        assert d[1] > 0.0
        assert d[2] < 0.0
        assert np.linalg.norm(d) == pytest.approx(1.0, abs=1e-5)

    def test_horizontal_angle_turns_camera(self):
        """Test a quarter turn of the horizontal angle looks down +x."""
        from lenstrace.camera.thin_lens import ThinLensCamera

        camera = ThinLensCamera(position=(0.0, 0.0, 0.0), fstop=math.inf, horizontal_angle=90.0)
        _, directions = _rays(camera, 1.0, 1.0, 2.0, 2.0, jitter=(0.0, 0.0))
        assert tuple(directions[0]) == pytest.approx((1.0, 0.0, 0.0), abs=1e-5)

    def test_vertical_angle_tilts_camera(self):
        """Test a quarter turn of the vertical angle looks straight down."""
        from lenstrace.camera.thin_lens import ThinLensCamera

        camera = ThinLensCamera(position=(0.0, 0.0, 0.0), fstop=math.inf, vertical_angle=90.0)
        _, directions = _rays(camera, 1.0, 1.0, 2.0, 2.0, jitter=(0.0, 0.0))
        assert tuple(directions[0]) == pytest.approx((0.0, -1.0, 0.0), abs=1e-5)


class TestApertureSampling:
    """Tests for the pinhole limit and depth of field."""

    def test_pinhole_limit_ignores_lens_draws(self):
        """Test every aperture draw gives the same ray when fstop is infinite."""
        from lenstrace.camera.thin_lens import ThinLensCamera

        rng = np.random.default_rng(7)
        draws = [tuple(d) for d in rng.random((N_LENS_SAMPLES, 2))]
        camera = ThinLensCamera(position=(0.0, 1.0, 5.0), fstop=math.inf)
        _, directions = _rays(camera, 10.0, 20.0, 64.0, 48.0, lens_draws=draws)

        spread = np.abs(directions - directions[0]).max()
        assert spread == pytest.approx(0.0, abs=1e-7)

    def test_finite_aperture_spreads_directions(self):
        """Test different lens draws give different directions."""
        from lenstrace.camera.thin_lens import ThinLensCamera

        camera = ThinLensCamera(position=(0.0, 0.0, 0.0), fstop=1.4)
        _, directions = _rays(
            camera, 10.0, 20.0, 64.0, 48.0, lens_draws=((0.0, 0.0), (1.0, 0.0), (1.0, 0.5))
        )
        assert np.abs(directions[1] - directions[2]).max() > 1e-4

    def test_lens_samples_converge_on_focus_plane(self):
        """Test rays from all over the aperture meet at one focus point."""
        from lenstrace.camera.thin_lens import ThinLensCamera

        rng = np.random.default_rng(11)
        draws = [tuple(d) for d in rng.random((N_LENS_SAMPLES, 2))]
        camera = ThinLensCamera(position=(0.0, 0.0, 0.0), fstop=1.4, focus_distance=15.0)
        _, directions = _rays(camera, 10.0, 20.0, 64.0, 48.0, lens_draws=draws)

        # The aperture offset is small next to the focus distance, so every
        # direction is within the aperture's angular size of the chief ray
        _, chief = _rays(
            ThinLensCamera(position=(0.0, 0.0, 0.0), fstop=math.inf, focus_distance=15.0),
            10.0,
            20.0,
            64.0,
            48.0,
        )
        half_angle = camera.aperture_diameter * 0.5 / 15.0
        assert np.abs(directions - chief[0]).max() <= half_angle * 1.5
