"""Thin-lens camera model for depth-of-field ray generation.

The camera sits at ``position`` looking down its local -z axis. A sensor of
width ``sensor_size`` lies behind the lens at the image distance given by
the thin-lens equation

    image_distance = 1 / (1/focal_length - 1/focus_distance)

and every sensor point is imaged onto the focus plane at
``z = -focus_distance``. Ray generation:

1. Jitter the pixel by uniform noise in [0, 1), map it to normalized device
   coordinates (aspect-corrected) and then to the physical sensor.
2. Project the sensor point through the lens center onto the focus plane,
   giving the focus point.
3. Sample an aperture point on the lens disk of diameter
   ``focal_length / fstop``.
4. The ray direction is ``normalize(focus - aperture)``, rotated by the
   vertical then horizontal camera angles.

With ``fstop = inf`` the aperture collapses to a point and the camera
becomes a pinhole camera.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from lenstrace.camera.thin_lens import ThinLensCamera, setup_camera
    >>> camera = ThinLensCamera(position=(0.0, 0.0, 7.0))
    >>> setup_camera(camera)
    >>> # ray = get_ray_jittered(x, y, width, height) inside a Taichi kernel
"""

import logging
import math
from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from lenstrace.core.ray import Ray, make_ray, rotate_axis_angle, sample_disk, vec3

logger = logging.getLogger(__name__)


class CameraConfigurationError(ValueError):
    """Raised when camera parameters do not describe a usable lens."""


# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass(frozen=True)
class ThinLensCamera:
    """Configuration for a thin-lens camera.

    Lengths are in scene units; the defaults describe a 40 mm lens on a
    24 mm sensor focused 15 units away.

    Attributes:
        position: Camera position in world space (x, y, z).
        sensor_size: Physical sensor width.
        focal_length: Focal length of the lens.
        focus_distance: Distance of the plane in perfect focus.
        fstop: Aperture f-number. ``math.inf`` gives a pinhole camera.
        horizontal_angle: Rotation about the vertical axis, in degrees.
        vertical_angle: Rotation about the horizontal axis, in degrees.

    Raises:
        CameraConfigurationError: If focal_length equals focus_distance
            (undefined image distance) or any length or the f-number is
            not positive.
    """

    position: tuple[float, float, float]
    sensor_size: float = 0.024
    focal_length: float = 0.040
    focus_distance: float = 15.0
    fstop: float = 1.4
    horizontal_angle: float = 0.0
    vertical_angle: float = 0.0

    def __post_init__(self) -> None:
        for name in ("sensor_size", "focal_length", "focus_distance", "fstop"):
            value = getattr(self, name)
            if not value > 0.0:
                raise CameraConfigurationError(f"{name} must be positive, got {value}")
        if self.focal_length == self.focus_distance:
            raise CameraConfigurationError(
                "focal_length and focus_distance are equal "
                f"({self.focal_length}); the image distance is undefined"
            )

    @property
    def aperture_diameter(self) -> float:
        """Diameter of the lens opening (0 for a pinhole)."""
        return self.focal_length / self.fstop

    @property
    def image_distance(self) -> float:
        """Distance from the lens to the sensor."""
        return 1.0 / (1.0 / self.focal_length - 1.0 / self.focus_distance)

    @property
    def object_distance(self) -> float:
        """Signed z of the focus plane in camera space."""
        return -self.focus_distance

    @property
    def is_pinhole(self) -> bool:
        """Whether the aperture has collapsed to a point."""
        return self.aperture_diameter == 0.0


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_position = ti.Vector.field(3, dtype=ti.f32, shape=())
_sensor_size = ti.field(dtype=ti.f32, shape=())
_image_distance = ti.field(dtype=ti.f32, shape=())
_object_distance = ti.field(dtype=ti.f32, shape=())
_aperture_diameter = ti.field(dtype=ti.f32, shape=())
_horizontal_angle = ti.field(dtype=ti.f32, shape=())
_vertical_angle = ti.field(dtype=ti.f32, shape=())
_camera_configured = ti.field(dtype=ti.i32, shape=())


def setup_camera(camera: ThinLensCamera) -> None:
    """Upload camera state to the Taichi fields used by ray generation.

    Args:
        camera: A validated camera configuration.
    """
    _camera_position[None] = [camera.position[0], camera.position[1], camera.position[2]]
    _sensor_size[None] = camera.sensor_size
    _image_distance[None] = camera.image_distance
    _object_distance[None] = camera.object_distance
    _aperture_diameter[None] = 0.0 if math.isinf(camera.fstop) else camera.aperture_diameter
    _horizontal_angle[None] = camera.horizontal_angle
    _vertical_angle[None] = camera.vertical_angle
    _camera_configured[None] = 1

    logger.debug(
        "Camera at %s, image distance %.6f, aperture %.6f",
        camera.position,
        camera.image_distance,
        camera.aperture_diameter,
    )


def is_camera_configured() -> bool:
    """Check whether setup_camera() has been called."""
    return bool(_camera_configured[None])


# =============================================================================
# Ray Generation (Taichi-compatible)
# =============================================================================


@ti.func
def get_ray(
    x: ti.f32,
    y: ti.f32,
    width: ti.f32,
    height: ti.f32,
    jitter_x: ti.f32,
    jitter_y: ti.f32,
    lens_u: ti.f32,
    lens_v: ti.f32,
) -> Ray:
    """Generate a world-space ray for a pixel.

    Args:
        x: Pixel column (0 = left).
        y: Pixel row (0 = top).
        width: Image width in pixels.
        height: Image height in pixels.
        jitter_x: Sub-pixel offset in [0, 1).
        jitter_y: Sub-pixel offset in [0, 1).
        lens_u: Uniform draw for the aperture radius.
        lens_v: Uniform draw for the aperture angle.

    Returns:
        A Ray from the camera position through the sampled lens point.
    """
    aspect = width / height
    vx = ((x + jitter_x) / width - 0.5) * aspect
    vy = (y + jitter_y) / height - 0.5
    sensor_size = _sensor_size[None]
    sensor_point = vec3(-vx * sensor_size, vy * sensor_size, _image_distance[None])

    # Ray from the sensor through the lens center, extended to the focus plane
    lens_direction = tm.normalize(-sensor_point)
    focus_point = lens_direction * (_object_distance[None] / lens_direction.z)

    aperture_point = sample_disk(_aperture_diameter[None] * 0.5, lens_u, lens_v)
    direction = tm.normalize(focus_point - aperture_point)

    direction = rotate_axis_angle(direction, _vertical_angle[None], vec3(-1.0, 0.0, 0.0))
    direction = rotate_axis_angle(direction, _horizontal_angle[None], vec3(0.0, -1.0, 0.0))

    return make_ray(_camera_position[None], direction)


@ti.func
def get_ray_jittered(pixel_x: ti.i32, pixel_y: ti.i32, width: ti.i32, height: ti.i32) -> Ray:
    """Generate a ray with fresh sub-pixel jitter and aperture sample.

    Args:
        pixel_x: Pixel column (0 = left).
        pixel_y: Pixel row (0 = top).
        width: Image width in pixels.
        height: Image height in pixels.

    Returns:
        A randomly sampled Ray for the pixel.
    """
    return get_ray(
        ti.cast(pixel_x, ti.f32),
        ti.cast(pixel_y, ti.f32),
        ti.cast(width, ti.f32),
        ti.cast(height, ti.f32),
        ti.random(ti.f32),
        ti.random(ti.f32),
        ti.random(ti.f32),
        ti.random(ti.f32),
    )


def get_camera_info() -> dict[str, float | tuple[float, float, float]]:
    """Get current camera state for debugging.

    Returns:
        Dictionary with the values uploaded by setup_camera().
    """
    position = _camera_position[None]
    return {
        "position": (float(position[0]), float(position[1]), float(position[2])),
        "sensor_size": float(_sensor_size[None]),
        "image_distance": float(_image_distance[None]),
        "object_distance": float(_object_distance[None]),
        "aperture_diameter": float(_aperture_diameter[None]),
        "horizontal_angle": float(_horizontal_angle[None]),
        "vertical_angle": float(_vertical_angle[None]),
    }
