"""Box scene configuration.

A closed room built from five huge spheres whose nearly flat surfaces act as
walls, lit by a large emissive sphere that pokes through the ceiling, with
two small spheres standing on the floor:

- Left wall: red plastic, right wall: green plastic
- Back wall, floor and ceiling: white plastic
- Ceiling light: sphere of radius 10.5 centered above the ceiling
- A glass sphere and a glossy gold sphere

The room spans x in [-5, 5], y in [-3, 3] and its back wall sits at z = -10.
The camera looks down -z from z = 7, outside the open front of the room.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from lenstrace.scene.box import BoxSceneParams, create_box_scene
    >>> scene = create_box_scene(BoxSceneParams(light_intensity=1500.0))
"""

from dataclasses import dataclass

from lenstrace.camera.thin_lens import ThinLensCamera
from lenstrace.materials.material import Material
from lenstrace.scene.manager import SceneManager


@dataclass
class BoxSceneParams:
    """Parameters for configuring the box scene.

    Attributes:
        light_intensity: Emitted radiance of the ceiling light per channel,
            on the 0-255 output scale.
        light_color: RGB tint of the light (each component in [0, 1]).
        left_wall_color: RGB albedo of the left wall.
        right_wall_color: RGB albedo of the right wall.
        white_wall_color: RGB albedo of the back wall, floor and ceiling.
        background: Radiance of rays escaping through the open front.
        fstop: Camera f-number; ``math.inf`` gives a pinhole camera.

    Example:
        >>> warm = BoxSceneParams(light_color=(1.0, 0.9, 0.8))
    """

    light_intensity: float = 2000.0
    light_color: tuple[float, float, float] = (1.0, 1.0, 1.0)
    left_wall_color: tuple[float, float, float] = (0.65, 0.05, 0.05)
    right_wall_color: tuple[float, float, float] = (0.12, 0.45, 0.15)
    white_wall_color: tuple[float, float, float] = (0.73, 0.73, 0.73)
    background: tuple[float, float, float] = (0.0, 0.0, 0.0)
    fstop: float = 1.4


# Radius of the spheres standing in for walls
WALL_RADIUS = 1000.0

# Ceiling light sphere
LIGHT_CENTER = (0.0, 13.0, -8.0)
LIGHT_RADIUS = 10.5

# Camera placement and lens
CAMERA_POSITION = (0.0, 0.0, 7.0)
SENSOR_SIZE = 0.024
FOCAL_LENGTH = 0.040
FOCUS_DISTANCE = 15.0


def _plastic(albedo: tuple[float, float, float], glossiness: float = 0.2) -> Material:
    return Material(
        albedo=albedo,
        refraction_index=1.0,
        fresnel_reflectance=(0.04, 0.04, 0.04),
        glossiness=glossiness,
    )


def create_box_scene(params: BoxSceneParams | None = None) -> SceneManager:
    """Create the box scene with its camera and light configured.

    Args:
        params: Optional BoxSceneParams. If None, uses BoxSceneParams().

    Returns:
        A SceneManager holding 8 spheres, with the camera set and the
        ceiling light designated for next event estimation.
    """
    if params is None:
        params = BoxSceneParams()

    scene = SceneManager()

    red = scene.add_material(_plastic(params.left_wall_color))
    green = scene.add_material(_plastic(params.right_wall_color))
    white = scene.add_material(_plastic(params.white_wall_color))
    light = scene.add_material(
        Material(
            albedo=(0.0, 0.0, 0.0),
            emitted_radiance=tuple(c * params.light_intensity for c in params.light_color),
        )
    )
    glass = scene.add_material(
        Material(
            albedo=(0.9, 0.95, 1.0),
            refraction_index=1.5,
            transparency=0.95,
            glossiness=1.0,
        )
    )
    gold = scene.add_material(
        Material(
            albedo=(1.0, 0.78, 0.34),
            fresnel_reflectance=(1.0, 0.78, 0.34),
            metalness=0.9,
            glossiness=0.9,
        )
    )

    # Walls
    scene.add_sphere((-1005.0, 0.0, -8.0), WALL_RADIUS, red)
    scene.add_sphere((1005.0, 0.0, -8.0), WALL_RADIUS, green)
    scene.add_sphere((0.0, -1003.0, -8.0), WALL_RADIUS, white)
    scene.add_sphere((0.0, 1003.0, -8.0), WALL_RADIUS, white)
    scene.add_sphere((0.0, 0.0, -1010.0), WALL_RADIUS, white)

    light_index = scene.add_sphere(LIGHT_CENTER, LIGHT_RADIUS, light)

    # Objects on the floor
    scene.add_sphere((1.0, -2.0, -7.0), 1.0, gold)
    scene.add_sphere((-0.75, -2.0, -5.0), 1.0, glass)

    scene.set_background(params.background)
    scene.set_light(light_index)
    scene.set_camera(
        ThinLensCamera(
            position=CAMERA_POSITION,
            sensor_size=SENSOR_SIZE,
            focal_length=FOCAL_LENGTH,
            focus_distance=FOCUS_DISTANCE,
            fstop=params.fstop,
        )
    )
    return scene
