"""Scene-level sphere intersection testing.

The scene stores spheres in Taichi fields. ``intersect_scene`` scans every
sphere and keeps the nearest hit; when two spheres report the same distance
the one added first wins. A ray that hits nothing picks up the background
color, a single constant for the whole scene. One sphere may also be
designated as the light that next event estimation samples directly.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from lenstrace.scene.intersection import add_sphere, clear_scene
    >>> clear_scene()
    >>> add_sphere((0.0, 0.0, -8.0), 1.0, material_id=0)
    >>> # rec = intersect_scene(origin, direction) inside a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from lenstrace.geometry.sphere import NO_HIT, Sphere, intersection_distance, outward_normal

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class SceneHitRecord:
    """Record of a ray-scene intersection.

    Attributes:
        hit: 1 if the ray intersected a sphere, 0 on a miss.
        distance: Distance along the ray to the hit point (> 0).
        point: The 3D hit point.
        normal: Outward unit normal of the sphere at the hit point. It is
            not flipped toward the ray; rays inside a sphere see a normal
            pointing the same way they travel.
        material_id: Index into the material table. -1 on a miss.
        sphere_id: Index of the hit sphere. -1 on a miss.
    """

    hit: ti.i32
    distance: ti.f32
    point: vec3
    normal: vec3
    material_id: ti.i32
    sphere_id: ti.i32


# Maximum number of spheres supported in the scene
MAX_SPHERES = 256

# Sphere storage: Structure of Arrays layout
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
sphere_material_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())

background_color = ti.Vector.field(3, dtype=ti.f32, shape=())

# Sphere sampled directly by next event estimation, if any
light_enabled = ti.field(dtype=ti.i32, shape=())
light_sphere = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Remove all spheres and reset the background to black.

    The field data is not cleared but will be overwritten when new spheres
    are added.
    """
    num_spheres[None] = 0
    background_color[None] = [0.0, 0.0, 0.0]


def add_sphere(center, radius: float, material_id: int = 0) -> int:
    """Add a sphere to the scene.

    Args:
        center: The center point of the sphere (any 3-sequence).
        radius: The radius of the sphere. Not validated; must be positive.
        material_id: Index of the sphere's material.

    Returns:
        The index of the added sphere.

    Raises:
        RuntimeError: If the maximum number of spheres is exceeded.
    """
    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = [center[0], center[1], center[2]]
    sphere_radii[idx] = radius
    sphere_material_ids[idx] = material_id
    num_spheres[None] = idx + 1
    return idx


def get_sphere_count() -> int:
    """Get the number of spheres in the scene."""
    return int(num_spheres[None])


def set_background(color) -> None:
    """Set the radiance returned for rays that escape the scene."""
    background_color[None] = [color[0], color[1], color[2]]


def get_background() -> tuple[float, float, float]:
    """Get the current background radiance."""
    color = background_color[None]
    return (float(color[0]), float(color[1]), float(color[2]))


def setup_light(sphere_index: int) -> None:
    """Designate a sphere as the light used for next event estimation.

    The sphere's material must be emissive; SceneManager.set_light() checks
    this before calling here.

    Args:
        sphere_index: Index of the light sphere in the scene.
    """
    light_enabled[None] = 1
    light_sphere[None] = sphere_index


def disable_light() -> None:
    """Turn off next event estimation for the current scene."""
    light_enabled[None] = 0
    light_sphere[None] = -1


def is_light_enabled() -> bool:
    """Check if a light sphere is designated."""
    return bool(light_enabled[None])


@ti.func
def background(direction: vec3) -> vec3:
    """Radiance for a ray that hits nothing.

    The background is a constant, so ``direction`` is unused. It is kept in
    the signature so callers treat the background as a function of the
    escaping ray.
    """
    return background_color[None]


@ti.func
def _make_miss_record() -> SceneHitRecord:
    return SceneHitRecord(
        hit=0,
        distance=NO_HIT,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        material_id=-1,
        sphere_id=-1,
    )


@ti.func
def intersect_scene(ray_origin: vec3, ray_direction: vec3) -> SceneHitRecord:
    """Find the nearest sphere along a ray.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction of the ray (unit length).

    Returns:
        A SceneHitRecord for the closest intersection, or a miss record.
    """
    closest = NO_HIT
    closest_id = -1

    for i in range(num_spheres[None]):
        sphere = Sphere(center=sphere_centers[i], radius=sphere_radii[i])
        distance = intersection_distance(ray_origin, ray_direction, sphere)
        if distance < closest:
            closest = distance
            closest_id = i

    result = _make_miss_record()
    if closest_id >= 0:
        sphere = Sphere(center=sphere_centers[closest_id], radius=sphere_radii[closest_id])
        point = ray_origin + closest * ray_direction
        result = SceneHitRecord(
            hit=1,
            distance=closest,
            point=point,
            normal=outward_normal(sphere, point),
            material_id=sphere_material_ids[closest_id],
            sphere_id=closest_id,
        )
    return result


@ti.func
def is_visible(ray_origin: vec3, ray_direction: vec3, sphere_id: ti.i32) -> ti.i32:
    """Shadow query: is the nearest hit along the ray the given sphere?

    Args:
        ray_origin: The starting point of the shadow ray.
        ray_direction: The direction of the shadow ray (unit length).
        sphere_id: Index of the sphere that should be reached unoccluded.

    Returns:
        1 if the first sphere the ray meets is ``sphere_id``, 0 otherwise.
    """
    rec = intersect_scene(ray_origin, ray_direction)
    return ti.select(rec.sphere_id == sphere_id, 1, 0)
