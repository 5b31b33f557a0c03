"""Ray data structure and vector utilities for the path tracer.

This module provides the Ray dataclass and the vector helpers shared by the
camera, the materials and the integrator: reflection and refraction,
Schlick reflectance, and the sampling routines used for Monte Carlo
integration (cosine-weighted hemisphere, glossy cone, lens disk and sphere
cap).

Sampling routines take their uniform random numbers as arguments instead of
drawing them internally. Kernels draw them with ``ti.random()``; tests can
pass fixed values and get deterministic directions back.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from lenstrace.core.ray import Ray, ray_at, vec3
    >>> ray = Ray(origin=vec3(0.0, 0.0, 0.0), direction=vec3(0.0, 0.0, -1.0))
    >>> # point = ray_at(ray, 5.0) inside a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Rays are values: every bounce builds a new one rather than mutating the
    previous ray.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction of the ray (unit vec3).
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t."""
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction."""
    return Ray(origin=origin, direction=direction)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def component_average(v: vec3) -> ti.f32:
    """Average of the three components of a vector (RGB channel mean)."""
    return (v.x + v.y + v.z) / 3.0


@ti.func
def max_component(v: vec3) -> ti.f32:
    """Largest of the three components of a vector."""
    return tm.max(tm.max(v.x, v.y), v.z)


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal (should be normalized).

    Returns:
        The mirror-reflected direction vector.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def refraction(
    direction: vec3,
    normal: vec3,
    exterior_index: ti.f32,
    interior_index: ti.f32,
):
    """Refract a direction through a surface using Snell's law.

    The normal must face the incoming direction (``dot(direction, normal) < 0``).
    Light travels from the medium with ``exterior_index`` into the medium
    with ``interior_index``.

    Args:
        direction: The incoming direction (normalized).
        normal: The surface normal facing against ``direction``.
        exterior_index: Refractive index of the medium the ray leaves.
        interior_index: Refractive index of the medium the ray enters.

    Returns:
        A tuple of (refracted_direction, ok) where ``ok`` is 0 on total
        internal reflection (the direction is then the zero vector).
    """
    ratio = exterior_index / interior_index
    n_dot_i = tm.dot(normal, direction)
    k = 1.0 - ratio * ratio * (1.0 - n_dot_i * n_dot_i)

    refracted = vec3(0.0, 0.0, 0.0)
    ok = 0
    if k >= 0.0:
        offset = normal * (ratio * n_dot_i + ti.sqrt(k))
        refracted = tm.normalize(direction * ratio - offset)
        ok = 1
    return refracted, ok


@ti.func
def schlick_reflectance(incident: vec3, normal: vec3, f0: vec3) -> vec3:
    """Per-channel Fresnel reflectance using Schlick's approximation.

    F(cos) = F0 + (1 - F0) * (1 - cos)^5, with cos taken between the
    reversed incident direction and the normal.

    Args:
        incident: The incoming direction (normalized, pointing at the surface).
        normal: The outward surface normal (normalized).
        f0: Reflectance at normal incidence, per channel.

    Returns:
        The RGB reflectance.
    """
    cos_incident = tm.clamp(-tm.dot(incident, normal), 0.0, 1.0)
    return f0 + (vec3(1.0, 1.0, 1.0) - f0) * ((1.0 - cos_incident) ** 5)


@ti.func
def rotate_axis_angle(direction: vec3, angle_degrees: ti.f32, axis: vec3) -> vec3:
    """Rotate a vector about a unit axis (Rodrigues' rotation formula).

    Args:
        direction: The vector to rotate.
        angle_degrees: Rotation angle in degrees.
        axis: The rotation axis (unit length).

    Returns:
        The rotated vector.
    """
    theta = angle_degrees * tm.pi / 180.0
    cos_theta = ti.cos(theta)
    return (
        direction * cos_theta
        + tm.cross(axis, direction) * ti.sin(theta)
        + axis * tm.dot(axis, direction) * (1.0 - cos_theta)
    )


@ti.func
def build_onb_from_normal(normal: vec3):
    """Build an orthonormal basis from a normal vector.

    Args:
        normal: The surface normal (should be normalized).

    Returns:
        A tuple (tangent, bitangent, normal) forming an orthonormal basis.
    """
    # Choose a vector not parallel to normal
    a = vec3(1.0, 0.0, 0.0)
    if ti.abs(normal.x) > 0.9:
        a = vec3(0.0, 1.0, 0.0)
    tangent = tm.normalize(tm.cross(a, normal))
    bitangent = tm.cross(normal, tangent)
    return tangent, bitangent, normal


@ti.func
def local_to_world(local_dir: vec3, tangent: vec3, bitangent: vec3, normal: vec3) -> vec3:
    """Transform a direction from a local z-up frame to world coordinates."""
    return local_dir.x * tangent + local_dir.y * bitangent + local_dir.z * normal


# =============================================================================
# Sampling Utilities for Monte Carlo
# =============================================================================


@ti.func
def sample_cosine_hemisphere(normal: vec3, u: ti.f32, v: ti.f32) -> vec3:
    """Cosine-weighted hemisphere sample about a normal.

    Generates a direction with density cos(theta) / pi, where theta is the
    angle to ``normal``. This is the optimal importance sampling distribution
    for diffuse reflection.

    Args:
        normal: The hemisphere axis (normalized).
        u: Uniform draw in [0, 1) controlling the radius.
        v: Uniform draw in [0, 1) controlling the azimuth.

    Returns:
        The sampled direction in world space (normalized).
    """
    r = ti.sqrt(u)
    phi = 2.0 * tm.pi * v
    local_dir = vec3(r * ti.cos(phi), r * ti.sin(phi), ti.sqrt(tm.max(1.0 - u, 0.0)))
    tangent, bitangent, n = build_onb_from_normal(normal)
    return tm.normalize(local_to_world(local_dir, tangent, bitangent, n))


@ti.func
def cosine_hemisphere_pdf(normal: vec3, direction: vec3) -> ti.f32:
    """Density of ``sample_cosine_hemisphere`` for a given direction."""
    return tm.max(tm.dot(normal, direction), 0.0) / tm.pi


@ti.func
def sample_cone(axis: vec3, width: ti.f32, u: ti.f32, v: ti.f32) -> vec3:
    """Sample a direction inside a cone about ``axis``.

    The polar angle is ``width * pi/2 * (1 - 2*acos(u)/pi)``, so a width of
    0 returns the axis itself and a width of 1 spreads over the hemisphere.

    Args:
        axis: The cone axis (normalized).
        width: Cone width in [0, 1].
        u: Uniform draw in [0, 1) controlling the polar angle.
        v: Uniform draw in [0, 1) controlling the azimuth.

    Returns:
        The sampled direction (normalized).
    """
    theta = width * 0.5 * tm.pi * (1.0 - (2.0 * ti.acos(u) / tm.pi))
    phi = 2.0 * tm.pi * v
    sin_theta = ti.sin(theta)
    local_dir = vec3(sin_theta * ti.cos(phi), sin_theta * ti.sin(phi), ti.cos(theta))
    tangent, bitangent, n = build_onb_from_normal(axis)
    return tm.normalize(local_to_world(local_dir, tangent, bitangent, n))


@ti.func
def sample_disk(radius: ti.f32, u: ti.f32, v: ti.f32) -> vec3:
    """Uniform point on a disk in the xy-plane (area-preserving polar map).

    Args:
        radius: Disk radius.
        u: Uniform draw in [0, 1) controlling the radius (r = sqrt(u) * radius).
        v: Uniform draw in [0, 1) controlling the angle (2 * pi * v).

    Returns:
        The point (x, y, 0).
    """
    r = ti.sqrt(u) * radius
    angle = 2.0 * tm.pi * v
    return vec3(r * ti.cos(angle), r * ti.sin(angle), 0.0)


@ti.func
def sample_sphere_cap(axis: vec3, cos_max: ti.f32, u: ti.f32, v: ti.f32) -> vec3:
    """Uniform direction over the solid angle of a cone.

    Used to sample the directions subtended by a spherical light: every
    direction within ``acos(cos_max)`` of ``axis`` is equally likely, so the
    density is ``1 / (2 * pi * (1 - cos_max))``.

    Args:
        axis: Cone axis (normalized), pointing at the light center.
        cos_max: Cosine of the cone half angle.
        u: Uniform draw in [0, 1) controlling the polar angle.
        v: Uniform draw in [0, 1) controlling the azimuth.

    Returns:
        The sampled direction (normalized).
    """
    cos_theta = 1.0 - u * (1.0 - cos_max)
    sin_theta = ti.sqrt(tm.max(1.0 - cos_theta * cos_theta, 0.0))
    phi = 2.0 * tm.pi * v
    local_dir = vec3(sin_theta * ti.cos(phi), sin_theta * ti.sin(phi), cos_theta)
    tangent, bitangent, n = build_onb_from_normal(axis)
    return tm.normalize(local_to_world(local_dir, tangent, bitangent, n))
