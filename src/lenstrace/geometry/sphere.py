"""Sphere primitive with analytic ray-sphere intersection.

The intersection solves the ray-sphere quadratic in its half-b form for a
unit-length ray direction:

    op   = center - origin
    b    = dot(op, direction)
    disc = b^2 - dot(op, op) + radius^2

A negative discriminant is a miss. Otherwise the near root ``b - sqrt(disc)``
and then the far root ``b + sqrt(disc)`` are tested against a small positive
bias, which suppresses self-intersection at the point a ray left from.

Radii must be positive; zero or negative radii are not validated and give
unspecified results.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from lenstrace.geometry.sphere import Sphere, intersection_distance, vec3
    >>> sphere = Sphere(center=vec3(0.0, 0.0, -1.0), radius=0.5)
    >>> # distance = intersection_distance(origin, direction, sphere) in a kernel
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Roots closer than this are ignored
INTERSECTION_BIAS = 1e-4

# Distance reported when a ray misses
NO_HIT = 1e30


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float).
    """

    center: vec3
    radius: ti.f32


@ti.func
def intersection_distance(ray_origin: vec3, ray_direction: vec3, sphere: Sphere) -> ti.f32:
    """Distance along a ray to the first intersection with a sphere.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction of the ray (unit length).
        sphere: The sphere to test.

    Returns:
        The distance to the nearest root greater than INTERSECTION_BIAS,
        or NO_HIT if the ray misses.
    """
    op = sphere.center - ray_origin
    b = tm.dot(op, ray_direction)
    disc = b * b - tm.dot(op, op) + sphere.radius * sphere.radius

    distance = NO_HIT
    if disc >= 0.0:
        root = ti.sqrt(disc)
        t1 = b - root
        t2 = b + root
        if t1 > INTERSECTION_BIAS:
            distance = t1
        elif t2 > INTERSECTION_BIAS:
            distance = t2
    return distance


@ti.func
def outward_normal(sphere: Sphere, point: vec3) -> vec3:
    """Unit normal at a surface point, pointing away from the center."""
    return tm.normalize(point - sphere.center)
