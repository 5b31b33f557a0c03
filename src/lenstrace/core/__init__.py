"""Core rendering module.

This module contains the fundamental building blocks for path tracing:

Components:
    ray: Ray data structure, vector helpers and sampling routines
    integrator: Exposure buffer, light transport (path tracing with Russian
        roulette and next event estimation) and gamma correction
    progressive: The Tracer that drives time-boxed progressive rendering

All compute-intensive operations use Taichi kernels.
"""

from .ray import (
    Ray,
    build_onb_from_normal,
    component_average,
    cosine_hemisphere_pdf,
    local_to_world,
    make_ray,
    max_component,
    ray_at,
    reflect,
    refraction,
    rotate_axis_angle,
    sample_cone,
    sample_cosine_hemisphere,
    sample_disk,
    sample_sphere_cap,
    schlick_reflectance,
    vec3,
)

# Note: integrator and progressive are NOT imported here, they declare Taichi
# fields at import time. Import them directly once Taichi is initialized:
#   from lenstrace.core.progressive import Tracer

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "component_average",
    "max_component",
    "reflect",
    "refraction",
    "schlick_reflectance",
    "rotate_axis_angle",
    "build_onb_from_normal",
    "local_to_world",
    "sample_cosine_hemisphere",
    "cosine_hemisphere_pdf",
    "sample_cone",
    "sample_disk",
    "sample_sphere_cap",
]
